"""Tests for the command line interface."""

import io
import json

import pytest
from click.testing import CliRunner
from prompt_toolkit.document import Document
from rich.console import Console

from percento import __version__
from percento.cli.completer import PercentoCompleter
from percento.cli.main import PercentoREPL, cli
from percento.core.controller import Calculator
from percento.core.engine import CalculationMode
from percento.extraction import WordProblemExtractor
from percento.providers.base import ProviderFactory
from percento.validation.config import Config

from tests.conftest import FakeProvider, analysis_json


@pytest.fixture
def runner(isolated_config):
    return CliRunner()


class TestCalcCommand:
    def test_json_output(self, runner):
        """calc --json prints result, formula and chart."""
        result = runner.invoke(cli, ["calc", "of", "25", "200", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["type"] == "BASIC_OF"
        assert data["result"] == 50
        assert data["formatted"] == "50"
        assert data["formula"] == "(25 / 100) * 200"
        assert data["chart"]["segments"] == [
            {"label": "Result", "value": 50},
            {"label": "Remaining", "value": 150},
        ]

    def test_rendered_output(self, runner):
        """calc renders the value and the bars."""
        result = runner.invoke(cli, ["calc", "change", "100", "150"])

        assert result.exit_code == 0, result.output
        assert "50%" in result.output
        assert "Old" in result.output and "New" in result.output

    def test_adjust_shows_before_and_after(self, runner):
        """Adjust shows the adjusted value."""
        result = runner.invoke(cli, ["calc", "adjust", "10", "1000"])

        assert result.exit_code == 0, result.output
        assert "1,100" in result.output

    def test_negative_numbers_after_separator(self, runner):
        """Negative numbers pass after "--"."""
        result = runner.invoke(cli, ["calc", "adjust", "--json", "--", "-15", "80"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["result"] == pytest.approx(68)

    def test_undefined_result(self, runner):
        """Undefined result exits 1 with the reason."""
        result = runner.invoke(cli, ["calc", "what", "5", "0"])

        assert result.exit_code == 1
        assert "non-zero" in result.output

    def test_bad_number(self, runner):
        """Non-numeric input is a usage error."""
        result = runner.invoke(cli, ["calc", "of", "ten", "200"])

        assert result.exit_code == 2
        assert "FIRST" in result.output

    def test_bad_mode(self, runner):
        """Unknown mode is a usage error."""
        result = runner.invoke(cli, ["calc", "times", "1", "2"])

        assert result.exit_code == 2
        assert "Unknown calculation mode" in result.output


class TestSolveCommand:
    def test_solve(self, runner, monkeypatch):
        """solve prints the explanation and the result."""
        provider = FakeProvider(replies=[analysis_json("IS_WHAT", [30, 120], "30 out of 120")])
        monkeypatch.setattr(ProviderFactory, "create", classmethod(lambda cls, model, config: provider))

        result = runner.invoke(cli, ["solve", "30", "out", "of", "120", "is", "what", "percent?"])

        assert result.exit_code == 0, result.output
        assert "30 out of 120" in result.output
        assert "25%" in result.output
        assert "30 out of 120 is what percent?" in provider.calls[0]["prompt"]

    def test_solve_failure(self, runner, monkeypatch):
        """Malformed AI answer exits 1."""
        provider = FakeProvider(replies=["{not json"])
        monkeypatch.setattr(ProviderFactory, "create", classmethod(lambda cls, model, config: provider))

        result = runner.invoke(cli, ["solve", "gibberish"])

        assert result.exit_code == 1
        assert "AI couldn't process this problem" in result.output

    def test_solve_undefined_result(self, runner, monkeypatch):
        """Extracted inputs with no result exit 1."""
        provider = FakeProvider(replies=[analysis_json("CHANGE", [0, 10])])
        monkeypatch.setattr(ProviderFactory, "create", classmethod(lambda cls, model, config: provider))

        result = runner.invoke(cli, ["solve", "from", "zero", "to", "ten"])

        assert result.exit_code == 1
        assert "non-zero" in result.output


class TestVersion:
    def test_version(self, runner):
        """Test --version flag."""
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output


class TestREPL:
    @pytest.fixture
    def repl(self):
        out = Console(file=io.StringIO(), width=120)
        provider = FakeProvider(replies=[analysis_json("ADD_SUB", [20, 50], "Add 20% to 50")])
        return PercentoREPL(Calculator(extractor=WordProblemExtractor(provider)), out=out)

    def output(self, repl) -> str:
        return repl.console.file.getvalue()

    def test_numbers(self, repl):
        """Two numbers fill both fields."""
        assert repl.handle_line("25 200") is True

        assert repl.calculator.result.value == 50
        assert "Formula used" in self.output(repl)

    def test_thousands_separator(self, repl):
        """A comma groups digits within one number."""
        repl.handle_line("1,250 200")

        assert repl.calculator.raw_inputs == ("1,250", "200")
        assert repl.calculator.result.value == 2500

    def test_single_grouped_number_is_one_input(self, repl):
        """A lone "1,250" is one number, not two fields."""
        repl.handle_line("1,250")

        assert repl.calculator.raw_inputs == ("", "")
        assert "Enter two numbers" in self.output(repl)

    def test_wrong_token_count(self, repl):
        """A single number is not enough."""
        repl.handle_line("25")

        assert "Enter two numbers" in self.output(repl)
        assert repl.calculator.raw_inputs == ("", "")

    def test_bad_number(self, repl):
        """Unparseable number is reported."""
        repl.handle_line("25 lots")

        assert "Cannot parse" in self.output(repl)

    def test_mode_switch(self, repl):
        """/mode switches and prints the new mode."""
        repl.handle_line("/mode what")

        assert repl.calculator.mode is CalculationMode.WHAT_PERCENT
        assert "X is what % of Y?" in self.output(repl)

    def test_unknown_mode(self, repl):
        """Unknown mode name keeps the current mode."""
        repl.handle_line("/mode nope")

        assert "Unknown calculation mode" in self.output(repl)
        assert repl.calculator.mode is CalculationMode.PERCENT_OF

    def test_undefined_explained(self, repl):
        """Undefined result explains which rule failed."""
        repl.handle_line("/mode change")
        repl.handle_line("0 10")

        assert "Original value must be non-zero" in self.output(repl)

    def test_save_history_replay(self, repl):
        """Saved entry is listed and can be replayed."""
        repl.handle_line("25 200")
        repl.handle_line("/save")
        repl.handle_line("/mode adjust")
        repl.handle_line("/history")

        assert "25% of 200" in self.output(repl)

        repl.handle_line("/replay 1")
        assert repl.calculator.mode is CalculationMode.PERCENT_OF
        assert repl.calculator.raw_inputs == ("25", "200")

    def test_save_nothing(self, repl):
        """/save without a result does nothing."""
        repl.handle_line("/save")

        assert "Nothing to save" in self.output(repl)

    def test_replay_missing(self, repl):
        """/replay of an unknown entry is reported."""
        repl.handle_line("/replay 3")

        assert "No history entry 3" in self.output(repl)

    def test_clear(self, repl):
        """/clear empties the history."""
        repl.handle_line("25 200")
        repl.handle_line("/save")
        repl.handle_line("/clear")

        assert len(repl.calculator.history) == 0

    def test_ask(self, repl):
        """/ask applies the extracted calculation."""
        repl.handle_line("/ask I add 20% to 50")

        assert repl.calculator.mode is CalculationMode.ADJUST_BY_PERCENT
        assert "Add 20% to 50" in self.output(repl)

    def test_ask_failure(self, repl):
        """Failed /ask keeps the previous inputs."""
        repl.handle_line("/ask I add 20% to 50")
        repl.handle_line("/ask again")

        assert "AI couldn't process this problem" in self.output(repl)
        assert repl.calculator.raw_inputs == ("20", "50")

    def test_exit(self, repl):
        """/exit stops the loop."""
        assert repl.handle_line("/exit") is False
        assert repl.running is False

    def test_exit_keyword(self, repl):
        """Bare exit keywords stop the loop."""
        assert repl.handle_line("quit") is False

    def test_unknown_command(self, repl):
        """Unknown slash command is reported."""
        assert repl.handle_line("/frobnicate") is True

        assert "Unknown command" in self.output(repl)

    def test_run_until_eof(self, repl, monkeypatch):
        """run() processes lines until end of input."""
        lines = iter(["25 200", "/save"])

        def fake_input():
            try:
                return next(lines)
            except StopIteration:
                raise EOFError

        monkeypatch.setattr(repl, "_get_input", fake_input)
        repl.run()

        assert len(repl.calculator.history) == 1
        assert "Bye" in self.output(repl)


class TestCompleter:
    def completions(self, text):
        return [c.text for c in PercentoCompleter().get_completions(Document(text), None)]

    def test_slash_commands(self):
        """Slash commands complete by prefix."""
        assert self.completions("/h") == ["/help", "/history"]

    def test_mode_names(self):
        """Mode names complete after /mode."""
        assert self.completions("/mode c") == ["change"]

    def test_plain_text(self):
        """Plain input gets no completions."""
        assert self.completions("25") == []


class TestConfigCommands:
    def test_init_writes_default_config(self, runner):
        """--init writes a valid default config."""
        result = runner.invoke(cli, ["--init"])

        assert result.exit_code == 0, result.output
        assert Config.global_path().exists()
        assert Config.load().merged.history.capacity == 10

    def test_show_model(self, runner):
        """model without a name shows the current one."""
        result = runner.invoke(cli, ["model"])

        assert result.exit_code == 0
        assert "google/gemini-2.0-flash" in result.output

    def test_switch_model_locally(self, runner, isolated_config):
        """model saves to the project config by default."""
        result = runner.invoke(cli, ["model", "ollama/llama3"])

        assert result.exit_code == 0, result.output
        assert (isolated_config / "project" / ".percento" / "config.yaml").exists()
        assert Config.load().get_model() == "ollama/llama3"

    def test_switch_model_globally(self, runner, isolated_config):
        """model --global saves to the user config."""
        result = runner.invoke(cli, ["model", "--global", "openai/gpt-4o-mini"])

        assert result.exit_code == 0, result.output
        assert not (isolated_config / "project" / ".percento").exists()
        assert Config.load().get_model() == "openai/gpt-4o-mini"

    def test_disabled_provider_rejected(self, runner):
        """Disabled providers cannot be selected."""
        Config.GLOBAL_CONFIG_DIR.mkdir(parents=True)
        Config.global_path().write_text("providers:\n  groq:\n    enabled: false\n")

        result = runner.invoke(cli, ["model", "groq/llama-3.3-70b-versatile"])

        assert result.exit_code == 2
        assert "disabled" in result.output
