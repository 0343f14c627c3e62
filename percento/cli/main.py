"""
Percento CLI - Percentage calculator in the terminal.

Run `percento` for the interactive calculator, or use the one-shot
`percento calc` and `percento solve` commands.
"""

import json
import logging
import sys
from typing import List, Optional

import click
from rich.console import Console, Group
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from percento import __version__
from percento.core.chart import BAR, PIE, ChartSeries, chart_for
from percento.core.controller import Calculator
from percento.core.engine import CalculationMode, CalculationResult, compute, evaluate, parse_number
from percento.core.errors import DomainError, ExtractionError, ParseError
from percento.core.formatting import format_formula, format_number, format_value, input_labels, mode_title
from percento.core.history import HistoryLog
from percento.providers.base import ProviderFactory
from percento.validation.config import Config, ConfigError

console = Console()

BAR_WIDTH = 30


def configure_logging(verbose: bool) -> None:
    """Send percento logs to the console through rich when verbose."""
    if not verbose:
        return
    handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root = logging.getLogger("percento")
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)


# ── Rendering ─────────────────────────────────────────────────────────────


def render_chart(series: ChartSeries, result: CalculationResult, decimals: int = 2):
    """Build a rich renderable for a chart series."""
    if series.kind == PIE:
        total = sum(segment.value for segment in series.segments)
        table = Table(show_header=False, box=None, padding=(0, 1))
        for index, segment in enumerate(series.segments):
            share = segment.value / total if total > 0 else 0.0
            style = "blue" if index == 0 else "grey50"
            table.add_row(
                segment.label,
                Text("█" * round(share * BAR_WIDTH), style=style),
                format_value(result.mode, segment.value, decimals),
            )
        return table

    if series.kind == BAR:
        peak = max(abs(segment.value) for segment in series.segments) or 1.0
        style = "green" if series.increase else "red"
        table = Table(show_header=False, box=None, padding=(0, 1))
        for index, segment in enumerate(series.segments):
            table.add_row(
                segment.label,
                Text("█" * round(abs(segment.value) / peak * BAR_WIDTH), style=style if index else "grey50"),
                format_number(segment.value),
            )
        return table

    before = format_number(result.inputs.second)
    after = format_value(result.mode, result.value, decimals)
    return Text.assemble((before, "grey50"), "  →  ", (after, "bold blue"))


def undefined_reason(mode: CalculationMode, first: Optional[float], second: Optional[float]) -> str:
    """Explain why a calculation has no result."""
    if first is None or second is None:
        return "Enter two numbers to see a result."
    try:
        evaluate(mode, first, second)
    except DomainError as e:
        return str(e)
    except ValueError:
        pass
    return "The result is too large to represent."


def render_result(result: CalculationResult, decimals: int = 2) -> Panel:
    """Build the result panel: value, formula and chart."""
    value = Text(format_value(result.mode, result.value, decimals), style="bold blue")
    formula = Text(
        f"Formula used: {format_formula(result.mode, result.inputs.first, result.inputs.second)}",
        style="dim italic",
    )
    chart = render_chart(chart_for(result), result, decimals)
    return Panel(
        Group(value, Text(""), chart, Text(""), formula),
        title=mode_title(result.mode),
        border_style="blue",
        padding=(1, 2),
    )


def render_history(history: HistoryLog, decimals: int = 2) -> Table:
    """Build the recent-calculations table."""
    table = Table(title="Recent Calculations", title_justify="left")
    table.add_column("#", style="cyan", justify="right")
    table.add_column("ID", style="dim")
    table.add_column("Calculation")
    table.add_column("Result", justify="right", style="bold")
    table.add_column("Time", style="dim")

    for index, entry in enumerate(history, 1):
        table.add_row(
            str(index),
            entry.id[:8],
            entry.label,
            format_value(entry.mode, entry.result, decimals),
            entry.timestamp.astimezone().strftime("%H:%M:%S"),
        )
    return table


# ── REPL ──────────────────────────────────────────────────────────────────


class PercentoREPL:
    """
    Interactive calculator.

    Bare input of two numbers ("25 200") fills both fields; slash
    commands switch modes, manage history and ask the AI.
    """

    EXIT_KEYWORDS = {"quit", "exit", "bye", "q"}

    def __init__(self, calculator: Calculator, out: Optional[Console] = None):
        self.calculator = calculator
        self.console = out or console
        self.running = True
        self._session = None

    def _get_input(self) -> str:
        """Read a line with slash-command completion."""
        if self._session is None:
            from prompt_toolkit import PromptSession

            from percento.cli.completer import PercentoCompleter

            self._session = PromptSession(completer=PercentoCompleter())
        return self._session.prompt(f"{self.calculator.mode.value.lower()}> ").strip()

    def _print_banner(self) -> None:
        info = Text()
        info.append("Percento", style="bold blue")
        info.append(f"  v{__version__}", style="bold cyan")
        self.console.print(info)
        self.console.print("  [dim]Type two numbers, or /help for commands. /exit to quit.[/dim]")
        self._print_mode()

    def _print_mode(self) -> None:
        first, second = input_labels(self.calculator.mode)
        self.console.print(
            f"[bold]{mode_title(self.calculator.mode)}[/bold]  [dim]({first}, {second})[/dim]"
        )

    def _print_help(self) -> None:
        self.console.print(
            """
[bold]Input:[/bold]
  <first> <second>         Set both numbers, e.g. 25 200

[bold]Commands:[/bold]
  /mode <name>             Switch mode: of, what, change, adjust
  /modes                   List calculation modes
  /ask <problem>           Solve a word problem with AI
  /save                    Save current calculation to history
  /history                 Recent calculations
  /replay <#|id>           Restore a calculation from history
  /clear                   Clear history
  /reset                   Clear the inputs
  /help, /?                Show this help
  /exit, /quit, /q         Exit
"""
        )

    def _print_modes(self) -> None:
        table = Table(show_header=True, box=None)
        table.add_column("Name", style="cyan")
        table.add_column("Mode")
        table.add_column("Inputs", style="dim")
        for name, mode in (
            ("of", CalculationMode.PERCENT_OF),
            ("what", CalculationMode.WHAT_PERCENT),
            ("change", CalculationMode.PERCENT_CHANGE),
            ("adjust", CalculationMode.ADJUST_BY_PERCENT),
        ):
            marker = " *" if mode is self.calculator.mode else ""
            table.add_row(name, mode_title(mode) + marker, ", ".join(input_labels(mode)))
        self.console.print(table)

    def show_result(self) -> None:
        calc = self.calculator
        result = calc.result
        if result is None:
            first, second = calc.inputs.as_tuple()
            self.console.print(f"[yellow]{undefined_reason(calc.mode, first, second)}[/yellow]")
            return
        self.console.print(render_result(result, calc.decimals))

    def _set_numbers(self, line: str) -> None:
        tokens = line.split()
        if len(tokens) != 2:
            self.console.print("[yellow]Enter two numbers, e.g. 25 200. Use /ask for word problems.[/yellow]")
            return
        for token in tokens:
            try:
                parse_number(token)
            except ParseError as e:
                self.console.print(f"[red]{e}[/red]")
                return
        self.calculator.set_inputs(tokens[0], tokens[1])
        self.show_result()

    def _switch_mode(self, args: str) -> None:
        if not args:
            self._print_modes()
            return
        try:
            self.calculator.select_mode(CalculationMode.parse(args))
        except ValueError as e:
            self.console.print(f"[red]{e}[/red]")
            return
        self._print_mode()

    def _ask(self, problem: str) -> None:
        if not problem.strip():
            self.console.print("[yellow]Usage: /ask <word problem>[/yellow]")
            return
        try:
            with self.console.status("[bold blue]Solving...[/bold blue]", spinner="dots"):
                analysis = self.calculator.solve(problem)
        except ExtractionError as e:
            self.console.print("[red]AI couldn't process this problem. Try clarifying the numbers.[/red]")
            self.console.print(f"[dim]{e}[/dim]")
            return
        self.console.print(f"[italic]{analysis.explanation}[/italic]")
        self.show_result()

    def _save(self) -> None:
        entry = self.calculator.save_to_history()
        if entry is None:
            self.console.print("[yellow]Nothing to save yet.[/yellow]")
            return
        self.console.print(f"[green]Saved:[/green] {entry.label} [dim]({entry.id[:8]})[/dim]")

    def _show_history(self) -> None:
        if not len(self.calculator.history):
            self.console.print("[dim]No recent calculations.[/dim]")
            return
        self.console.print(render_history(self.calculator.history, self.calculator.decimals))

    def _resolve_entry_id(self, ref: str) -> str:
        entries = self.calculator.history.entries()
        if ref.isdigit() and 1 <= int(ref) <= len(entries):
            return entries[int(ref) - 1].id
        matches = [entry.id for entry in entries if entry.id.startswith(ref)]
        return matches[0] if len(matches) == 1 else ref

    def _replay(self, ref: str) -> None:
        if not ref:
            self.console.print("[yellow]Usage: /replay <#|id>[/yellow]")
            return
        if not self.calculator.replay(self._resolve_entry_id(ref)):
            self.console.print(f"[dim]No history entry {ref}.[/dim]")
            return
        self._print_mode()
        self.show_result()

    def handle_line(self, line: str) -> bool:
        """Handle one line of input. Returns False when the REPL should stop."""
        line = line.strip()
        if not line:
            return True

        if not line.startswith("/"):
            if line.lower() in self.EXIT_KEYWORDS:
                self.running = False
                return False
            self._set_numbers(line)
            return True

        parts = line.split(maxsplit=1)
        command = parts[0].lower()
        args = parts[1].strip() if len(parts) > 1 else ""

        if command in ("/exit", "/quit", "/q"):
            self.running = False
            return False
        elif command in ("/help", "/?"):
            self._print_help()
        elif command == "/mode":
            self._switch_mode(args)
        elif command == "/modes":
            self._print_modes()
        elif command == "/ask":
            self._ask(args)
        elif command == "/save":
            self._save()
        elif command == "/history":
            self._show_history()
        elif command == "/replay":
            self._replay(args)
        elif command == "/clear":
            self.calculator.clear_history()
            self.console.print("[dim]History cleared.[/dim]")
        elif command == "/reset":
            self.calculator.reset_inputs()
            self.console.print("[dim]Inputs cleared.[/dim]")
        else:
            self.console.print(f"[yellow]Unknown command: {command}[/yellow]")
            self.console.print("[dim]Type /help for available commands[/dim]")

        return True

    def run(self) -> None:
        """Run the interactive REPL."""
        self._print_banner()

        while self.running:
            try:
                if not self.handle_line(self._get_input()):
                    break
            except (EOFError, KeyboardInterrupt):
                break

        self.console.print("[dim]Bye.[/dim]")


# ── Commands ──────────────────────────────────────────────────────────────


def _load_config() -> Config:
    try:
        config = Config.load()
        config.merged  # validate early
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)
    return config


def _build_calculator(model: Optional[str]) -> Calculator:
    """Build a calculator; without a usable AI provider, /ask is disabled."""
    config = _load_config()
    try:
        return Calculator.from_config(config, model=model)
    except ValueError as e:
        console.print(f"[yellow]AI assistant unavailable: {e}[/yellow]")
        settings = config.merged
        return Calculator(
            history=HistoryLog(capacity=settings.history.capacity),
            decimals=settings.display.decimals,
        )


@click.group(invoke_without_command=True)
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.option("--init", "-i", is_flag=True, help="Write the default global config and exit")
@click.option("--verbose", is_flag=True, help="Log debug output to stderr")
@click.option("--model", "-m", default=None, help="AI model for word problems, e.g. google/gemini-2.0-flash")
@click.pass_context
def cli(ctx: click.Context, version: bool, init: bool, verbose: bool, model: Optional[str]) -> None:
    """
    Percento - Percentage calculator with an AI word-problem solver.

    Run without a command to start the interactive calculator.

    \b
    Examples:
        percento                            # Interactive calculator
        percento calc of 25 200             # 25% of 200
        percento calc change 100 150        # % change from 100 to 150
        percento solve "What is 15% of 40?"
        percento model openai/gpt-4o-mini   # Switch the AI model for this project
    """
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["model"] = model

    if version:
        console.print(f"Percento v{__version__}")
        ctx.exit(0)

    if init:
        path = Config.create_default_global()
        console.print(f"[green]Config ready at {path}[/green]")
        ctx.exit(0)

    if ctx.invoked_subcommand is None:
        PercentoREPL(_build_calculator(model)).run()


@cli.command()
@click.argument("mode")
@click.argument("first")
@click.argument("second")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def calc(mode: str, first: str, second: str, as_json: bool) -> None:
    """
    Compute a percentage.

    \b
    MODE is one of:
        of      FIRST% of SECOND
        what    FIRST is what % of SECOND
        change  % change from FIRST to SECOND
        adjust  apply FIRST% to SECOND

    Use "--" before negative numbers: percento calc adjust -- -15 80
    """
    try:
        calc_mode = CalculationMode.parse(mode)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="MODE")

    values: List[float] = []
    for hint, text in (("FIRST", first), ("SECOND", second)):
        try:
            values.append(parse_number(text))
        except ParseError as e:
            raise click.BadParameter(str(e), param_hint=hint)

    decimals = _load_config().merged.display.decimals
    result = compute(calc_mode, values[0], values[1])

    if result is None:
        console.print(f"[red]No result: {undefined_reason(calc_mode, values[0], values[1])}[/red]")
        sys.exit(1)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "type": result.mode.value,
                    "inputs": [result.inputs.first, result.inputs.second],
                    "result": result.value,
                    "formatted": format_value(result.mode, result.value, decimals),
                    "formula": format_formula(result.mode, result.inputs.first, result.inputs.second),
                    "chart": chart_for(result).to_dict(),
                }
            )
        )
        return

    console.print(render_result(result, decimals))


@cli.command()
@click.argument("problem", nargs=-1, required=True)
@click.pass_context
def solve(ctx: click.Context, problem: tuple) -> None:
    """Solve a percentage word problem with AI."""
    calculator = _build_calculator(ctx.obj.get("model"))
    if calculator.extractor is None:
        sys.exit(1)

    try:
        with console.status("[bold blue]Solving...[/bold blue]", spinner="dots"):
            analysis = calculator.solve(" ".join(problem))
    except ExtractionError as e:
        console.print("[red]AI couldn't process this problem. Try clarifying the numbers.[/red]")
        console.print(f"[dim]{e}[/dim]")
        sys.exit(1)

    console.print(f"[italic]{analysis.explanation}[/italic]")
    if analysis.suggested_action:
        console.print(f"[dim]{analysis.suggested_action}[/dim]")

    result = calculator.result
    if result is None:
        first, second = calculator.inputs.as_tuple()
        console.print(f"[red]No result: {undefined_reason(calculator.mode, first, second)}[/red]")
        sys.exit(1)

    console.print(render_result(result, calculator.decimals))


@cli.command()
@click.argument("name", required=False)
@click.option("--global", "global_", is_flag=True, help="Save to ~/.percento instead of the project")
def model(name: Optional[str], global_: bool) -> None:
    """Show or switch the AI model used for word problems."""
    config = _load_config()
    if not name:
        console.print(f"Current model: [bold]{config.get_model()}[/bold]")
        console.print("[dim]Switch with: percento model provider/model-name[/dim]")
        return

    try:
        ProviderFactory.create(name, config)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="NAME")

    config.set_model(name, global_=global_)
    config.save()
    console.print(f"[green]Switched to {name}[/green]")


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
