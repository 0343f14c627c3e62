"""
Percento CLI Completer - prompt_toolkit completion for the REPL.

Provides dropdown suggestions for slash commands and mode names.
"""

from typing import Iterable, List, Tuple

from prompt_toolkit.completion import Completer, Completion

from percento.core.engine import CalculationMode
from percento.core.formatting import mode_title

# (command, description) shown in the completion dropdown
SLASH_COMMANDS: List[Tuple[str, str]] = [
    ("/help", "Show help"),
    ("/?", "Show help"),
    ("/mode", "Switch calculation mode"),
    ("/modes", "List calculation modes"),
    ("/ask", "Solve a word problem with AI"),
    ("/save", "Save current calculation to history"),
    ("/history", "Recent calculations"),
    ("/replay", "Restore a calculation from history"),
    ("/clear", "Clear history"),
    ("/reset", "Clear the inputs"),
    ("/exit", "Exit Percento"),
    ("/quit", "Exit Percento"),
    ("/q", "Exit Percento"),
]

MODE_CHOICES: List[Tuple[str, str]] = [
    ("of", mode_title(CalculationMode.PERCENT_OF)),
    ("what", mode_title(CalculationMode.WHAT_PERCENT)),
    ("change", mode_title(CalculationMode.PERCENT_CHANGE)),
    ("adjust", mode_title(CalculationMode.ADJUST_BY_PERCENT)),
]


class PercentoCompleter(Completer):
    """Completer for the Percento REPL.

    - Slash commands with descriptions when typing "/"
    - Mode names when typing "/mode "
    """

    def get_completions(self, document, complete_event) -> Iterable[Completion]:
        text = document.text_before_cursor

        if not text.startswith("/"):
            return

        if text.startswith("/mode ") and not text.startswith("/modes"):
            prefix = text[len("/mode "):].lower()
            for name, title in MODE_CHOICES:
                if name.startswith(prefix):
                    yield Completion(name, start_position=-len(prefix), display_meta=title)
            return

        for cmd, description in SLASH_COMMANDS:
            if cmd.startswith(text):
                yield Completion(
                    cmd,
                    start_position=-len(text),
                    display_meta=description,
                )
