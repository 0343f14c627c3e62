"""Error kinds raised by the calculation core and its collaborators."""

from typing import Any, Optional


class PercentoError(Exception):
    """Base class for all Percento errors."""


class ParseError(PercentoError, ValueError):
    """Raised when raw text does not denote a finite number."""

    def __init__(self, text: str, reason: str = "not a number"):
        self.text = text
        self.reason = reason
        super().__init__(f"Cannot parse {text!r}: {reason}")


class DomainError(PercentoError, ValueError):
    """
    Raised when both operands are valid numbers but the mode's
    constraint does not hold (zero whole, zero original value).
    """

    def __init__(self, mode: Any, constraint: str, message: Optional[str] = None):
        self.mode = mode
        self.constraint = constraint
        super().__init__(message or f"{mode}: constraint '{constraint}' violated")


class ExtractionError(PercentoError):
    """Raised when the AI collaborator fails to produce a usable response."""


class ValidationError(ExtractionError):
    """Raised when an AI response is well-formed but semantically invalid."""


class NotFoundError(PercentoError, KeyError):
    """Raised when a history entry is no longer in the log."""

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(entry_id)

    def __str__(self) -> str:
        return f"History entry not found: {self.entry_id}"
