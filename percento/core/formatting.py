"""Display helpers. Rounding happens here only, never in stored values."""

from typing import Dict, Optional, Tuple

from percento.core.engine import CalculationMode, Number

PERCENT_MODES = (CalculationMode.WHAT_PERCENT, CalculationMode.PERCENT_CHANGE)

_TITLES: Dict[CalculationMode, str] = {
    CalculationMode.PERCENT_OF: "What is X% of Y?",
    CalculationMode.WHAT_PERCENT: "X is what % of Y?",
    CalculationMode.PERCENT_CHANGE: "% Change",
    CalculationMode.ADJUST_BY_PERCENT: "Add % to Value",
}

_INPUT_LABELS: Dict[CalculationMode, Tuple[str, str]] = {
    CalculationMode.PERCENT_OF: ("Percentage (%)", "Total Value"),
    CalculationMode.WHAT_PERCENT: ("Part Value", "Total Value"),
    CalculationMode.PERCENT_CHANGE: ("Original Value", "New Value"),
    CalculationMode.ADJUST_BY_PERCENT: ("Percent (%)", "Value"),
}


def mode_title(mode: CalculationMode) -> str:
    """Heading for a mode, e.g. "What is X% of Y?"."""
    return _TITLES[CalculationMode.parse(mode)]


def input_labels(mode: CalculationMode) -> Tuple[str, str]:
    """Labels for the first and second input fields of a mode."""
    return _INPUT_LABELS[CalculationMode.parse(mode)]


def format_number(value: Optional[Number]) -> str:
    """Render an input value verbatim: 25.0 -> "25", 12.5 -> "12.5"."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repr(value) if isinstance(value, float) else str(value)


def format_value(mode: CalculationMode, value: float, decimals: int = 2) -> str:
    """
    Format a result for display.

    Uses grouping separators and at most `decimals` fraction digits with
    trailing zeros dropped. Adds a percent sign for modes whose result
    is itself a percentage.

    Example:
        >>> format_value(CalculationMode.ADJUST_BY_PERCENT, 1100.0)
        '1,100'
        >>> format_value(CalculationMode.WHAT_PERCENT, 33.33333)
        '33.33%'
    """
    text = f"{value:,.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    if CalculationMode.parse(mode) in PERCENT_MODES:
        text += "%"
    return text


def format_formula(mode: CalculationMode, first: Number, second: Number) -> str:
    """The human-readable formula for a calculation, using the raw inputs."""
    a, b = format_number(first), format_number(second)
    mode = CalculationMode.parse(mode)

    if mode is CalculationMode.PERCENT_OF:
        return f"({a} / 100) * {b}"
    if mode is CalculationMode.WHAT_PERCENT:
        return f"({a} / {b}) * 100"
    if mode is CalculationMode.PERCENT_CHANGE:
        return f"(({b} - {a}) / |{a}|) * 100"
    return f"{b} + (({a} / 100) * {b})"
