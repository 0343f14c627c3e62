"""
Percento Chart Deriver - Chart-ready series from a calculation result.

Series are never stored; they are recomputed from the result each time.
Clamping here is a display concern only and never feeds back into the
result itself, so a "125%" result still shows as 125% while its pie has
an empty remainder.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from percento.core.engine import CalculationMode, CalculationResult, Number

PIE = "pie"
BAR = "bar"
NONE = "none"


@dataclass(frozen=True)
class ChartSegment:
    """A labeled value in a chart series."""

    label: str
    value: float


@dataclass(frozen=True)
class ChartSeries:
    """
    Ordered segments for one chart.

    kind is "pie" (value + remainder), "bar" (old/new) or "none" when the
    consumer should render the literal before/after values instead.
    increase is only set for bar series.
    """

    kind: str
    segments: Tuple[ChartSegment, ...] = field(default_factory=tuple)
    increase: Optional[bool] = None

    @property
    def is_empty(self) -> bool:
        return not self.segments

    def as_pairs(self) -> List[Tuple[str, float]]:
        return [(s.label, s.value) for s in self.segments]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "segments": [{"label": s.label, "value": s.value} for s in self.segments],
            "increase": self.increase,
        }


def derive_chart(
    mode: CalculationMode,
    first: Number,
    second: Number,
    result: float,
) -> ChartSeries:
    """
    Derive the chart series for a defined result.

    Args:
        mode: The calculation mode.
        first: First input as entered.
        second: Second input as entered.
        result: The defined result value for these inputs.

    Returns:
        ChartSeries; empty for ADJUST_BY_PERCENT.
    """
    mode = CalculationMode.parse(mode)

    if mode is CalculationMode.PERCENT_OF:
        return ChartSeries(
            kind=PIE,
            segments=(
                ChartSegment("Result", max(0.0, result)),
                ChartSegment("Remaining", max(0.0, second - result)),
            ),
        )

    if mode is CalculationMode.WHAT_PERCENT:
        return ChartSeries(
            kind=PIE,
            segments=(
                ChartSegment("Portion", _clamp_percent(result)),
                ChartSegment("Rest", _clamp_percent(100 - result)),
            ),
        )

    if mode is CalculationMode.PERCENT_CHANGE:
        return ChartSeries(
            kind=BAR,
            segments=(
                ChartSegment("Old", float(first)),
                ChartSegment("New", float(second)),
            ),
            increase=result >= 0,
        )

    return ChartSeries(kind=NONE)


def chart_for(result: CalculationResult) -> ChartSeries:
    """Derive the chart series straight from a CalculationResult."""
    return derive_chart(result.mode, result.inputs.first, result.inputs.second, result.value)


def _clamp_percent(value: float) -> float:
    return min(100.0, max(0.0, value))
