"""
Percento core module.

Provides the pure calculation engine, chart deriver and history log.
"""

from percento.core.chart import ChartSegment, ChartSeries, derive_chart
from percento.core.engine import CalculationMode, CalculationResult, InputPair, compute_result
from percento.core.history import HistoryEntry, HistoryLog

__all__ = [
    "CalculationMode",
    "CalculationResult",
    "ChartSegment",
    "ChartSeries",
    "HistoryEntry",
    "HistoryLog",
    "InputPair",
    "compute_result",
    "derive_chart",
]
