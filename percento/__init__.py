"""
Percento - Percentage calculator with history and AI word-problem solving.

Four calculation modes:
- X% of Y
- X is what % of Y
- Percentage change from X to Y
- Apply X% increase/decrease to Y

Architecture:
- Pure calculation engine and chart deriver (no side effects)
- Bounded in-memory history, newest first
- Optional LLM extractor that turns a word problem into a mode and two inputs
- Every AI answer is validated before it reaches the engine
"""

__version__ = "1.0.0"
__author__ = "Percento Team"
__license__ = "Apache-2.0"

import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

from percento.core.chart import ChartSegment, ChartSeries, derive_chart
from percento.core.engine import (
    CalculationMode,
    CalculationResult,
    InputPair,
    compute_result,
    parse_number,
)
from percento.core.errors import (
    DomainError,
    ExtractionError,
    NotFoundError,
    ParseError,
    PercentoError,
    ValidationError,
)
from percento.core.history import HistoryEntry, HistoryLog
from percento.extraction import AIAnalysis, extract_from_text

__all__ = [
    "AIAnalysis",
    "CalculationMode",
    "CalculationResult",
    "ChartSegment",
    "ChartSeries",
    "DomainError",
    "ExtractionError",
    "HistoryEntry",
    "HistoryLog",
    "InputPair",
    "NotFoundError",
    "ParseError",
    "PercentoError",
    "ValidationError",
    "compute_result",
    "derive_chart",
    "extract_from_text",
    "parse_number",
    "__version__",
]
