"""
Percento Calculator - Interactive calculator state.

Holds what a calculator screen holds: the active mode, the two input
fields as typed, the recent history and an optional AI extractor.
Everything derived (result, chart, formula) is recomputed on access.
"""

import logging
from typing import List, Optional, Tuple

from percento.core.chart import ChartSeries, chart_for
from percento.core.engine import CalculationMode, CalculationResult, InputPair, compute, parse_optional
from percento.core.errors import ExtractionError, NotFoundError, ParseError
from percento.core.formatting import format_formula, format_number, format_value
from percento.core.history import HistoryEntry, HistoryLog
from percento.extraction.extractor import AIAnalysis, WordProblemExtractor
from percento.providers.base import ProviderFactory
from percento.validation.config import Config

logger = logging.getLogger(__name__)


class Calculator:
    """
    Single-owner calculator controller.

    Operations are expected to be issued sequentially. Only solve() may
    block (it calls out to an LLM), and at most one solve() may be in
    flight at a time.

    Example:
        >>> calc = Calculator()
        >>> calc.set_inputs("25", "200")
        >>> calc.display_value
        '50'
        >>> entry = calc.save_to_history()
        >>> entry.label
        '25% of 200'
    """

    def __init__(
        self,
        history: Optional[HistoryLog] = None,
        extractor: Optional[WordProblemExtractor] = None,
        decimals: int = 2,
    ):
        self.mode = CalculationMode.PERCENT_OF
        self.history = history if history is not None else HistoryLog()
        self.extractor = extractor
        self.decimals = decimals
        self._raw: List[str] = ["", ""]
        self._extracting = False

    @classmethod
    def from_config(cls, config: Config, model: Optional[str] = None) -> "Calculator":
        """
        Build a calculator from configuration.

        Args:
            config: Loaded Percento configuration.
            model: Optional model override for word-problem extraction.

        Raises:
            ValueError: If the extraction model names an unknown or disabled provider.
        """
        settings = config.merged
        provider = ProviderFactory.create(model or settings.ai.model, config)
        return cls(
            history=HistoryLog(capacity=settings.history.capacity),
            extractor=WordProblemExtractor(provider),
            decimals=settings.display.decimals,
        )

    # ── Inputs ────────────────────────────────────────────────────────────

    @property
    def raw_inputs(self) -> Tuple[str, str]:
        return (self._raw[0], self._raw[1])

    def select_mode(self, mode: CalculationMode) -> None:
        """Switch mode. Inputs are cleared since their meaning changes."""
        self.mode = CalculationMode.parse(mode)
        self.reset_inputs()

    def set_input(self, index: int, text: str) -> None:
        if index not in (0, 1):
            raise IndexError(f"Input index must be 0 or 1, got {index}")
        self._raw[index] = text

    def set_inputs(self, first: str, second: str) -> None:
        self._raw = [first, second]

    def reset_inputs(self) -> None:
        self._raw = ["", ""]

    @property
    def inputs(self) -> InputPair:
        """The parsed inputs. Text that is not a number counts as not entered."""
        return InputPair(self._parse_field(self._raw[0]), self._parse_field(self._raw[1]))

    @staticmethod
    def _parse_field(text: str) -> Optional[float]:
        try:
            return parse_optional(text)
        except ParseError as e:
            logger.debug("Ignoring input: %s", e)
            return None

    # ── Derived values ────────────────────────────────────────────────────

    @property
    def result(self) -> Optional[CalculationResult]:
        first, second = self.inputs.as_tuple()
        return compute(self.mode, first, second)

    @property
    def chart(self) -> Optional[ChartSeries]:
        result = self.result
        return chart_for(result) if result is not None else None

    @property
    def formula(self) -> Optional[str]:
        result = self.result
        if result is None:
            return None
        return format_formula(result.mode, result.inputs.first, result.inputs.second)

    @property
    def display_value(self) -> Optional[str]:
        result = self.result
        if result is None:
            return None
        return format_value(result.mode, result.value, self.decimals)

    # ── History ───────────────────────────────────────────────────────────

    def save_to_history(self) -> Optional[HistoryEntry]:
        """Commit the current calculation. Does nothing when there is no result."""
        result = self.result
        if result is None:
            return None
        return self.history.record(result, raw_inputs=self.raw_inputs)

    def clear_history(self) -> None:
        self.history.clear()

    def replay(self, entry_id: str) -> bool:
        """
        Restore mode and inputs from a history entry.

        Returns:
            False if the entry is no longer in the log.
        """
        try:
            mode, inputs = self.history.select(entry_id)
        except NotFoundError as e:
            logger.debug("Replay skipped: %s", e)
            return False

        self.mode = mode
        self.set_inputs(format_number(inputs.first), format_number(inputs.second))
        return True

    # ── AI ────────────────────────────────────────────────────────────────

    def solve(self, problem: str) -> AIAnalysis:
        """
        Fill mode and inputs from a word problem.

        State is changed only after the extractor returns a fully
        validated analysis; on failure the calculator is untouched.

        Raises:
            ExtractionError: If extraction fails or is not configured
                (ValidationError for unusable answers).
            RuntimeError: If another solve() is still in flight.
        """
        if self.extractor is None:
            raise ExtractionError("AI extraction is not configured")
        if self._extracting:
            raise RuntimeError("An AI extraction is already in progress")

        self._extracting = True
        try:
            analysis = self.extractor.extract(problem)
        finally:
            self._extracting = False

        self.mode = analysis.mode
        self.set_inputs(format_number(analysis.inputs.first), format_number(analysis.inputs.second))
        return analysis
