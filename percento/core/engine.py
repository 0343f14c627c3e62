"""
Percento Calculation Engine - Pure arithmetic for the four percentage modes.

Every function here is side-effect free. A result is either a finite
float wrapped in a CalculationResult, or None (the "undefined" state)
when an operand is missing or the mode's constraint does not hold.

Text-to-number parsing is a separate boundary step (parse_number) that
raises ParseError, so "not a number" and "no result" stay distinguishable.
"""

import logging
import math
import re
from dataclasses import astuple, dataclass
from enum import Enum
from typing import ClassVar, Dict, Optional, Tuple, Type, Union

from percento.core.errors import DomainError, ParseError

logger = logging.getLogger(__name__)

Number = Union[int, float]

_THOUSANDS_RE = re.compile(r"^[+-]?\d{1,3}(,\d{3})+(\.\d*)?$")


class CalculationMode(str, Enum):
    """The four calculation modes. Values are the wire identifiers."""

    PERCENT_OF = "BASIC_OF"
    WHAT_PERCENT = "IS_WHAT"
    PERCENT_CHANGE = "CHANGE"
    ADJUST_BY_PERCENT = "ADD_SUB"

    @classmethod
    def parse(cls, text: str) -> "CalculationMode":
        """
        Resolve a mode from its wire identifier, member name or CLI alias.

        Args:
            text: e.g. "BASIC_OF", "percent_of" or "of".

        Returns:
            The matching CalculationMode.

        Raises:
            ValueError: If the text names no mode.
        """
        if isinstance(text, cls):
            return text

        key = str(text).strip().upper().replace("-", "_")
        for mode in cls:
            if key in (mode.value, mode.name):
                return mode

        alias = _MODE_ALIASES.get(key.lower())
        if alias is not None:
            return alias

        raise ValueError(f"Unknown calculation mode: {text!r}")

    @classmethod
    def wire_values(cls) -> Tuple[str, ...]:
        return tuple(mode.value for mode in cls)


_MODE_ALIASES: Dict[str, CalculationMode] = {
    "of": CalculationMode.PERCENT_OF,
    "what": CalculationMode.WHAT_PERCENT,
    "is_what": CalculationMode.WHAT_PERCENT,
    "change": CalculationMode.PERCENT_CHANGE,
    "adjust": CalculationMode.ADJUST_BY_PERCENT,
    "add": CalculationMode.ADJUST_BY_PERCENT,
}


# ---------------------------------------------------------------------------
# Boundary parsing
# ---------------------------------------------------------------------------


def parse_number(text: Union[str, Number]) -> float:
    """
    Parse user or AI supplied text into a finite float.

    Accepts surrounding whitespace and comma thousands separators
    ("1,250.5"). Rejects blank text, NaN and infinities.

    Raises:
        ParseError: If the text is not a finite number.
    """
    if isinstance(text, bool):
        raise ParseError(str(text), "booleans are not numbers")

    if isinstance(text, (int, float)):
        try:
            value = float(text)
        except OverflowError:
            raise ParseError(str(text), "not finite") from None
    else:
        stripped = str(text).strip()
        if not stripped:
            raise ParseError(text, "empty")
        if _THOUSANDS_RE.match(stripped):
            stripped = stripped.replace(",", "")
        try:
            value = float(stripped)
        except ValueError:
            raise ParseError(text) from None

    if not math.isfinite(value):
        raise ParseError(str(text), "not finite")
    return value


def parse_optional(text: Optional[str]) -> Optional[float]:
    """Like parse_number, but blank or missing text means "not entered yet"."""
    if text is None or (isinstance(text, str) and not text.strip()):
        return None
    return parse_number(text)


def _is_finite(value: Optional[Number]) -> bool:
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


class TypedInputs:
    """
    Base for the per-mode input variants.

    Each variant names its two fields after what they mean in that mode
    and knows its own formula and constraint.
    """

    mode: ClassVar[CalculationMode]

    @property
    def first(self) -> float:
        return astuple(self)[0]

    @property
    def second(self) -> float:
        return astuple(self)[1]

    def evaluate(self) -> float:
        raise NotImplementedError


@dataclass(frozen=True)
class PercentOfInputs(TypedInputs):
    """X% of Y."""

    percentage: float
    base: float

    mode: ClassVar[CalculationMode] = CalculationMode.PERCENT_OF

    def evaluate(self) -> float:
        return (self.percentage / 100) * self.base


@dataclass(frozen=True)
class WhatPercentInputs(TypedInputs):
    """X is what % of Y."""

    part: float
    whole: float

    mode: ClassVar[CalculationMode] = CalculationMode.WHAT_PERCENT

    def evaluate(self) -> float:
        if self.whole == 0:
            raise DomainError(self.mode, "whole_nonzero", "Whole value must be non-zero")
        return (self.part / self.whole) * 100


@dataclass(frozen=True)
class PercentChangeInputs(TypedInputs):
    """Percentage change from X to Y."""

    original: float
    new: float

    mode: ClassVar[CalculationMode] = CalculationMode.PERCENT_CHANGE

    def evaluate(self) -> float:
        if self.original == 0:
            raise DomainError(
                self.mode, "original_nonzero", "Original value must be non-zero"
            )
        return ((self.new - self.original) / abs(self.original)) * 100


@dataclass(frozen=True)
class AdjustByPercentInputs(TypedInputs):
    """Apply an X% increase (or decrease, when negative) to Y."""

    percentage: float
    base: float

    mode: ClassVar[CalculationMode] = CalculationMode.ADJUST_BY_PERCENT

    def evaluate(self) -> float:
        return self.base + (self.percentage / 100) * self.base


_VARIANTS: Dict[CalculationMode, Type[TypedInputs]] = {
    cls.mode: cls
    for cls in (PercentOfInputs, WhatPercentInputs, PercentChangeInputs, AdjustByPercentInputs)
}


@dataclass(frozen=True)
class InputPair:
    """
    The two calculator fields in positional form.

    Either value may be None while the user has not entered it yet.
    """

    first: Optional[float] = None
    second: Optional[float] = None

    @classmethod
    def from_text(cls, first: Optional[str], second: Optional[str]) -> "InputPair":
        """
        Build a pair from raw field text.

        Raises:
            ParseError: If a non-blank field is not a finite number.
        """
        return cls(parse_optional(first), parse_optional(second))

    @property
    def is_complete(self) -> bool:
        return _is_finite(self.first) and _is_finite(self.second)

    def typed(self, mode: CalculationMode) -> TypedInputs:
        """
        Promote to the variant for a mode.

        Raises:
            ValueError: If either value is missing or not finite.
        """
        if not self.is_complete:
            raise ValueError("Both inputs must be finite numbers")
        variant = _VARIANTS[CalculationMode.parse(mode)]
        return variant(float(self.first), float(self.second))

    def as_tuple(self) -> Tuple[Optional[float], Optional[float]]:
        return (self.first, self.second)


# ---------------------------------------------------------------------------
# Computation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CalculationResult:
    """A defined result, tagged with the mode and inputs that produced it."""

    mode: CalculationMode
    inputs: InputPair
    value: float

    @property
    def typed_inputs(self) -> TypedInputs:
        return self.inputs.typed(self.mode)


def evaluate(
    mode: Union[CalculationMode, str],
    first: Optional[Number],
    second: Optional[Number],
) -> float:
    """
    Apply a mode's formula, raising instead of returning "undefined".

    Raises:
        ValueError: If an operand is missing or not finite.
        DomainError: If the mode's constraint is violated.
    """
    return InputPair(first, second).typed(CalculationMode.parse(mode)).evaluate()


def compute(
    mode: Union[CalculationMode, str],
    first: Optional[Number],
    second: Optional[Number],
) -> Optional[CalculationResult]:
    """
    Compute a result, or None when it is undefined.

    Undefined means an operand is missing or non-finite, the mode's
    constraint does not hold, or the arithmetic overflowed. No rounding
    is applied; the sign of the result is preserved.

    Args:
        mode: The calculation mode (enum member or wire identifier).
        first: First operand; meaning depends on the mode.
        second: Second operand; meaning depends on the mode.

    Returns:
        CalculationResult, or None.
    """
    mode = CalculationMode.parse(mode)
    pair = InputPair(first, second)
    if not pair.is_complete:
        return None

    try:
        value = pair.typed(mode).evaluate()
    except DomainError as e:
        logger.debug("Undefined %s result: %s", mode.value, e)
        return None

    if not math.isfinite(value):
        logger.debug("Undefined %s result: overflow for %r", mode.value, pair.as_tuple())
        return None

    return CalculationResult(mode=mode, inputs=InputPair(float(first), float(second)), value=value)


compute_result = compute
