"""
Percento History Log - Bounded recent-calculation history.

Entries are immutable and ordered newest first. When the log is full,
appending drops the oldest entry. Nothing is persisted; the log lives
for the lifetime of the process.
"""

import logging
import uuid
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Deque, Dict, Iterator, List, Optional, Tuple

from percento.core.engine import CalculationMode, CalculationResult, InputPair
from percento.core.errors import NotFoundError
from percento.core.formatting import format_number

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 10

_LABEL_TEMPLATES: Dict[CalculationMode, str] = {
    CalculationMode.PERCENT_OF: "{first}% of {second}",
    CalculationMode.WHAT_PERCENT: "{first} is what % of {second}",
    CalculationMode.PERCENT_CHANGE: "Change from {first} to {second}",
    CalculationMode.ADJUST_BY_PERCENT: "{first}% added to {second}",
}


def build_label(mode: CalculationMode, first: str, second: str) -> str:
    """Fill the mode's label template with the inputs as entered."""
    return _LABEL_TEMPLATES[CalculationMode.parse(mode)].format(first=first, second=second)


@dataclass(frozen=True)
class HistoryEntry:
    """
    A committed calculation.

    The label is computed once at creation from the inputs (not the
    result) and never recomputed.
    """

    id: str
    timestamp: datetime
    mode: CalculationMode
    inputs: Tuple[float, float]
    result: float
    label: str

    @classmethod
    def create(
        cls,
        result: CalculationResult,
        raw_inputs: Optional[Tuple[str, str]] = None,
    ) -> "HistoryEntry":
        """
        Create an entry from a defined result.

        Args:
            result: The calculation to record.
            raw_inputs: The field text as typed, used verbatim in the label.
                Falls back to the numeric inputs when not given.

        Returns:
            A new HistoryEntry with a fresh id and timestamp.
        """
        first, second = result.inputs.first, result.inputs.second
        if raw_inputs is not None:
            first_text, second_text = (text.strip() for text in raw_inputs)
        else:
            first_text, second_text = format_number(first), format_number(second)

        return cls(
            id=uuid.uuid4().hex,
            timestamp=datetime.now(timezone.utc),
            mode=result.mode,
            inputs=(first, second),
            result=result.value,
            label=build_label(result.mode, first_text, second_text),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert the entry to a dictionary for display or JSON output."""
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "type": self.mode.value,
            "inputs": list(self.inputs),
            "result": self.result,
            "label": self.label,
        }


class HistoryLog:
    """
    Fixed-capacity history, newest first.

    Backed by a deque with maxlen, so pushing to the front evicts
    from the back in O(1).

    Example:
        >>> log = HistoryLog()
        >>> entry = log.record(compute(CalculationMode.PERCENT_OF, 25, 200))
        >>> log.select(entry.id)
        (<CalculationMode.PERCENT_OF: 'BASIC_OF'>, InputPair(first=25.0, second=200.0))
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"History capacity must be at least 1, got {capacity}")
        self._entries: Deque[HistoryEntry] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen

    def append(self, entry: HistoryEntry) -> None:
        """Insert an entry at the front, evicting the oldest if full."""
        if len(self._entries) == self.capacity:
            logger.debug("History full, evicting %s", self._entries[-1].id)
        self._entries.appendleft(entry)

    def record(
        self,
        result: CalculationResult,
        raw_inputs: Optional[Tuple[str, str]] = None,
    ) -> HistoryEntry:
        """Create an entry for a result and append it."""
        entry = HistoryEntry.create(result, raw_inputs)
        self.append(entry)
        return entry

    def clear(self) -> None:
        """Remove every entry."""
        self._entries.clear()

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        """Return the entry with this id, or None if it is no longer held."""
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def select(self, entry_id: str) -> Tuple[CalculationMode, InputPair]:
        """
        Look up an entry for replay.

        Returns:
            The entry's mode and original inputs.

        Raises:
            NotFoundError: If the entry was evicted or cleared.
        """
        entry = self.get(entry_id)
        if entry is None:
            raise NotFoundError(entry_id)
        return entry.mode, InputPair(*entry.inputs)

    def entries(self) -> List[HistoryEntry]:
        """Snapshot of the entries, newest first."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(list(self._entries))
