"""Tests for the history log."""

from datetime import timezone

import pytest

from percento.core.engine import CalculationMode, InputPair, compute
from percento.core.errors import NotFoundError
from percento.core.history import DEFAULT_CAPACITY, HistoryEntry, HistoryLog, build_label


def make_entry(first=25, second=200, mode=CalculationMode.PERCENT_OF) -> HistoryEntry:
    return HistoryEntry.create(compute(mode, first, second))


class TestHistoryEntry:
    def test_create(self):
        """create stamps id, time and label."""
        entry = make_entry()

        assert entry.mode is CalculationMode.PERCENT_OF
        assert entry.inputs == (25.0, 200.0)
        assert entry.result == 50
        assert entry.label == "25% of 200"
        assert entry.timestamp.tzinfo is timezone.utc
        assert len(entry.id) == 32

    def test_ids_are_unique(self):
        """Every entry gets its own id."""
        assert make_entry().id != make_entry().id

    @pytest.mark.parametrize(
        "mode, label",
        [
            (CalculationMode.PERCENT_OF, "25% of 200"),
            (CalculationMode.WHAT_PERCENT, "25 is what % of 200"),
            (CalculationMode.PERCENT_CHANGE, "Change from 25 to 200"),
            (CalculationMode.ADJUST_BY_PERCENT, "25% added to 200"),
        ],
    )
    def test_labels(self, mode, label):
        """Each mode has its label template."""
        assert make_entry(mode=mode).label == label

    def test_label_uses_raw_text_verbatim(self):
        """Labels keep the text as typed."""
        result = compute(CalculationMode.PERCENT_OF, 12.5, 1000)
        entry = HistoryEntry.create(result, raw_inputs=(" 12.50", "1,000 "))

        assert entry.label == "12.50% of 1,000"
        assert entry.inputs == (12.5, 1000.0)

    def test_label_uses_inputs_not_result(self):
        """Labels show inputs, not the result."""
        assert "50" not in make_entry().label

    def test_fractional_inputs(self):
        """Fractional inputs keep their digits."""
        assert make_entry(first=2.5, second=10).label == "2.5% of 10"

    def test_is_immutable(self):
        """Entries are frozen."""
        entry = make_entry()
        with pytest.raises(AttributeError):
            entry.label = "changed"

    def test_to_dict(self):
        """to_dict uses the wire mode id."""
        data = make_entry(mode=CalculationMode.PERCENT_CHANGE, first=100, second=150).to_dict()

        assert data["type"] == "CHANGE"
        assert data["inputs"] == [100.0, 150.0]
        assert data["result"] == 50
        assert data["label"] == "Change from 100 to 150"

    def test_build_label(self):
        """build_label formats numbers."""
        assert build_label("IS_WHAT", "3", "4") == "3 is what % of 4"


class TestHistoryLog:
    @pytest.fixture
    def log(self):
        return HistoryLog()

    def test_default_capacity(self, log):
        """Log holds ten entries by default."""
        assert log.capacity == DEFAULT_CAPACITY == 10
        assert len(log) == 0

    def test_newest_first(self, log):
        """Entries come newest first."""
        first = make_entry(1, 100)
        second = make_entry(2, 100)
        log.append(first)
        log.append(second)

        assert log.entries() == [second, first]

    def test_never_exceeds_capacity(self, log):
        """Length never exceeds capacity."""
        for i in range(25):
            log.append(make_entry(i, 100))
            assert len(log) <= 10

        assert len(log) == 10

    def test_eleventh_append_evicts_only_the_oldest(self, log):
        """Overflow drops only the oldest entry."""
        entries = [make_entry(i, 100) for i in range(10)]
        for entry in entries:
            log.append(entry)
        before = log.entries()

        newest = make_entry(99, 100)
        log.append(newest)
        after = log.entries()

        assert after[0] is newest
        assert after[1:] == before[:9]
        assert entries[0] not in after
        assert log.get(entries[0].id) is None

    def test_custom_capacity(self):
        """Capacity is configurable."""
        log = HistoryLog(capacity=2)
        for i in range(3):
            log.append(make_entry(i, 100))

        assert [entry.inputs[0] for entry in log] == [2.0, 1.0]

    @pytest.mark.parametrize("capacity", [0, -1])
    def test_rejects_bad_capacity(self, capacity):
        """Capacity below one is rejected."""
        with pytest.raises(ValueError):
            HistoryLog(capacity=capacity)

    def test_record(self, log):
        """record builds and appends an entry."""
        entry = log.record(compute(CalculationMode.WHAT_PERCENT, 50, 200), raw_inputs=("50", "200"))

        assert log.entries() == [entry]
        assert entry.label == "50 is what % of 200"

    def test_select(self, log):
        """select returns mode and inputs."""
        entry = make_entry(mode=CalculationMode.PERCENT_CHANGE, first=80, second=60)
        log.append(entry)

        mode, inputs = log.select(entry.id)

        assert mode is CalculationMode.PERCENT_CHANGE
        assert inputs == InputPair(80.0, 60.0)

    def test_select_unknown(self, log):
        """Unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError) as exc_info:
            log.select("missing")
        assert exc_info.value.entry_id == "missing"

    def test_select_evicted(self):
        """Evicted entries are gone."""
        log = HistoryLog(capacity=1)
        old = make_entry(1, 100)
        log.append(old)
        log.append(make_entry(2, 100))

        with pytest.raises(NotFoundError):
            log.select(old.id)

    def test_clear_then_select_always_fails(self, log):
        """Nothing survives clear()."""
        ids = [log.record(compute(CalculationMode.PERCENT_OF, i, 100)).id for i in range(5)]
        log.clear()

        assert len(log) == 0
        for entry_id in ids * 2:
            with pytest.raises(NotFoundError):
                log.select(entry_id)

    def test_iteration_is_a_snapshot(self, log):
        """Iterating tolerates appends."""
        log.append(make_entry())
        for _ in log:
            log.append(make_entry())

        assert len(log) == 2
