"""Unit tests for query latency tracking."""

import threading

import pytest

from chatbridge.utils import latency_tracker
from chatbridge.utils.latency_tracker import (
    OPERATION_BUDGETS,
    LatencyRecord,
    LatencyTracker,
    get_tracker,
    track_latency,
    tracked,
)


class FakePerfCounter:
    """perf_counter that advances by a fixed step per call."""

    def __init__(self, step_seconds: float) -> None:
        self.value = 0.0
        self.step = step_seconds

    def __call__(self) -> float:
        self.value += self.step
        return self.value


class TestLatencyRecord:
    """Tests for LatencyRecord."""

    def test_over_budget(self):
        assert LatencyRecord("poll", 600.0, 500.0, 0.0).over_budget is True
        assert LatencyRecord("poll", 400.0, 500.0, 0.0).over_budget is False

    def test_no_budget_never_over(self):
        assert LatencyRecord("custom", 1e9, None, 0.0).over_budget is False


class TestLatencyTracker:
    """Tests for LatencyTracker."""

    def test_records_operation(self):
        tracker = LatencyTracker()
        with tracker.track("message_lookup", guid="m1"):
            pass
        (entry,) = tracker.records()
        assert entry.operation == "message_lookup"
        assert entry.budget_ms == OPERATION_BUDGETS["message_lookup"]
        assert entry.metadata == {"guid": "m1"}

    def test_slow_operation_flagged(self, monkeypatch, caplog):
        """Operations over budget are kept and warned about."""
        monkeypatch.setattr(latency_tracker.time, "perf_counter", FakePerfCounter(1.0))
        tracker = LatencyTracker()
        with tracker.track("entity_count"):
            pass
        assert [r.operation for r in tracker.over_budget()] == ["entity_count"]
        assert "entity_count took 1000.0ms, over its 50ms budget" in caplog.text

    def test_custom_budgets(self):
        tracker = LatencyTracker(budgets={"poll": 0.0})
        tracker.record("poll", 0.5)
        assert len(tracker.over_budget()) == 1

    def test_records_on_exception(self):
        tracker = LatencyTracker()
        with pytest.raises(RuntimeError), tracker.track("poll"):
            raise RuntimeError("boom")
        assert len(tracker.records()) == 1

    def test_bounded(self):
        tracker = LatencyTracker(maxlen=2)
        for _ in range(5):
            tracker.record("poll", 1.0)
        assert len(tracker.records()) == 2

    def test_filter_by_operation(self):
        tracker = LatencyTracker()
        tracker.record("poll", 1.0)
        tracker.record("entity_count", 1.0)
        assert [r.operation for r in tracker.records("poll")] == ["poll"]

    def test_summary(self):
        tracker = LatencyTracker()
        assert tracker.summary() == {}
        tracker.record("poll", 10.0)
        tracker.record("poll", 30.0)
        tracker.record("poll", 900.0)
        summary = tracker.summary()["poll"]
        assert summary["calls"] == 3
        assert summary["mean_ms"] == pytest.approx(313.333, rel=1e-3)
        assert summary["max_ms"] == 900.0
        assert summary["over_budget"] == 1

    def test_clear(self):
        tracker = LatencyTracker()
        tracker.record("poll", 1.0)
        tracker.clear()
        assert tracker.records() == []

    def test_concurrent_writers(self):
        tracker = LatencyTracker()

        def worker():
            for _ in range(250):
                tracker.record("poll", 1.0)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(tracker.records()) == 1000


class TestGlobalTracker:
    """Tests for the module-level helpers."""

    def test_track_latency(self):
        with track_latency("attachment_lookup", guid="a1"):
            pass
        assert get_tracker().records()[-1].operation == "attachment_lookup"

    def test_tracked_decorator(self):
        @tracked("last_message")
        def lookup(value):
            return value * 2

        assert lookup(21) == 42
        assert lookup.__name__ == "lookup"
        assert get_tracker().records()[-1].operation == "last_message"
