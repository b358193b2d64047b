"""Tests for stage latency tracking."""

import time

from toneguard.benchmark.metrics import LatencyTracker


def test_measure_records_stage():
    tracker = LatencyTracker()
    with tracker.measure("mel"):
        time.sleep(0.002)

    assert tracker.last("mel") >= 1.0
    assert tracker.stages == ["mel"]
    assert len(tracker.history("mel")) == 1


def test_unknown_stage():
    tracker = LatencyTracker()
    assert tracker.last("infer") == 0.0
    assert tracker.history("infer") == []
    assert not tracker.is_over_budget("infer")


def test_over_budget_uses_last_run():
    tracker = LatencyTracker(budget_ms=5.0)
    tracker.record("decode", 9.0)
    assert tracker.is_over_budget("decode")

    tracker.record("decode", 1.0)
    assert not tracker.is_over_budget("decode")


def test_history_is_bounded():
    tracker = LatencyTracker(history_size=5)
    for i in range(12):
        tracker.record("pcm", float(i))
    assert tracker.history("pcm") == [7.0, 8.0, 9.0, 10.0, 11.0]
