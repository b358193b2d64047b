"""
Latency measurement.

Per-stage timing for the utterance pipeline (pcm, mel, infer, decode),
checked against a per-stage budget.
"""

from __future__ import annotations

import time
from collections import deque


class LatencyTracker:
    """
    Stage latency history with a budget.

    Usage:
        tracker = LatencyTracker(budget_ms=2000.0)

        with tracker.measure("mel"):
            extractor.compute(samples)

        if tracker.is_over_budget("mel"):
            ...
    """

    def __init__(self, budget_ms: float = 2000.0, history_size: int = 100) -> None:
        self._budget_ms = budget_ms
        self._history_size = history_size
        self._history: dict[str, deque[float]] = {}

    @property
    def budget_ms(self) -> float:
        return self._budget_ms

    @property
    def stages(self) -> list[str]:
        """Stages measured so far, in first-seen order."""
        return list(self._history)

    def measure(self, name: str) -> _StageTimer:
        """Context manager timing one run of a stage."""
        return _StageTimer(self, name)

    def record(self, name: str, duration_ms: float) -> None:
        history = self._history.get(name)
        if history is None:
            history = self._history[name] = deque(maxlen=self._history_size)
        history.append(duration_ms)

    def last(self, name: str) -> float:
        """Most recent duration of a stage in ms (0.0 if never measured)."""
        history = self._history.get(name)
        return history[-1] if history else 0.0

    def history(self, name: str) -> list[float]:
        return list(self._history.get(name, ()))

    def is_over_budget(self, name: str) -> bool:
        """True if the last run of ``name`` exceeded the budget."""
        history = self._history.get(name)
        return bool(history) and history[-1] > self._budget_ms


class _StageTimer:
    def __init__(self, tracker: LatencyTracker, name: str) -> None:
        self._tracker = tracker
        self._name = name
        self._start_ns = 0

    def __enter__(self) -> _StageTimer:
        self._start_ns = time.perf_counter_ns()
        return self

    def __exit__(self, *args) -> None:
        elapsed_ms = (time.perf_counter_ns() - self._start_ns) / 1_000_000
        self._tracker.record(self._name, elapsed_ms)
