"""Latency measurement tools."""

from toneguard.benchmark.metrics import LatencyTracker

__all__ = [
    "LatencyTracker",
]
