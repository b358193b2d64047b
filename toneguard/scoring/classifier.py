"""
Signal classifier.

Memoryless: each utterance is classified from its combined score alone.
"""

from __future__ import annotations

from dataclasses import dataclass

from toneguard.core.packet import SignalState


@dataclass(frozen=True, slots=True)
class SignalThresholds:
    """Lower bounds (inclusive) of the CAUTION and AGGRESSIVE bands."""
    caution: float = 0.20
    aggressive: float = 0.55

    def __post_init__(self) -> None:
        if not (0.0 <= self.caution <= self.aggressive <= 1.0):
            raise ValueError(
                f"Thresholds must satisfy 0 <= caution <= aggressive <= 1, "
                f"got caution={self.caution}, aggressive={self.aggressive}"
            )


class SignalClassifier:
    """Maps a combined toxicity score to CALM / CAUTION / AGGRESSIVE."""

    def __init__(self, thresholds: SignalThresholds | None = None) -> None:
        self._thresholds = thresholds or SignalThresholds()

    @property
    def thresholds(self) -> SignalThresholds:
        return self._thresholds

    def classify(self, combined: float) -> SignalState:
        if combined < self._thresholds.caution:
            return SignalState.CALM
        if combined < self._thresholds.aggressive:
            return SignalState.CAUTION
        return SignalState.AGGRESSIVE


def classify(combined: float) -> SignalState:
    """Classify with the default thresholds."""
    return _DEFAULT.classify(combined)


_DEFAULT = SignalClassifier()
