"""
ToneReport - The per-utterance output of toneguard.

A report is emitted once per analysed utterance and then discarded.
It is not persisted or rendered here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


class SignalState(str, Enum):
    """Tri-state conversation tone."""
    CALM = "calm"
    CAUTION = "caution"
    AGGRESSIVE = "aggressive"


@dataclass(frozen=True, slots=True)
class ToxicityScore:
    """
    Fused toxicity estimate.

    - lexical: content cues from the transcript (0.0-1.0)
    - prosodic: loudness cues from the raw audio (0.0-1.0)
    - combined: 0.7 * lexical + 0.3 * prosodic, clamped
    """
    lexical: float = 0.0
    prosodic: float = 0.0
    combined: float = 0.0

    def __post_init__(self) -> None:
        for name in ("lexical", "prosodic", "combined"):
            value = getattr(self, name)
            if not (0.0 <= value <= 1.0):
                object.__setattr__(self, name, clamp01(value))

    @classmethod
    def fuse(cls, lexical: float, prosodic: float) -> ToxicityScore:
        lexical = clamp01(lexical)
        prosodic = clamp01(prosodic)
        return cls(
            lexical=lexical,
            prosodic=prosodic,
            combined=clamp01(0.7 * lexical + 0.3 * prosodic),
        )


@dataclass(frozen=True, slots=True)
class ToneReport:
    """
    Everything the reporting boundary receives for one utterance.

    Downstream consumers (UI state stores, loggers) decide what to show.
    """
    transcript: str = ""
    score: ToxicityScore = field(default_factory=ToxicityScore)
    signal: SignalState = SignalState.CALM
    peak16: int = 0
    rms: float = 0.0
    timings_ms: dict[str, float] = field(default_factory=dict)

    @property
    def lexical(self) -> float:
        return self.score.lexical

    @property
    def prosodic(self) -> float:
        return self.score.prosodic

    @property
    def combined(self) -> float:
        return self.score.combined

    def to_dict(self) -> dict:
        return {
            "transcript": self.transcript,
            "lexical": self.lexical,
            "prosodic": self.prosodic,
            "combined": self.combined,
            "signal": self.signal.value,
            "peak16": self.peak16,
            "rms": self.rms,
            "timings_ms": dict(self.timings_ms),
        }
