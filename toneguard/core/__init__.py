"""Core data structures and pipeline."""

from toneguard.core.packet import SignalState, ToxicityScore, ToneReport
from toneguard.core.stream import AudioConfig, Utterance, AudioSource
from toneguard.core.pipeline import ToneGuard, PipelineConfig

__all__ = [
    "SignalState",
    "ToxicityScore",
    "ToneReport",
    "AudioConfig",
    "Utterance",
    "AudioSource",
    "ToneGuard",
    "PipelineConfig",
]
