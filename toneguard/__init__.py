"""
toneguard - On-device conversation tone signal

toneguard turns a captured utterance into a calm / caution / aggressive
signal. It transcribes, scores and classifies. It does not decide what
to do about it.
"""

from toneguard.core.packet import SignalState, ToxicityScore, ToneReport
from toneguard.core.stream import AudioConfig, Utterance
from toneguard.core.pipeline import ToneGuard, PipelineConfig
from toneguard.core.errors import (
    ToneGuardError,
    FormatError,
    ResourceIOError,
    InferenceError,
    CaptureInterrupted,
)

__version__ = "0.1.0"
__all__ = [
    # Core data structures
    "SignalState",
    "ToxicityScore",
    "ToneReport",
    "AudioConfig",
    "Utterance",
    # Pipeline
    "ToneGuard",
    "PipelineConfig",
    # Errors
    "ToneGuardError",
    "FormatError",
    "ResourceIOError",
    "InferenceError",
    "CaptureInterrupted",
]
