"""PCM sources and capture."""

from toneguard.sources.synthetic import ArraySource, SineSource, SilenceSource
from toneguard.sources.microphone import MicrophoneSource
from toneguard.sources.capture import CaptureLoop, ListeningSession

__all__ = [
    "ArraySource",
    "SineSource",
    "SilenceSource",
    "MicrophoneSource",
    "CaptureLoop",
    "ListeningSession",
]
