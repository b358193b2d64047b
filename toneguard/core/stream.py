"""
Audio stream abstractions.

Utterance-based processing: a capture session produces one int16 PCM
buffer, which is analysed once it is complete.
No dependency on specific audio libraries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Protocol, runtime_checkable
import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True, slots=True)
class AudioConfig:
    """Audio and feature-extraction configuration."""
    sample_rate: int = 16000
    channels: int = 1
    fft_size: int = 400
    hop_length: int = 160
    n_mel: int = 80
    chunk_seconds: int = 30

    @property
    def n_fft_bins(self) -> int:
        """Usable FFT bins after folding the mirrored half."""
        return self.fft_size // 2 + 1

    @property
    def target_frames(self) -> int:
        """Frames the acoustic model expects (3000 for 30 s at 16 kHz)."""
        return self.chunk_seconds * self.sample_rate // self.hop_length


@dataclass(frozen=True, slots=True)
class Utterance:
    """
    One captured utterance.

    Attributes:
        samples: 16-bit signed PCM, mono
        peak16: Peak absolute amplitude of samples
        rms: Root mean square of the int16 values
        sample_rate: Sample rate of samples
    """
    samples: NDArray[np.int16]
    peak16: int = 0
    rms: float = 0.0
    sample_rate: int = 16000

    @property
    def duration_ms(self) -> int:
        return int(len(self.samples) * 1000 / self.sample_rate)

    @property
    def is_empty(self) -> bool:
        return len(self.samples) == 0

    def to_float(self) -> NDArray[np.float32]:
        """Samples scaled to [-1.0, 1.0)."""
        return self.samples.astype(np.float32) / 32768.0

    @classmethod
    def from_pcm(cls, samples: NDArray[np.int16], sample_rate: int = 16000) -> Utterance:
        """Build an utterance and compute its peak and RMS."""
        pcm = np.asarray(samples, dtype=np.int16)
        if len(pcm) == 0:
            return cls(samples=pcm, sample_rate=sample_rate)
        wide = pcm.astype(np.int64)
        peak = int(np.max(np.abs(wide)))
        rms = float(np.sqrt(np.mean(wide.astype(np.float64) ** 2)))
        return cls(samples=pcm, peak16=peak, rms=rms, sample_rate=sample_rate)

    @classmethod
    def from_bytes(cls, raw: bytes, sample_rate: int = 16000) -> Utterance:
        """Create an utterance from raw PCM16 bytes."""
        return cls.from_pcm(np.frombuffer(raw, dtype=np.int16), sample_rate)


@runtime_checkable
class AudioSource(Protocol):
    """Protocol for PCM sources feeding a capture loop."""

    @property
    def config(self) -> AudioConfig:
        """Return audio configuration."""
        ...

    def chunks(self) -> Iterator[NDArray[np.int16]]:
        """Yield int16 sample buffers as they become available."""
        ...

    def close(self) -> None:
        """Close the source."""
        ...
