"""Synthetic PCM sources for testing."""

from __future__ import annotations

from typing import Iterator
import numpy as np
from numpy.typing import NDArray

from toneguard.core.stream import AudioConfig, AudioSource


class ArraySource(AudioSource):
    """
    PCM source from a numpy array.

    Float input in [-1.0, 1.0] is scaled to int16; integer input is used as-is.
    """

    def __init__(
        self,
        data: np.ndarray,
        chunk_size: int = 1600,
        config: AudioConfig | None = None,
    ) -> None:
        self._config = config or AudioConfig()
        data = np.asarray(data)
        if np.issubdtype(data.dtype, np.floating):
            data = np.clip(np.round(data * 32767.0), -32768, 32767)
        self._data: NDArray[np.int16] = data.astype(np.int16)
        self._chunk_size = chunk_size
        self._position = 0
        self._closed = False

    @property
    def config(self) -> AudioConfig:
        return self._config

    def chunks(self) -> Iterator[NDArray[np.int16]]:
        while self._position < len(self._data) and not self._closed:
            chunk = self._data[self._position:self._position + self._chunk_size]
            self._position += len(chunk)
            yield chunk

    def close(self) -> None:
        self._closed = True

    def reset(self) -> None:
        """Reset to beginning."""
        self._position = 0
        self._closed = False


class SineSource(ArraySource):
    """Sine tone at a given amplitude (fraction of full scale)."""

    def __init__(
        self,
        frequency_hz: float = 440.0,
        duration_ms: int = 1000,
        amplitude: float = 0.5,
        chunk_size: int = 1600,
        config: AudioConfig | None = None,
    ) -> None:
        config = config or AudioConfig()
        total_samples = int(config.sample_rate * duration_ms / 1000)
        t = np.arange(total_samples) / config.sample_rate
        data = amplitude * np.sin(2 * np.pi * frequency_hz * t)
        super().__init__(data, chunk_size, config)


class SilenceSource(ArraySource):
    """Digital silence."""

    def __init__(
        self,
        duration_ms: int = 1000,
        chunk_size: int = 1600,
        config: AudioConfig | None = None,
    ) -> None:
        config = config or AudioConfig()
        total_samples = int(config.sample_rate * duration_ms / 1000)
        super().__init__(np.zeros(total_samples, dtype=np.int16), chunk_size, config)
