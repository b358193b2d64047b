"""
Log-mel spectrogram extraction.

Hann-windowed frames, radix-2 Cooley-Tukey FFT with a direct DFT for odd
lengths, mel projection, log10 compression and global normalization.
The output feeds the acoustic model unchanged, so every step is fixed.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import lru_cache
import numpy as np
from numpy.typing import ArrayLike, NDArray

from toneguard.core.errors import CaptureInterrupted
from toneguard.core.stream import AudioConfig
from toneguard.features.vocab import FilterBank

logger = logging.getLogger(__name__)

MEL_FLOOR = 1e-10
LOG_FLOOR = float(np.log10(MEL_FLOOR))
DYNAMIC_RANGE = 8.0


@lru_cache(maxsize=None)
def _twiddles(n: int) -> NDArray[np.complex128]:
    k = np.arange(n // 2)
    w = np.exp(-2j * np.pi * k / n)
    w.setflags(write=False)
    return w


@lru_cache(maxsize=None)
def _dft_matrix(n: int) -> NDArray[np.complex128]:
    k = np.arange(n)
    m = np.exp(-2j * np.pi * np.outer(k, k) / n)
    m.setflags(write=False)
    return m


def _fft(x: NDArray) -> NDArray[np.complex128]:
    """Recursive FFT over the last axis. Odd lengths fall back to the DFT."""
    n = x.shape[-1]
    if n <= 1:
        return x.astype(np.complex128)
    if n % 2 == 1:
        return _dft(x)

    even = _fft(x[..., 0::2])
    odd = _fft(x[..., 1::2]) * _twiddles(n)
    return np.concatenate([even + odd, even - odd], axis=-1)


def _dft(x: NDArray) -> NDArray[np.complex128]:
    n = x.shape[-1]
    if n == 0:
        return x.astype(np.complex128)
    return x.astype(np.complex128) @ _dft_matrix(n)


def interleave(spectrum: NDArray[np.complex128]) -> NDArray[np.float64]:
    """Pack complex bins as ``[re0, im0, re1, im1, ...]`` along the last axis."""
    n = spectrum.shape[-1]
    packed = np.empty(spectrum.shape[:-1] + (2 * n,), dtype=np.float64)
    packed[..., 0::2] = spectrum.real
    packed[..., 1::2] = spectrum.imag
    return packed


def fft(values: ArrayLike) -> NDArray[np.float64]:
    """
    Forward FFT of real input, packed as interleaved re/im pairs.

    Works on the last axis, so a ``(frames, n)`` batch returns
    ``(frames, 2n)``.
    """
    return interleave(_fft(np.asarray(values, dtype=np.float64)))


def dft(values: ArrayLike) -> NDArray[np.float64]:
    """Direct O(N^2) DFT with the same packing as fft()."""
    return interleave(_dft(np.asarray(values, dtype=np.float64)))


def hann_window(size: int) -> NDArray[np.float64]:
    """Periodic Hann window: ``0.5 * (1 - cos(2*pi*i/size))``."""
    i = np.arange(size)
    return 0.5 * (1.0 - np.cos(2.0 * np.pi * i / size))


@dataclass(slots=True)
class Spectrogram:
    """
    Normalized log-mel matrix, ``n_mel x n_frames``.

    ``failed_workers`` lists worker partitions whose frames were left at
    the log floor because the worker raised.
    """
    data: NDArray[np.float32]
    failed_workers: tuple[int, ...] = ()

    @property
    def n_mel(self) -> int:
        return int(self.data.shape[0])

    @property
    def n_frames(self) -> int:
        return int(self.data.shape[1])

    @property
    def is_complete(self) -> bool:
        return not self.failed_workers


class SpectrogramExtractor:
    """
    Computes the log-mel spectrogram the acoustic model was trained on.

    Frames are independent: worker ``w`` of ``workers`` handles frames
    ``w, w + workers, ...`` and writes only those columns. All workers
    are joined before the normalization pass reads the full matrix.

    Usage:
        extractor = SpectrogramExtractor(filters)
        mel = extractor.compute(samples, workers=4)
        mel.data.shape  # (80, len(samples) // 160)
    """

    def __init__(self, filters: FilterBank, config: AudioConfig | None = None) -> None:
        self._config = config or AudioConfig()
        if filters.n_fft != self._config.n_fft_bins:
            raise ValueError(
                f"Filter bank has {filters.n_fft} bins, "
                f"fft_size={self._config.fft_size} needs {self._config.n_fft_bins}"
            )
        self._filters = filters
        self._projection = filters.weights.astype(np.float64).T
        self._window = hann_window(self._config.fft_size)

    @property
    def config(self) -> AudioConfig:
        return self._config

    @property
    def n_mel(self) -> int:
        return self._filters.n_mel

    def compute(
        self,
        samples: ArrayLike,
        sample_count: int | None = None,
        workers: int = 1,
    ) -> Spectrogram:
        """
        Compute the normalized log-mel spectrogram.

        Args:
            samples: Float samples in [-1.0, 1.0]
            sample_count: Number of samples to use (default: all)
            workers: Parallel frame workers

        Returns:
            Spectrogram with ``sample_count // hop_length`` frames
        """
        signal = np.asarray(samples, dtype=np.float32)
        if sample_count is None:
            sample_count = len(signal)
        if sample_count < 0 or sample_count > len(signal):
            raise ValueError(f"sample_count={sample_count} outside 0..{len(signal)}")

        fft_size = self._config.fft_size
        hop = self._config.hop_length
        n_frames = sample_count // hop

        log_mel = np.full((self.n_mel, n_frames), LOG_FLOOR, dtype=np.float32)
        if n_frames == 0:
            return Spectrogram(log_mel)

        padded = np.zeros((n_frames - 1) * hop + fft_size, dtype=np.float64)
        used = min(sample_count, len(padded))
        padded[:used] = signal[:used]

        workers = max(1, min(workers, n_frames))
        failed: list[int] = []

        if workers == 1:
            try:
                self._run_worker(padded, log_mel, 0, 1)
            except Exception as e:
                failed.append(self._report_failure(0, 1, e))
        else:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="mel") as pool:
                futures = [
                    pool.submit(self._run_worker, padded, log_mel, w, workers)
                    for w in range(workers)
                ]
                for w, future in enumerate(futures):
                    try:
                        future.result()
                    except Exception as e:
                        failed.append(self._report_failure(w, workers, e))

        self._normalize(log_mel)
        return Spectrogram(log_mel, failed_workers=tuple(failed))

    def _run_worker(
        self,
        padded: NDArray[np.float64],
        out: NDArray[np.float32],
        worker: int,
        workers: int,
    ) -> None:
        fft_size = self._config.fft_size
        hop = self._config.hop_length
        half = fft_size // 2

        frame_ids = np.arange(worker, out.shape[1], workers)
        # fancy indexing copies, so each worker windows its own buffer
        frames = padded[frame_ids[:, None] * hop + np.arange(fft_size)]
        frames *= self._window

        spectrum = _fft(frames)
        power = spectrum.real ** 2 + spectrum.imag ** 2
        power[:, 1:half] += power[:, :half:-1]

        mel = power[:, :half + 1] @ self._projection
        np.maximum(mel, MEL_FLOOR, out=mel)
        out[:, frame_ids] = np.log10(mel).T.astype(np.float32)

    def _report_failure(self, worker: int, workers: int, error: Exception) -> int:
        interrupted = CaptureInterrupted(worker, workers, error)
        logger.warning(f"{interrupted}; frames keep the log floor")
        return worker

    @staticmethod
    def _normalize(log_mel: NDArray[np.float32]) -> None:
        """Clamp to ``[max - 8, max]`` and map ``v -> (v + 4) / 4`` in place."""
        floor = float(log_mel.max()) - DYNAMIC_RANGE
        np.maximum(log_mel, floor, out=log_mel)
        log_mel += 4.0
        log_mel /= 4.0
