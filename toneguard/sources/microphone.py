"""
Real-time microphone PCM source.

Requires: pip install sounddevice
"""

from __future__ import annotations

import logging
import time
from typing import Iterator
from collections import deque
from threading import Event, Lock
import numpy as np
from numpy.typing import NDArray

from toneguard.core.stream import AudioConfig, AudioSource

logger = logging.getLogger(__name__)


class MicrophoneSource(AudioSource):
    """
    16-bit mono microphone input using sounddevice.

    Usage:
        source = MicrophoneSource()
        utterance = CaptureLoop().run(source)

    Blocks are queued by the audio callback and drained by chunks().
    If the consumer falls behind by more than ``buffer_size`` blocks the
    oldest blocks are dropped.
    """

    def __init__(
        self,
        block_ms: int = 100,
        device: int | str | None = None,
        buffer_size: int = 600,
        config: AudioConfig | None = None,
    ) -> None:
        """
        Initialize microphone source.

        Args:
            block_ms: Audio block duration in ms
            device: Audio device index or name (None = default)
            buffer_size: Internal block queue size
            config: Audio configuration (16 kHz mono by default)
        """
        self._config = config or AudioConfig()
        self._device = device
        self._blocksize = int(self._config.sample_rate * block_ms / 1000)

        self._blocks: deque[NDArray[np.int16]] = deque(maxlen=buffer_size)
        self._stop_event = Event()
        self._stream = None
        self._stream_lock = Lock()

    @property
    def config(self) -> AudioConfig:
        return self._config

    def _audio_callback(self, indata, frames, time_info, status):
        """Called by sounddevice for each audio block."""
        if status:
            logger.warning(f"Audio status: {status}")
        self._blocks.append(indata[:, 0].copy())

    def _start_stream(self):
        try:
            import sounddevice as sd
        except ImportError:
            raise ImportError(
                "sounddevice is required for microphone input.\n"
                "Install with: pip install sounddevice"
            )

        stream = sd.InputStream(
            samplerate=self._config.sample_rate,
            blocksize=self._blocksize,
            channels=self._config.channels,
            dtype="int16",
            device=self._device,
            callback=self._audio_callback,
        )
        stream.start()
        with self._stream_lock:
            self._stream = stream
        logger.info(f"Microphone stream started ({self._config.sample_rate} Hz, device={self._device})")

    def chunks(self) -> Iterator[NDArray[np.int16]]:
        """
        Yield PCM blocks as they arrive.

        Blocking generator; ends when close() is called.
        """
        self._stop_event.clear()
        self._start_stream()

        try:
            while not self._stop_event.is_set():
                if self._blocks:
                    yield self._blocks.popleft()
                else:
                    time.sleep(0.001)
        finally:
            self.close()

    def close(self) -> None:
        """Stop recording and clean up."""
        self._stop_event.set()

        with self._stream_lock:
            stream, self._stream = self._stream, None
        if stream is not None:
            stream.stop()
            stream.close()


def list_audio_devices() -> None:
    """Print available audio devices."""
    try:
        import sounddevice as sd
        print(sd.query_devices())
    except ImportError:
        print("sounddevice not installed. Run: pip install sounddevice")
