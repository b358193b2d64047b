"""
Capture loop and listening session.

Capture and analysis are separate concurrency domains: a capture thread
reads PCM until its stop flag is set, then hands the finished utterance
to a single analysis worker.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import Future, ThreadPoolExecutor
from threading import Event, Thread
from typing import TYPE_CHECKING, Callable
import numpy as np
from numpy.typing import NDArray

from toneguard.core.packet import ToneReport
from toneguard.core.stream import AudioSource, Utterance

if TYPE_CHECKING:
    from toneguard.core.pipeline import ToneGuard

logger = logging.getLogger(__name__)


class CaptureLoop:
    """
    Accumulates PCM from a source until stopped or the source ends.

    The stop flag is a threading.Event, checked after every buffer.
    Peak and sum of squares are tracked incrementally while reading.
    """

    def __init__(self) -> None:
        self._stop_event = Event()

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Request the loop to finish after the current buffer."""
        self._stop_event.set()

    def run(self, source: AudioSource) -> Utterance:
        collected: list[NDArray[np.int16]] = []
        peak = 0
        sum_sq = 0.0
        count = 0

        chunks = source.chunks()
        try:
            for chunk in chunks:
                if len(chunk) > 0:
                    collected.append(np.asarray(chunk, dtype=np.int16))
                    wide = collected[-1].astype(np.float64)
                    peak = max(peak, int(np.max(np.abs(wide))))
                    sum_sq += float(np.dot(wide, wide))
                    count += len(chunk)

                if self._stop_event.is_set():
                    break
        finally:
            close = getattr(chunks, "close", None)
            if close is not None:
                close()
            source.close()

        sample_rate = source.config.sample_rate
        if not collected:
            return Utterance(samples=np.zeros(0, dtype=np.int16), sample_rate=sample_rate)

        logger.debug(f"Captured {count} samples, peak={peak}")
        return Utterance(
            samples=np.concatenate(collected),
            peak16=peak,
            rms=math.sqrt(sum_sq / count),
            sample_rate=sample_rate,
        )


class ListeningSession:
    """
    Start/stop listening, analysing each captured utterance.

    Usage:
        session = ListeningSession(guard, MicrophoneSource)
        session.start()
        ...
        session.stop()
        report = session.wait()
    """

    def __init__(
        self,
        guard: ToneGuard,
        source_factory: Callable[[], AudioSource],
    ) -> None:
        self._guard = guard
        self._source_factory = source_factory
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="analysis")
        self._thread: Thread | None = None
        self._loop: CaptureLoop | None = None
        self._source: AudioSource | None = None
        self._pending: Future[ToneReport] | None = None
        self._last_report: ToneReport | None = None

    @property
    def is_listening(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def last_report(self) -> ToneReport | None:
        return self._last_report

    def start(self) -> bool:
        """Begin capturing. Returns False if already listening."""
        if self.is_listening:
            return False

        self._loop = CaptureLoop()
        self._source = self._source_factory()
        self._pending = None
        self._thread = Thread(
            target=self._capture,
            args=(self._loop, self._source),
            name="capture",
            daemon=True,
        )
        self._thread.start()
        logger.info("Listening...")
        return True

    def _capture(self, loop: CaptureLoop, source: AudioSource) -> None:
        logger.debug("Audio loop started")
        try:
            utterance = loop.run(source)
        except Exception as e:
            logger.error(f"Audio loop error: {e}", exc_info=True)
            return

        if utterance.is_empty:
            logger.warning("No audio captured in session")
            return

        self._pending = self._executor.submit(self._analyze, utterance)
        logger.debug("Audio loop finished")

    def _analyze(self, utterance: Utterance) -> ToneReport:
        report = self._guard.analyze(utterance)
        self._last_report = report
        return report

    def stop(self) -> None:
        """Signal the capture loop and close the source."""
        if self._loop is not None:
            self._loop.stop()
        if self._source is not None:
            self._source.close()
        logger.info("Stopped")

    def wait(self, timeout: float | None = None) -> ToneReport | None:
        """Wait for capture and analysis to finish; return the report, if any."""
        if self._thread is not None:
            self._thread.join(timeout)
        pending = self._pending
        if pending is None:
            return None
        return pending.result(timeout)

    def shutdown(self) -> None:
        """Stop listening and stop the analysis worker."""
        self.stop()
        self.wait()
        self._executor.shutdown(wait=True)
