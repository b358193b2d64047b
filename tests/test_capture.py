"""Tests for the capture loop, synthetic sources and listening session."""

import threading
import time

import numpy as np
import pytest

from toneguard import PipelineConfig, SignalState, ToneGuard, Utterance
from toneguard.core.stream import AudioConfig
from toneguard.sources.capture import CaptureLoop, ListeningSession
from toneguard.sources.synthetic import ArraySource, SilenceSource, SineSource

from conftest import FakeModel


class EndlessSource:
    """Yields constant blocks until closed; counts blocks handed out."""

    def __init__(self, value: int = 1000, block: int = 160) -> None:
        self.config = AudioConfig()
        self._block = np.full(block, value, dtype=np.int16)
        self._closed = threading.Event()
        self.blocks = 0
        self.on_block = None

    def chunks(self):
        while not self._closed.is_set():
            self.blocks += 1
            if self.on_block is not None:
                self.on_block(self.blocks)
            yield self._block
            time.sleep(0.001)

    def close(self) -> None:
        self._closed.set()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()


class TestSyntheticSources:
    def test_array_source_chunks(self):
        source = ArraySource(np.arange(5000, dtype=np.int16), chunk_size=1600)
        sizes = [len(c) for c in source.chunks()]
        assert sizes == [1600, 1600, 1600, 200]

    def test_float_scaling(self):
        source = ArraySource(np.array([1.0, -1.0, 2.0, 0.5]))
        chunk = next(source.chunks())
        assert chunk.tolist() == [32767, -32767, 32767, 16384]

    def test_reset(self):
        source = ArraySource(np.ones(10, dtype=np.int16), chunk_size=4)
        list(source.chunks())
        source.reset()
        assert sum(len(c) for c in source.chunks()) == 10

    def test_sine_duration(self):
        source = SineSource(duration_ms=250, amplitude=0.5)
        data = np.concatenate(list(source.chunks()))
        assert len(data) == 4000
        assert 16000 <= np.abs(data.astype(np.int32)).max() <= 16384


class TestCaptureLoop:
    def test_collects_whole_source(self):
        pcm = (np.sin(np.arange(8000) / 7.0) * 9000).astype(np.int16)
        utterance = CaptureLoop().run(ArraySource(pcm, chunk_size=700))
        expected = Utterance.from_pcm(pcm)

        np.testing.assert_array_equal(utterance.samples, pcm)
        assert utterance.peak16 == expected.peak16
        assert utterance.rms == pytest.approx(expected.rms)

    def test_negative_full_scale_peak(self):
        pcm = np.array([0, -32768, 5], dtype=np.int16)
        assert CaptureLoop().run(ArraySource(pcm)).peak16 == 32768

    def test_empty_source(self):
        utterance = CaptureLoop().run(SilenceSource(duration_ms=0))
        assert utterance.is_empty
        assert utterance.peak16 == 0
        assert utterance.rms == 0.0

    def test_stop_flag_ends_capture(self):
        loop = CaptureLoop()
        source = EndlessSource()
        source.on_block = lambda n: loop.stop() if n == 3 else None

        utterance = loop.run(source)

        assert loop.stop_requested
        assert len(utterance.samples) == 3 * 160
        assert source.closed

    def test_source_closed_on_error(self):
        source = EndlessSource()

        def explode(n):
            raise RuntimeError("device lost")

        source.on_block = explode
        with pytest.raises(RuntimeError):
            CaptureLoop().run(source)
        assert source.closed


@pytest.fixture
def guard(model_path, vocab_path):
    model = FakeModel(tokens=[50257, 0, 2, 50256])
    guard = ToneGuard(PipelineConfig(mel_workers=1), model_loader=lambda path: model)
    assert guard.init(model_path, vocab_path)
    yield guard
    guard.release()


class TestListeningSession:
    def test_source_end_produces_report(self, guard):
        pcm = np.zeros(16000, dtype=np.int16)
        session = ListeningSession(guard, lambda: ArraySource(pcm))

        assert session.start()
        report = session.wait(timeout=30)
        session.shutdown()

        assert report is not None
        assert report.transcript == "Hello stupid"
        assert report.signal == SignalState.CAUTION
        assert session.last_report is report

    def test_stop_while_listening(self, guard):
        source = EndlessSource(value=2000)
        started = threading.Event()
        source.on_block = lambda n: started.set()
        session = ListeningSession(guard, lambda: source)

        session.start()
        assert started.wait(5)
        assert not session.start()
        session.stop()
        report = session.wait(timeout=30)
        session.shutdown()

        assert source.closed
        assert not session.is_listening
        assert report is not None
        assert report.peak16 == 2000

    def test_empty_capture_gives_no_report(self, guard):
        session = ListeningSession(guard, lambda: SilenceSource(duration_ms=0))

        session.start()
        assert session.wait(timeout=5) is None
        session.shutdown()

        assert session.last_report is None
