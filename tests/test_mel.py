"""Tests for the log-mel spectrogram extractor."""

import numpy as np
import pytest

from toneguard.core.stream import AudioConfig
from toneguard.features.mel import LOG_FLOOR, SpectrogramExtractor
from toneguard.features.vocab import FilterBank

from conftest import make_filters


def reference_log_mel(samples: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """Straightforward per-frame computation using numpy's FFT."""
    fft_size, hop = 400, 160
    n_frames = len(samples) // hop
    window = 0.5 * (1 - np.cos(2 * np.pi * np.arange(fft_size) / fft_size))
    out = np.zeros((weights.shape[0], n_frames))
    for f in range(n_frames):
        frame = np.zeros(fft_size)
        chunk = samples[f * hop:f * hop + fft_size]
        frame[:len(chunk)] = chunk
        power = np.abs(np.fft.fft(frame * window)) ** 2
        for k in range(1, fft_size // 2):
            power[k] += power[fft_size - k]
        mel = weights.astype(np.float64) @ power[:fft_size // 2 + 1]
        out[:, f] = np.log10(np.maximum(mel, 1e-10))
    out = np.maximum(out, out.max() - 8.0)
    return (out + 4.0) / 4.0


@pytest.fixture
def extractor():
    return SpectrogramExtractor(FilterBank(make_filters()))


@pytest.fixture
def speech_like():
    rng = np.random.default_rng(42)
    t = np.arange(16000) / 16000
    tone = 0.3 * np.sin(2 * np.pi * 220 * t) * (0.5 + 0.5 * np.sin(2 * np.pi * 3 * t))
    return (tone + 0.01 * rng.standard_normal(len(t))).astype(np.float32)


class TestShape:
    def test_frame_count_is_floor(self, extractor):
        mel = extractor.compute(np.zeros(1000, dtype=np.float32))
        assert mel.data.shape == (80, 6)

    def test_thirty_seconds_is_3000_frames(self, extractor):
        mel = extractor.compute(np.zeros(480_000, dtype=np.float32), workers=4)
        assert mel.n_frames == 3000
        assert mel.n_mel == 80

    def test_sample_count_limits_frames(self, extractor, speech_like):
        mel = extractor.compute(speech_like, sample_count=1600)
        assert mel.n_frames == 10

    def test_fewer_samples_than_hop(self, extractor):
        mel = extractor.compute(np.zeros(100, dtype=np.float32))
        assert mel.data.shape == (80, 0)

    def test_sample_count_out_of_range(self, extractor):
        with pytest.raises(ValueError):
            extractor.compute(np.zeros(100, dtype=np.float32), sample_count=200)

    def test_filter_width_must_match_fft(self):
        with pytest.raises(ValueError):
            SpectrogramExtractor(FilterBank(make_filters(n_fft=200)))

    def test_output_dtype(self, extractor, speech_like):
        assert extractor.compute(speech_like).data.dtype == np.float32


class TestValues:
    def test_matches_reference(self, extractor, speech_like):
        weights = make_filters()
        mel = extractor.compute(speech_like)
        np.testing.assert_allclose(mel.data, reference_log_mel(speech_like, weights), atol=1e-5)

    def test_normalized_range(self, extractor, speech_like):
        data = extractor.compute(speech_like).data
        top = data.max()
        # (v + 4) / 4 over [max - 8, max] spans exactly 2.0
        assert data.min() >= top - 2.0 - 1e-6
        assert np.isfinite(data).all()

    def test_silence_is_log_floor(self, extractor):
        data = extractor.compute(np.zeros(16000, dtype=np.float32)).data
        assert np.isfinite(data).all()
        np.testing.assert_allclose(data, (LOG_FLOOR + 4.0) / 4.0)
        np.testing.assert_allclose(data, -1.5)

    def test_worker_count_does_not_change_result(self, extractor, speech_like):
        single = extractor.compute(speech_like, workers=1).data
        for workers in (2, 3, 4, 7):
            np.testing.assert_allclose(
                extractor.compute(speech_like, workers=workers).data, single, atol=1e-6,
            )

    def test_more_workers_than_frames(self, extractor):
        mel = extractor.compute(np.zeros(480, dtype=np.float32), workers=16)
        assert mel.n_frames == 3
        assert mel.is_complete

    def test_deterministic(self, extractor, speech_like):
        a = extractor.compute(speech_like, workers=4).data
        b = extractor.compute(speech_like, workers=4).data
        np.testing.assert_array_equal(a, b)


class TestWorkerFailure:
    def test_failed_worker_is_soft(self, extractor, speech_like, monkeypatch):
        original = SpectrogramExtractor._run_worker

        def flaky(self, padded, out, worker, workers):
            if worker == 1:
                raise RuntimeError("boom")
            return original(self, padded, out, worker, workers)

        monkeypatch.setattr(SpectrogramExtractor, "_run_worker", flaky)

        mel = extractor.compute(speech_like, workers=2)

        assert mel.failed_workers == (1,)
        assert not mel.is_complete
        # odd frames kept the floor, which normalization clamps to max - 8
        floor = mel.data.max() - 2.0
        np.testing.assert_allclose(mel.data[:, 1::2], floor, atol=1e-5)
        assert np.isfinite(mel.data).all()

    def test_custom_config(self):
        config = AudioConfig(fft_size=8, hop_length=4)
        extractor = SpectrogramExtractor(FilterBank(make_filters(n_mel=3, n_fft=5)), config)
        mel = extractor.compute(np.ones(16, dtype=np.float32))
        assert mel.data.shape == (3, 4)
