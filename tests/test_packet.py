"""Tests for ToneReport, ToxicityScore and Utterance."""

import numpy as np
import pytest

from toneguard.core.packet import SignalState, ToneReport, ToxicityScore
from toneguard.core.stream import AudioConfig, Utterance


class TestToxicityScore:
    def test_default_values(self):
        score = ToxicityScore()
        assert score.lexical == 0.0
        assert score.prosodic == 0.0
        assert score.combined == 0.0

    def test_clamping(self):
        score = ToxicityScore(lexical=1.5, prosodic=-0.5, combined=2.0)
        assert score.lexical == 1.0
        assert score.prosodic == 0.0
        assert score.combined == 1.0

    def test_fuse_weights(self):
        score = ToxicityScore.fuse(0.5, 1.0)
        assert score.combined == pytest.approx(0.65)

    def test_fuse_clamps_inputs(self):
        score = ToxicityScore.fuse(3.0, 3.0)
        assert score.lexical == 1.0
        assert score.combined == pytest.approx(1.0)


class TestToneReport:
    def test_default_values(self):
        report = ToneReport()
        assert report.transcript == ""
        assert report.signal == SignalState.CALM
        assert report.combined == 0.0

    def test_score_shortcuts(self):
        report = ToneReport(score=ToxicityScore.fuse(0.4, 0.0))
        assert report.lexical == pytest.approx(0.4)
        assert report.prosodic == 0.0
        assert report.combined == pytest.approx(0.28)

    def test_to_dict(self):
        report = ToneReport(
            transcript="hi",
            score=ToxicityScore.fuse(0.0, 0.5),
            signal=SignalState.CAUTION,
            timings_ms={"mel": 1.0},
        )
        d = report.to_dict()
        assert d["transcript"] == "hi"
        assert d["signal"] == "caution"
        assert d["combined"] == pytest.approx(0.15)
        assert d["timings_ms"] == {"mel": 1.0}


class TestUtterance:
    def test_peak_and_rms(self):
        utterance = Utterance.from_pcm(np.array([3, -4, 0, 0], dtype=np.int16))
        assert utterance.peak16 == 4
        assert utterance.rms == pytest.approx(2.5)

    def test_full_scale_negative_peak(self):
        utterance = Utterance.from_pcm(np.array([-32768, 10], dtype=np.int16))
        assert utterance.peak16 == 32768

    def test_empty(self):
        utterance = Utterance.from_pcm(np.zeros(0, dtype=np.int16))
        assert utterance.is_empty
        assert utterance.peak16 == 0
        assert utterance.rms == 0.0

    def test_from_bytes(self):
        raw = np.array([1000, -2000], dtype=np.int16).tobytes()
        utterance = Utterance.from_bytes(raw)
        assert utterance.samples.tolist() == [1000, -2000]
        assert utterance.peak16 == 2000

    def test_to_float(self):
        utterance = Utterance.from_pcm(np.array([-32768, 16384], dtype=np.int16))
        np.testing.assert_allclose(utterance.to_float(), [-1.0, 0.5])

    def test_duration(self):
        utterance = Utterance.from_pcm(np.zeros(8000, dtype=np.int16))
        assert utterance.duration_ms == 500


class TestAudioConfig:
    def test_defaults(self):
        config = AudioConfig()
        assert config.n_fft_bins == 201
        assert config.target_frames == 3000
