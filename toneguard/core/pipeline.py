"""
Core processing pipeline.

ToneGuard owns the acoustic model, filter bank and vocabulary, and turns
one utterance into a ToneReport:

    PCM -> spectrogram -> tokens -> text -> scores -> signal
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable
import numpy as np
from numpy.typing import NDArray

from toneguard.benchmark.metrics import LatencyTracker
from toneguard.core.errors import FormatError, ResourceIOError
from toneguard.core.packet import ToneReport
from toneguard.core.stream import AudioConfig, Utterance
from toneguard.features.mel import SpectrogramExtractor
from toneguard.features.vocab import load_filters_and_vocab
from toneguard.inference.adapter import InferenceAdapter
from toneguard.inference.backends import AcousticModel, load_model
from toneguard.inference.decoder import TokenDecoder
from toneguard.scoring.classifier import SignalClassifier, SignalThresholds
from toneguard.scoring.toxicity import Lexicon, ToxicityScorer

logger = logging.getLogger(__name__)

ModelLoader = Callable[[str], AcousticModel]


def default_workers() -> int:
    """CPU count clamped to 1..4."""
    return max(1, min(4, os.cpu_count() or 1))


@dataclass
class PipelineConfig:
    """Pipeline configuration."""
    audio: AudioConfig = field(default_factory=AudioConfig)
    multilingual: bool = False
    mel_workers: int | None = None
    model_threads: int | None = None
    lexicon: Lexicon = field(default_factory=Lexicon)
    thresholds: SignalThresholds = field(default_factory=SignalThresholds)
    latency_budget_ms: float = 2000.0


class _Loaded:
    """Everything created by a successful init(), released together."""

    def __init__(
        self,
        model: AcousticModel,
        extractor: SpectrogramExtractor,
        adapter: InferenceAdapter,
        decoder: TokenDecoder,
    ) -> None:
        self.model = model
        self.extractor = extractor
        self.adapter = adapter
        self.decoder = decoder


class ToneGuard:
    """
    Explicit owned context for the speech pipeline.

    init(), process() and release() share one lock, so only one inference
    (or one init/release) is in flight at a time. Scoring is stateless and
    runs outside the lock.

    Usage:
        guard = ToneGuard()
        if guard.init("whisper-tiny-en.tflite", "filters_vocab_en.bin"):
            guard.on_report(lambda r: print(r.signal))
            report = guard.analyze(Utterance.from_pcm(pcm))
        guard.release()
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        model_loader: ModelLoader | None = None,
    ) -> None:
        self._config = config or PipelineConfig()
        self._model_loader = model_loader or (
            lambda path: load_model(path, self._config.model_threads)
        )
        self._lock = threading.RLock()
        self._loaded: _Loaded | None = None
        self._scorer = ToxicityScorer(self._config.lexicon)
        self._classifier = SignalClassifier(self._config.thresholds)
        self._tracker = LatencyTracker(budget_ms=self._config.latency_budget_ms)
        self._callbacks: list[Callable[[ToneReport], None]] = []

    @property
    def config(self) -> PipelineConfig:
        return self._config

    @property
    def is_initialized(self) -> bool:
        with self._lock:
            return self._loaded is not None

    @property
    def tracker(self) -> LatencyTracker:
        return self._tracker

    @property
    def scorer(self) -> ToxicityScorer:
        return self._scorer

    @property
    def classifier(self) -> SignalClassifier:
        return self._classifier

    def on_report(self, callback: Callable[[ToneReport], None]) -> ToneGuard:
        """Register a callback for emitted reports. Returns self for chaining."""
        self._callbacks.append(callback)
        return self

    def init(self, model_path: str | Path, vocab_path: str | Path) -> bool:
        """
        Load the acoustic model, filter bank and vocabulary.

        Any previous state is released first. On failure the context is
        left uninitialized and False is returned.
        """
        with self._lock:
            self._release_locked()

            audio = self._config.audio
            model: AcousticModel | None = None
            try:
                model = self._model_loader(str(model_path))
                filters, vocab = load_filters_and_vocab(vocab_path, self._config.multilingual)
                extractor = SpectrogramExtractor(filters, audio)
            except (FormatError, ResourceIOError) as e:
                logger.error(f"Failed to load filters/vocab from {vocab_path}: {e}")
                self._close_model(model)
                return False
            except Exception as e:
                logger.error(f"Error initializing speech model {model_path}: {e}", exc_info=True)
                self._close_model(model)
                return False

            self._loaded = _Loaded(
                model=model,
                extractor=extractor,
                adapter=InferenceAdapter(model, audio),
                decoder=TokenDecoder(vocab),
            )
            logger.info(f"Speech model ready: {model_path} ({vocab.n_base} vocabulary words)")
            return True

    def release(self) -> None:
        """Close the model and drop filters/vocab. Safe to call repeatedly."""
        with self._lock:
            self._release_locked()

    def _release_locked(self) -> None:
        if self._loaded is None:
            return
        logger.info("Releasing speech model")
        self._close_model(self._loaded.model)
        self._loaded = None

    @staticmethod
    def _close_model(model: AcousticModel | None) -> None:
        if model is None:
            return
        try:
            model.close()
        except Exception as e:
            logger.warning(f"Error closing model: {e}")

    def process(self, pcm: NDArray[np.int16]) -> str:
        """
        Transcribe 16-bit PCM.

        Returns "" when not initialized, on empty input, and on any
        recoverable failure.
        """
        text, _ = self._transcribe(Utterance(samples=np.asarray(pcm, dtype=np.int16)))
        return text

    def _transcribe(self, utterance: Utterance) -> tuple[str, dict[str, float]]:
        timings: dict[str, float] = {}
        with self._lock:
            loaded = self._loaded
            if loaded is None:
                logger.error("Speech model not initialized, cannot process")
                return "", timings

            samples = utterance.samples
            if samples.size == 0:
                logger.warning("process called with empty PCM")
                return "", timings

            tracker = self._tracker
            with tracker.measure("pcm"):
                floats = utterance.to_float()
            timings["pcm"] = tracker.last("pcm")

            workers = self._config.mel_workers or default_workers()
            with tracker.measure("mel"):
                spectrogram = loaded.extractor.compute(floats, len(floats), workers)
            timings["mel"] = tracker.last("mel")

            if spectrogram.n_frames == 0:
                logger.error("Mel spectrogram has no frames, aborting")
                return "", timings

            with tracker.measure("infer"):
                tokens = loaded.adapter.run(spectrogram)
            timings["infer"] = tracker.last("infer")

            with tracker.measure("decode"):
                text = loaded.decoder.decode(tokens)
            timings["decode"] = tracker.last("decode")

            logger.debug(
                f"samples={samples.size}, frames={spectrogram.n_frames}, tokens={len(tokens)}, "
                + ", ".join(f"{name}={ms:.1f} ms" for name, ms in timings.items())
            )
            for name, ms in timings.items():
                if tracker.is_over_budget(name):
                    logger.warning(
                        f"Stage '{name}' took {ms:.1f} ms, over the {tracker.budget_ms:.0f} ms budget"
                    )
            return text, timings

    def analyze(self, utterance: Utterance) -> ToneReport:
        """
        Transcribe, score and classify one utterance, then emit the report.

        Callback errors are logged and do not stop other callbacks.
        """
        transcript, timings = self._transcribe(utterance)
        score = self._scorer.score(transcript, utterance.peak16, utterance.rms)
        signal = self._classifier.classify(score.combined)

        report = ToneReport(
            transcript=transcript,
            score=score,
            signal=signal,
            peak16=utterance.peak16,
            rms=utterance.rms,
            timings_ms=timings,
        )
        logger.debug(
            f"Transcript='{transcript}', lexical={score.lexical:.2f}, "
            f"prosodic={score.prosodic:.2f}, combined={score.combined:.2f}, signal={signal.value}"
        )

        for callback in self._callbacks:
            try:
                callback(report)
            except Exception as e:
                logger.warning(f"Report callback failed: {e}")

        return report
