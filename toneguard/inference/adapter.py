"""
Inference adapter.

Packs a spectrogram into the fixed ``[1, n_mel, target_frames]`` tensor,
invokes the acoustic model and unpacks the ``[1, N]`` token output.
Failures never cross this boundary: they are logged and produce an
empty token sequence.
"""

from __future__ import annotations

import logging
import numpy as np
from numpy.typing import NDArray

from toneguard.core.errors import InferenceError
from toneguard.core.stream import AudioConfig
from toneguard.features.mel import Spectrogram
from toneguard.inference.backends import AcousticModel

logger = logging.getLogger(__name__)

EMPTY_TOKENS: NDArray[np.int64] = np.zeros(0, dtype=np.int64)


class InferenceAdapter:
    """
    Bridges the spectrogram extractor and an external acoustic model.

    Shorter spectrograms are zero-padded on the right, longer ones are
    truncated to ``config.target_frames``.
    """

    def __init__(self, model: AcousticModel, config: AudioConfig | None = None) -> None:
        self._model = model
        self._config = config or AudioConfig()

    @property
    def model(self) -> AcousticModel:
        return self._model

    @property
    def expected_shape(self) -> tuple[int, int, int]:
        return (1, self._config.n_mel, self._config.target_frames)

    def prepare(self, spectrogram: Spectrogram) -> NDArray[np.float32]:
        """Pad or trim to the model's input tensor."""
        _, n_mel, target = self.expected_shape
        if spectrogram.n_mel != n_mel:
            raise InferenceError(
                f"Spectrogram has {spectrogram.n_mel} mel bands, model expects {n_mel}"
            )
        used = min(spectrogram.n_frames, target)
        features = np.zeros(self.expected_shape, dtype=np.float32)
        features[0, :, :used] = spectrogram.data[:, :used]
        if spectrogram.n_frames > target:
            logger.debug(f"Truncated spectrogram from {spectrogram.n_frames} to {target} frames")
        return features

    def _check_input_shape(self) -> None:
        declared = tuple(self._model.input_shape)
        expected = self.expected_shape
        if len(declared) != len(expected) or any(
            d is not None and d != e for d, e in zip(declared, expected)
        ):
            raise InferenceError(
                f"Input shape mismatch: model={list(declared)}, expected={list(expected)}"
            )

    def invoke(self, spectrogram: Spectrogram) -> NDArray[np.int64]:
        """
        Run the model and return token ids.

        Raises:
            InferenceError: Model failure or unexpected tensor shapes
        """
        self._check_input_shape()
        features = self.prepare(spectrogram)

        try:
            output = self._model.invoke(features)
        except Exception as e:
            raise InferenceError(f"Model invocation failed: {e}") from e

        tokens = np.asarray(output)
        if tokens.ndim != 2 or tokens.shape[0] != 1:
            raise InferenceError(f"Unexpected output shape: {list(tokens.shape)}")
        if not np.issubdtype(tokens.dtype, np.integer):
            raise InferenceError(f"Expected integer token ids, got {tokens.dtype}")
        return tokens[0].astype(np.int64)

    def run(self, spectrogram: Spectrogram) -> NDArray[np.int64]:
        """Like invoke(), but returns an empty sequence instead of raising."""
        try:
            return self.invoke(spectrogram)
        except InferenceError as e:
            logger.error(f"Inference error: {e}")
            return EMPTY_TOKENS.copy()
