"""Shared fixtures: vocabulary binaries and a fake acoustic model."""

from __future__ import annotations

import struct
from pathlib import Path

import numpy as np
import pytest

from toneguard.features.vocab import VOCAB_MAGIC


WORDS = ["Hello", " you", " stupid", " idiot", " there", "!"]


def write_vocab(
    path: Path,
    filters: np.ndarray,
    words: list[str],
    magic: int = VOCAB_MAGIC,
) -> Path:
    """Write a filters_vocab binary in native byte order."""
    n_mel, n_fft = filters.shape
    parts = [struct.pack("=I", magic), struct.pack("=ii", n_mel, n_fft)]
    parts.append(np.ascontiguousarray(filters, dtype="=f4").tobytes())
    parts.append(struct.pack("=i", len(words)))
    for word in words:
        encoded = word.encode("utf-8")
        parts.append(struct.pack("=i", len(encoded)))
        parts.append(encoded)
    path.write_bytes(b"".join(parts))
    return path


def make_filters(n_mel: int = 80, n_fft: int = 201, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return (rng.uniform(0.0, 0.02, size=(n_mel, n_fft))).astype(np.float32)


class FakeModel:
    """Stands in for the external acoustic model."""

    def __init__(
        self,
        tokens: list[int] | None = None,
        input_shape: tuple = (1, 80, 3000),
        error: Exception | None = None,
        output: np.ndarray | None = None,
    ) -> None:
        self.tokens = tokens if tokens is not None else []
        self._input_shape = input_shape
        self.error = error
        self.output = output
        self.calls: list[np.ndarray] = []
        self.closed = False

    @property
    def input_shape(self) -> tuple:
        return self._input_shape

    def invoke(self, features: np.ndarray) -> np.ndarray:
        self.calls.append(features)
        if self.error is not None:
            raise self.error
        if self.output is not None:
            return self.output
        return np.array([self.tokens], dtype=np.int32)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def filters() -> np.ndarray:
    return make_filters()


@pytest.fixture
def vocab_path(tmp_path: Path, filters: np.ndarray) -> Path:
    return write_vocab(tmp_path / "filters_vocab_en.bin", filters, WORDS)


@pytest.fixture
def model_path(tmp_path: Path) -> Path:
    path = tmp_path / "model.onnx"
    path.write_bytes(b"stub")
    return path
