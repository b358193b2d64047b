"""Acoustic feature extraction."""

from toneguard.features.vocab import FilterBank, Vocabulary, ControlTokens, load_filters_and_vocab
from toneguard.features.mel import Spectrogram, SpectrogramExtractor, fft, dft, hann_window

__all__ = [
    "FilterBank",
    "Vocabulary",
    "ControlTokens",
    "load_filters_and_vocab",
    "Spectrogram",
    "SpectrogramExtractor",
    "fft",
    "dft",
    "hann_window",
]
