"""Acoustic model invocation and token decoding."""

from toneguard.inference.backends import AcousticModel, OnnxModel, TFLiteModel, load_model
from toneguard.inference.adapter import InferenceAdapter
from toneguard.inference.decoder import TokenDecoder, decode

__all__ = [
    "AcousticModel",
    "OnnxModel",
    "TFLiteModel",
    "load_model",
    "InferenceAdapter",
    "TokenDecoder",
    "decode",
]
