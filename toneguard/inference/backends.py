"""
Acoustic model backends.

The model itself is external: it takes a ``[1, n_mel, frames]`` float
tensor and returns a ``[1, N]`` tensor of token ids. Runtimes are imported
lazily so the core works without either installed.

Requires one of:
    pip install onnxruntime
    pip install tflite-runtime
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable
import numpy as np
from numpy.typing import NDArray

logger = logging.getLogger(__name__)

Shape = tuple[int | None, ...]


@runtime_checkable
class AcousticModel(Protocol):
    """Protocol for fixed-shape speech-to-token models."""

    @property
    def input_shape(self) -> Shape:
        """Declared input shape; None marks a dynamic dimension."""
        ...

    def invoke(self, features: NDArray[np.float32]) -> NDArray:
        """Run the model on ``[1, n_mel, frames]`` features."""
        ...

    def close(self) -> None:
        """Release runtime resources."""
        ...


def _static_shape(shape: Sequence) -> Shape:
    return tuple(int(d) if isinstance(d, (int, np.integer)) and d > 0 else None for d in shape)


class OnnxModel(AcousticModel):
    """ONNX Runtime session on the CPU execution provider."""

    def __init__(self, path: str | Path, intra_op_threads: int | None = None) -> None:
        try:
            import onnxruntime
        except ImportError:
            raise ImportError(
                "onnxruntime is required for .onnx models.\n"
                "Install with: pip install onnxruntime"
            )

        options = onnxruntime.SessionOptions()
        if intra_op_threads:
            options.intra_op_num_threads = intra_op_threads

        self._session = onnxruntime.InferenceSession(
            str(path),
            sess_options=options,
            providers=["CPUExecutionProvider"],
        )
        inp = self._session.get_inputs()[0]
        self._input_name = inp.name
        self._input_shape = _static_shape(inp.shape)

        logger.debug(f"ONNX input: name={inp.name}, shape={inp.shape}, type={inp.type}")
        for out in self._session.get_outputs():
            logger.debug(f"ONNX output: name={out.name}, shape={out.shape}, type={out.type}")

    @property
    def input_shape(self) -> Shape:
        return self._input_shape

    def invoke(self, features: NDArray[np.float32]) -> NDArray:
        return self._session.run(None, {self._input_name: features})[0]

    def close(self) -> None:
        self._session = None


class TFLiteModel(AcousticModel):
    """TensorFlow Lite interpreter (the format used by on-device Whisper exports)."""

    def __init__(self, path: str | Path, num_threads: int | None = None) -> None:
        try:
            import tflite_runtime.interpreter as tflite
        except ImportError:
            raise ImportError(
                "tflite-runtime is required for .tflite models.\n"
                "Install with: pip install tflite-runtime"
            )

        self._interp = tflite.Interpreter(model_path=str(path), num_threads=num_threads)
        self._interp.allocate_tensors()
        self._input = self._interp.get_input_details()[0]
        self._output = self._interp.get_output_details()[0]

        logger.debug(f"TFLite input: shape={self._input['shape']}, type={self._input['dtype']}")
        logger.debug(f"TFLite output: shape={self._output['shape']}, type={self._output['dtype']}")

    @property
    def input_shape(self) -> Shape:
        return _static_shape(self._input["shape"])

    def invoke(self, features: NDArray[np.float32]) -> NDArray:
        self._interp.set_tensor(self._input["index"], features.astype(self._input["dtype"]))
        self._interp.invoke()
        return self._interp.get_tensor(self._output["index"])

    def close(self) -> None:
        self._interp = None


_BACKENDS = {
    ".onnx": OnnxModel,
    ".tflite": TFLiteModel,
}


def load_model(path: str | Path, threads: int | None = None) -> AcousticModel:
    """
    Load an acoustic model, choosing the runtime from the file suffix.

    Raises:
        FileNotFoundError: Model file does not exist
        ValueError: Unsupported suffix
        ImportError: Runtime for the suffix is not installed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Model file does not exist: {path}")

    backend = _BACKENDS.get(path.suffix.lower())
    if backend is None:
        raise ValueError(
            f"Unsupported model format '{path.suffix}'. Use one of: {sorted(_BACKENDS)}"
        )
    logger.info(f"Loading {backend.__name__} from {path}")
    return backend(path, threads)
