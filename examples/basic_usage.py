"""
toneguard Basic Usage Example

Runs one utterance through the pipeline and prints the resulting report.

Usage:
    python examples/basic_usage.py MODEL VOCAB [WAV]

MODEL is a .onnx or .tflite Whisper export, VOCAB the matching
filters_vocab binary. Without WAV a synthetic tone is analysed.
"""

import json
import logging
import sys
import wave

from toneguard import PipelineConfig, ToneGuard, Utterance
from toneguard.sources import CaptureLoop, SineSource


def load_wav(path: str) -> Utterance:
    """Read a 16 kHz mono 16-bit WAV file."""
    with wave.open(path, "rb") as f:
        if f.getsampwidth() != 2 or f.getnchannels() != 1 or f.getframerate() != 16000:
            raise ValueError(f"{path}: expected 16 kHz mono PCM16")
        return Utterance.from_bytes(f.readframes(f.getnframes()))


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    if len(sys.argv) < 3:
        print(__doc__)
        return 2

    model_path, vocab_path = sys.argv[1], sys.argv[2]
    multilingual = "-en" not in model_path

    guard = ToneGuard(PipelineConfig(multilingual=multilingual))
    if not guard.init(model_path, vocab_path):
        print("Initialization failed, see log above")
        return 1

    guard.on_report(lambda report: print(json.dumps(report.to_dict(), indent=2)))

    try:
        if len(sys.argv) > 3:
            utterance = load_wav(sys.argv[3])
        else:
            utterance = CaptureLoop().run(SineSource(frequency_hz=220, duration_ms=2000, amplitude=0.6))
        report = guard.analyze(utterance)
        print(f"Signal: {report.signal.value.upper()}")
    finally:
        guard.release()

    return 0


if __name__ == "__main__":
    sys.exit(main())
