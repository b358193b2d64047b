#!/usr/bin/env python3
"""
toneguard Microphone Demo

Press Enter to start listening, Enter again to stop. Each utterance is
transcribed, scored and shown as a calm / caution / aggressive signal.

Usage:
    python examples/microphone_demo.py MODEL VOCAB

Requires:
    pip install sounddevice

Ctrl+C to quit.
"""

import logging
import sys

from toneguard import PipelineConfig, SignalState, ToneGuard, ToneReport
from toneguard.sources import ListeningSession, MicrophoneSource
from toneguard.sources.microphone import list_audio_devices


SIGNAL_COLORS = {
    SignalState.CALM: 32,        # green
    SignalState.CAUTION: 33,     # yellow
    SignalState.AGGRESSIVE: 31,  # red
}


def color(text: str, code: int) -> str:
    """Add ANSI color to text."""
    return f"\033[{code}m{text}\033[0m"


def format_bar(value: float, width: int = 20, filled: str = "#", empty: str = ".") -> str:
    """Create a visual bar."""
    filled_count = int(value * width)
    return filled * filled_count + empty * (width - filled_count)


def print_report(report: ToneReport) -> None:
    signal = report.signal
    print(f"\n{'='*60}")
    print(f"  Signal: {color(signal.value.upper(), SIGNAL_COLORS[signal])}")
    print(f"{'='*60}")
    print(f"  Transcript: {report.transcript.strip() or '(none)'}")
    print(f"  Lexical:    [{format_bar(report.lexical)}] {report.lexical:.2f}")
    print(f"  Prosodic:   [{format_bar(report.prosodic)}] {report.prosodic:.2f}")
    print(f"  Combined:   [{format_bar(report.combined)}] {report.combined:.2f}")
    print(f"  Peak: {report.peak16}  RMS: {report.rms:.0f}")
    timings = ", ".join(f"{name}={ms:.0f}ms" for name, ms in report.timings_ms.items())
    print(f"  Timings: {timings}\n")


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    if len(sys.argv) < 3:
        print(__doc__)
        return 2

    print("  Available audio devices:")
    print("-" * 40)
    list_audio_devices()
    print("-" * 40)

    guard = ToneGuard(PipelineConfig(multilingual="-en" not in sys.argv[1]))
    if not guard.init(sys.argv[1], sys.argv[2]):
        print("  [ERROR] Model init failed")
        return 1
    guard.on_report(print_report)

    session = ListeningSession(guard, MicrophoneSource)
    try:
        while True:
            input("  [READY] Press Enter to listen...")
            session.start()
            input("  [REC] Listening... press Enter to stop")
            session.stop()
            session.wait()
    except (KeyboardInterrupt, EOFError):
        print("\n\n  [STOP] Stopped.")
    finally:
        session.shutdown()
        guard.release()

    return 0


if __name__ == "__main__":
    sys.exit(main())
