"""
Error taxonomy.

Init errors (FormatError, ResourceIOError) fail ToneGuard.init().
InferenceError and CaptureInterrupted are recovered where they occur.
"""

from __future__ import annotations


class ToneGuardError(Exception):
    """Base class for toneguard errors."""


class FormatError(ToneGuardError):
    """Vocabulary resource has a bad magic or inconsistent structure."""


class ResourceIOError(ToneGuardError, IOError):
    """Resource is missing, unreadable, or truncated."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(message)


class InferenceError(ToneGuardError):
    """Acoustic model invocation failed or returned an unexpected shape."""


class CaptureInterrupted(ToneGuardError):
    """A spectrogram worker failed; its frame range keeps the log floor."""

    def __init__(self, worker: int, workers: int, cause: BaseException | None = None) -> None:
        self.worker = worker
        self.workers = workers
        self.cause = cause
        super().__init__(f"Mel worker {worker}/{workers} interrupted: {cause}")
