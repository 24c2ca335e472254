"""Exception taxonomy for identification, scheduling and capture failures."""

from __future__ import annotations


class VidcapsError(RuntimeError):
    """Base class for failures that abort processing of the current file."""


class ReconcileError(VidcapsError):
    """Raised when the identifiers' reports cannot be turned into a canonical record."""


class NoDurationError(ReconcileError):
    """Raised when no usable duration was reported."""


class NoDimensionsError(ReconcileError):
    """Raised when neither identifier reported positive width and height."""


class LengthUnmeasurableError(ReconcileError):
    """Raised when safe measuring exhausts its rewind budget without a reachable point."""

    def __init__(self, message: str, *, limit_reached: bool = False, suggestion: str | None = None) -> None:
        super().__init__(message)
        self.limit_reached = limit_reached
        self.suggestion = suggestion


class ScheduleError(VidcapsError):
    """Raised when no capture points can be computed for the requested bounds."""


class OffsetTooLargeError(ScheduleError):
    """Raised when an explicit end offset leaves no usable span."""


class IntervalTooLargeError(ScheduleError):
    """Raised when the capture interval exceeds the video length."""


class IntervalTooSmallError(ScheduleError):
    """Raised when the capture interval truncates to zero."""


class CaptureFailedError(VidcapsError):
    """Raised when a requested frame could not be extracted."""

    def __init__(self, message: str, *, timestamp: float) -> None:
        super().__init__(message)
        self.timestamp = timestamp


class AdapterUnavailableError(VidcapsError):
    """Raised when a required decoder binary is missing or unusable."""

    def __init__(self, decoder: str, message: str) -> None:
        super().__init__(message)
        self.decoder = decoder
