"""Custom exceptions for spoken-word analysis."""


class SpokenCleanupError(Exception):
    """Base exception for spoken-cleanup errors."""

    pass


class AudioDecodeError(SpokenCleanupError):
    """Exception raised when an audio file cannot be read or decoded."""

    pass


class UnsupportedAudioFormatError(AudioDecodeError):
    """Exception raised for audio encodings the reader does not handle."""

    pass


class AnalysisError(SpokenCleanupError):
    """Exception raised for analysis pipeline errors."""

    pass


class InsufficientAudioError(AnalysisError):
    """Exception raised when a recording is too short to measure."""

    pass


class AnalysisCancelledError(AnalysisError):
    """Exception raised when an analysis pass is cancelled by its caller."""

    pass
