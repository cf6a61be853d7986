"""Error taxonomy shared by providers and the session controller."""

from typing import Optional


class LivescribeError(Exception):
    """Base class for livescribe errors."""


class TranscriptionError(LivescribeError):
    """An error reported by a transcription provider.

    Args:
        kind: Short machine-readable error kind (e.g. 'no-speech', 'not-allowed')
        message: Human readable description
        fatal: True if the session cannot continue after this error
    """

    def __init__(self, kind: str, message: str = "", fatal: bool = True):
        super().__init__(message or kind)
        self.kind = kind
        self.message = message or kind
        self.fatal = fatal

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind={self.kind!r}, message={self.message!r}, fatal={self.fatal})"


class UnsupportedProviderError(TranscriptionError):
    """The selected provider cannot run here (missing engine, device or credential)."""

    def __init__(self, provider: str, message: str = ""):
        super().__init__("unsupported", message or f"Transcription provider '{provider}' is not supported or not configured")
        self.provider = provider


class MicrophoneUnavailableError(TranscriptionError):
    """The microphone could not be opened (permission denied or no device)."""

    def __init__(self, message: str = "Microphone is not available"):
        super().__init__("permission-denied", message)


class UploadError(TranscriptionError):
    """A single chunk upload failed. The session keeps running."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__("upload-failed", message, fatal=False)
        self.status = status


class EngineStateError(LivescribeError):
    """A recognition engine was asked to start while already running."""
