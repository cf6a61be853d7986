"""Abstract base class for transcription providers."""

from abc import ABC, abstractmethod
from typing import Callable
import logging

from ..errors import TranscriptionError
from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)

ResultCallback = Callable[[TranscriptionResult], None]
ErrorCallback = Callable[[TranscriptionError], None]
CapabilityProbe = Callable[[], bool]


class AbstractTranscriptionProvider(ABC):
    """Common contract of every transcription provider.

    Callers depend only on `start`, `stop` and `is_supported`. Results and
    errors are delivered through the callbacks handed to `start`, always on
    the event loop thread and in the order the provider raised them.
    """

    name = "abstract"

    @abstractmethod
    async def start(self, language: str, on_result: ResultCallback, on_error: ErrorCallback) -> None:
        """Start a session.

        Args:
            language: Short language code ('en', 'fi')
            on_result: Receives every normalized TranscriptionResult
            on_error: Receives errors that are not handled internally

        Raises:
            TranscriptionError: If the session cannot be started at all
        """

    @abstractmethod
    def stop(self) -> None:
        """Stop the session and release every resource. Safe to call twice."""

    @abstractmethod
    def is_supported(self) -> bool:
        """True if the platform capability and credentials needed are available."""

    async def wait_closed(self) -> None:
        """Wait for teardown that `stop()` left running in the background."""
