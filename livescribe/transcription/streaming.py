"""Streaming recognizer provider with automatic restart on transient errors."""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .base import AbstractTranscriptionProvider, ResultCallback, ErrorCallback, CapabilityProbe
from ..errors import TranscriptionError, UnsupportedProviderError
from ..models.session import locale_tag
from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = frozenset({"no-speech", "audio-capture", "network", "aborted"})


@dataclass(frozen=True)
class RecognitionSegment:
    """One hypothesis segment reported by a recognition engine."""
    transcript: str
    is_final: bool


class RecognitionEngine(ABC):
    """A continuous native recognizer.

    Engines report through the three callback attributes, which are invoked
    on the event loop thread: `on_result(segments)`, `on_error(kind, message)`
    and `on_end()`. `on_end` fires whenever the engine stops listening, whether
    asked to or on its own.
    """

    def __init__(self):
        self.language = "en-US"
        self.continuous = False
        self.interim_results = False
        self.max_alternatives = 1
        self.on_result: Optional[Callable[[Sequence[RecognitionSegment]], None]] = None
        self.on_error: Optional[Callable[[str, str], None]] = None
        self.on_end: Optional[Callable[[], None]] = None

    @abstractmethod
    def start(self) -> None:
        """Begin listening.

        Raises:
            EngineStateError: If already listening
        """

    @abstractmethod
    def stop(self) -> None:
        """Stop listening and release the audio device."""


class StreamingRecognizer(AbstractTranscriptionProvider):
    """Provider wrapping a continuous, interim-capable recognition engine."""

    name = "streaming"

    def __init__(self,
                 engine_factory: Callable[[], RecognitionEngine],
                 loop: Optional[asyncio.AbstractEventLoop] = None,
                 restart_backoff: float = 1.0,
                 capability_probe: Optional[CapabilityProbe] = None):
        """Initialize the recognizer.

        Args:
            engine_factory: Builds a fresh engine for each session
            loop: Loop used to schedule restarts (defaults to the running loop)
            restart_backoff: Seconds to wait before restarting after a transient error
            capability_probe: Returns True if a recognition engine is available here
        """
        self.engine_factory = engine_factory
        self.loop = loop
        self.restart_backoff = restart_backoff
        self.capability_probe = capability_probe or (lambda: True)

        self.engine: Optional[RecognitionEngine] = None
        self.should_continue = False
        self.restart_handle = None
        self.restart_count = 0
        self._on_result: Optional[ResultCallback] = None
        self._on_error: Optional[ErrorCallback] = None

    def is_supported(self) -> bool:
        return bool(self.capability_probe())

    async def start(self, language: str, on_result: ResultCallback, on_error: ErrorCallback) -> None:
        if not self.is_supported():
            raise UnsupportedProviderError(self.name, "No streaming recognition engine is available")
        if self.loop is None:
            self.loop = asyncio.get_running_loop()

        self._on_result = on_result
        self._on_error = on_error
        self.should_continue = True
        self.restart_count = 0

        engine = self.engine_factory()
        engine.continuous = True
        engine.interim_results = True
        engine.max_alternatives = 1
        engine.language = locale_tag(language)
        engine.on_result = self._handle_result
        engine.on_error = self._handle_error
        engine.on_end = self._handle_end
        self.engine = engine

        logger.info(f"Starting streaming recognition ({engine.language})")
        try:
            engine.start()
        except Exception:
            self.stop()
            raise

    def _handle_result(self, segments: Sequence[RecognitionSegment]) -> None:
        if not segments or not self.should_continue or self._on_result is None:
            return
        last = segments[-1]
        self._on_result(TranscriptionResult(text=last.transcript, is_final=last.is_final))

    def _handle_error(self, kind: str, message: str = "") -> None:
        if kind in TRANSIENT_ERRORS:
            logger.info(f"Transient recognition error '{kind}', restarting in {self.restart_backoff}s")
            self._schedule_restart()
            return

        logger.error(f"Speech recognition error: {kind} {message}")
        if self._on_error is not None and self.should_continue:
            self._on_error(TranscriptionError(kind, message or f"Speech recognition error: {kind}", fatal=True))

    def _handle_end(self) -> None:
        logger.debug("Speech recognition ended")
        if self.should_continue and self.engine is not None:
            self._schedule_restart()

    def _schedule_restart(self) -> None:
        if not self.should_continue:
            return
        # one pending restart at a time
        if self.restart_handle is not None:
            self.restart_handle.cancel()
        self.restart_handle = self.loop.call_later(self.restart_backoff, self._restart)

    def _restart(self) -> None:
        self.restart_handle = None
        if not self.should_continue or self.engine is None:
            return

        self.restart_count += 1
        logger.info(f"Auto-restarting recognition (restart #{self.restart_count})")
        try:
            self.engine.start()
        except Exception as e:
            logger.error(f"Failed to restart recognition: {e}")
            if self._on_error is not None:
                self._on_error(TranscriptionError("restart-failed", f"Failed to restart recognition: {e}"))

    def stop(self) -> None:
        # Clear the flag before stopping the engine so on_end cannot restart it
        self.should_continue = False
        if self.restart_handle is not None:
            self.restart_handle.cancel()
            self.restart_handle = None

        engine, self.engine = self.engine, None
        if engine is not None:
            logger.info("Stopping streaming recognition")
            engine.stop()
        self._on_result = None
        self._on_error = None
