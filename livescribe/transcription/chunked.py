"""Chunked HTTP transcription providers (OpenAI, Mistral)."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Set

import aiohttp

from .base import AbstractTranscriptionProvider, ResultCallback, ErrorCallback, CapabilityProbe
from ..audio.capture import microphone_available
from ..audio.chunker import AudioChunker
from ..errors import TranscriptionError, UnsupportedProviderError, UploadError
from ..models.audio import AudioSegment
from ..models.session import DEFAULT_LANGUAGE
from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)

UPLOAD_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class HttpBackend:
    """Endpoint, model and auth scheme of one transcription API."""
    name: str
    endpoint: str
    model: str
    auth_header: str = "Authorization"
    auth_prefix: str = "Bearer "
    always_send_language: bool = False

    def headers(self, api_key: str) -> dict:
        return {self.auth_header: f"{self.auth_prefix}{api_key}"}

    def language_hint(self, language: str) -> Optional[str]:
        if self.always_send_language or language != DEFAULT_LANGUAGE:
            return language
        return None


OPENAI_BACKEND = HttpBackend(
    name="openai",
    endpoint="https://api.openai.com/v1/audio/transcriptions",
    model="whisper-1",
    always_send_language=True,
)

MISTRAL_BACKEND = HttpBackend(
    name="mistral",
    endpoint="https://api.mistral.ai/v1/audio/transcriptions",
    model="voxtral-mini",
    auth_header="x-api-key",
    auth_prefix="",
)


def _default_session_factory() -> aiohttp.ClientSession:
    return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=UPLOAD_TIMEOUT_SECONDS))


def extract_error_message(payload, fallback: str) -> str:
    """Pull the message out of an API error envelope."""
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
        if isinstance(error, str) and error:
            return error
        if payload.get("message"):
            return str(payload["message"])
    return fallback


class ChunkedHttpTranscriber(AbstractTranscriptionProvider):
    """Uploads a fixed-length microphone segment to an HTTP API on every rotation.

    Every successful upload yields exactly one final result. Upload failures
    are reported but never stop the session. Responses that arrive after
    `stop()` (or after a later `start()`) are dropped using a generation
    counter captured when the upload was issued.
    """

    def __init__(self,
                 backend: HttpBackend,
                 api_key: str,
                 loop: Optional[asyncio.AbstractEventLoop] = None,
                 rotation_interval: float = 5.0,
                 chunker_factory: Optional[Callable[[], AudioChunker]] = None,
                 session_factory: Optional[Callable[[], aiohttp.ClientSession]] = None,
                 capability_probe: Optional[CapabilityProbe] = None):
        self.backend = backend
        self.name = backend.name
        self.api_key = api_key or ""
        self.loop = loop
        self.rotation_interval = rotation_interval
        self.chunker_factory = chunker_factory or AudioChunker
        self.session_factory = session_factory or _default_session_factory
        self.capability_probe = capability_probe or microphone_available

        self.generation = 0
        self.language = DEFAULT_LANGUAGE
        self.chunker: Optional[AudioChunker] = None
        self.rotation_handle = None
        self.uploads: Set[asyncio.Task] = set()
        self._on_result: Optional[ResultCallback] = None
        self._on_error: Optional[ErrorCallback] = None

    def is_supported(self) -> bool:
        return len(self.api_key) > 0 and bool(self.capability_probe())

    @property
    def is_active(self) -> bool:
        return self.chunker is not None

    async def start(self, language: str, on_result: ResultCallback, on_error: ErrorCallback) -> None:
        if not self.is_supported():
            raise UnsupportedProviderError(
                self.name, f"{self.name} transcription is not supported or API key is missing")
        if self.loop is None:
            self.loop = asyncio.get_running_loop()

        self.generation += 1
        self.language = language
        self._on_result = on_result
        self._on_error = on_error

        chunker = self.chunker_factory()
        chunker.open()
        self.chunker = chunker
        self.rotation_handle = self.loop.call_later(self.rotation_interval, self._rotate)
        logger.info(f"{self.name} chunked transcription started "
                    f"(every {self.rotation_interval}s, language={language})")

    def _rotate(self) -> None:
        self.rotation_handle = None
        if self.chunker is None:
            return

        segment = self.chunker.rotate()
        self.rotation_handle = self.loop.call_later(self.rotation_interval, self._rotate)

        if segment.is_empty:
            logger.debug(f"Skipping empty segment #{segment.sequence_number}")
            return

        task = self.loop.create_task(self._transcribe(segment, self.generation))
        self.uploads.add(task)
        task.add_done_callback(self.uploads.discard)

    def _is_current(self, generation: int) -> bool:
        return generation == self.generation and self.chunker is not None

    async def _transcribe(self, segment: AudioSegment, generation: int) -> None:
        """Upload one segment and forward its text, unless the session moved on."""
        try:
            text = await self._upload(segment)
        except (aiohttp.ClientError, asyncio.TimeoutError, UploadError) as e:
            if not self._is_current(generation):
                logger.debug(f"Discarding failed upload from stale session: {e}")
                return
            error = e if isinstance(e, UploadError) else UploadError(f"{self.name} upload failed: {e}")
            logger.error(f"Error transcribing segment #{segment.sequence_number} with {self.name}: {error}")
            if self._on_error is not None:
                self._on_error(error)
            return

        if not self._is_current(generation):
            logger.debug(f"Discarding late {self.name} response for segment #{segment.sequence_number}")
            return
        if text and self._on_result is not None:
            self._on_result(TranscriptionResult(text=text, is_final=True))

    async def _upload(self, segment: AudioSegment) -> str:
        form = aiohttp.FormData()
        form.add_field("file", segment.data, filename="audio.wav", content_type="audio/wav")
        form.add_field("model", self.backend.model)
        language = self.backend.language_hint(self.language)
        if language:
            form.add_field("language", language)

        logger.debug(f"Uploading segment #{segment.sequence_number} "
                     f"({len(segment.data)} bytes) to {self.backend.endpoint}")
        async with self.session_factory() as session:
            async with session.post(self.backend.endpoint,
                                    headers=self.backend.headers(self.api_key),
                                    data=form) as response:
                if response.status < 200 or response.status >= 300:
                    try:
                        payload = await response.json(content_type=None)
                    except ValueError:
                        payload = None
                    message = extract_error_message(payload, response.reason or f"HTTP {response.status}")
                    raise UploadError(f"{self.name} API error: {message}", status=response.status)

                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise UploadError(f"{self.name} API returned invalid JSON: {e}",
                                      status=response.status) from e

        if not isinstance(data, dict):
            raise UploadError(f"{self.name} API returned an unexpected body", status=response.status)
        return (data.get("text") or "").strip()

    def stop(self) -> None:
        # In-flight uploads finish on their own; their results are dropped
        self.generation += 1
        if self.rotation_handle is not None:
            self.rotation_handle.cancel()
            self.rotation_handle = None

        chunker, self.chunker = self.chunker, None
        if chunker is not None:
            logger.info(f"Stopping {self.name} chunked transcription "
                        f"({len(self.uploads)} uploads still in flight)")
            chunker.close()
        self._on_result = None
        self._on_error = None
