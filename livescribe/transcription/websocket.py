"""Realtime WebSocket transcription (ElevenLabs scribe realtime)."""

import asyncio
import json
import logging
from typing import Callable, Optional

import aiohttp

from .base import AbstractTranscriptionProvider, ResultCallback, ErrorCallback, CapabilityProbe
from ..audio.capture import AudioCapture, microphone_available
from ..errors import TranscriptionError, UnsupportedProviderError
from ..models.events import AudioEvent
from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)

ELEVENLABS_REALTIME_URL = "wss://api.elevenlabs.io/v1/scribe_v2_realtime"

INTERIM_MESSAGE_TYPES = ("partial_transcript",)
FINAL_MESSAGE_TYPES = ("committed_transcript",)


def parse_message(raw: str) -> Optional[dict]:
    """Decode one JSON message from the socket; None if it is not a JSON object."""
    try:
        data = json.loads(raw)
    except ValueError as e:
        logger.error(f"Error parsing WebSocket message: {e}")
        return None
    return data if isinstance(data, dict) else None


class WebSocketStreamingTranscriber(AbstractTranscriptionProvider):
    """Streams 16-bit PCM to a realtime transcription socket.

    The capture thread hands audio to the loop through an asyncio.Queue; a
    sender task drains the queue into the socket and a receiver task turns
    JSON messages into results.
    """

    name = "elevenlabs"

    def __init__(self,
                 api_key: str,
                 loop: Optional[asyncio.AbstractEventLoop] = None,
                 url: str = ELEVENLABS_REALTIME_URL,
                 sample_rate: int = 16000,
                 chunk_size: int = 4096,
                 capture_factory: Optional[Callable[..., AudioCapture]] = None,
                 session_factory: Optional[Callable[[], aiohttp.ClientSession]] = None,
                 capability_probe: Optional[CapabilityProbe] = None):
        self.api_key = api_key or ""
        self.loop = loop
        self.url = url
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.capture_factory = capture_factory or AudioCapture
        self.session_factory = session_factory or aiohttp.ClientSession
        self.capability_probe = capability_probe or microphone_available

        self.generation = 0
        self.capture: Optional[AudioCapture] = None
        self.session: Optional[aiohttp.ClientSession] = None
        self.ws = None
        self.audio_queue: Optional[asyncio.Queue] = None
        self.sender_task: Optional[asyncio.Task] = None
        self.receiver_task: Optional[asyncio.Task] = None
        self.close_task: Optional[asyncio.Task] = None
        self._on_result: Optional[ResultCallback] = None
        self._on_error: Optional[ErrorCallback] = None

    def is_supported(self) -> bool:
        return len(self.api_key) > 0 and bool(self.capability_probe())

    async def start(self, language: str, on_result: ResultCallback, on_error: ErrorCallback) -> None:
        if not self.is_supported():
            raise UnsupportedProviderError(self.name, "API key is required")
        if self.loop is None:
            self.loop = asyncio.get_running_loop()

        self.generation += 1
        generation = self.generation
        self._on_result = on_result
        self._on_error = on_error
        self.audio_queue = asyncio.Queue()

        # Microphone first so permission problems surface before connecting
        self.capture = self.capture_factory(
            callback=lambda event: self._on_audio_event(event, generation),
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            channels=1,
        )
        self.capture.start_recording()

        language_code = "fi" if language == "fi" else "en"
        self.session = self.session_factory()
        try:
            self.ws = await self.session.ws_connect(f"{self.url}?language={language_code}")
            await self.ws.send_json({"type": "authentication", "api_key": self.api_key})
        except aiohttp.ClientError as e:
            logger.error(f"Error starting stream: {e}")
            self.stop()
            raise TranscriptionError("network", f"Failed to start streaming: {e}") from e

        if generation != self.generation:
            # stopped while connecting
            return

        logger.info(f"WebSocket connected ({language_code})")
        self.sender_task = self.loop.create_task(self._send_audio(self.ws, self.audio_queue))
        self.receiver_task = self.loop.create_task(self._receive(self.ws, generation))

    def _on_audio_event(self, event: AudioEvent, generation: int) -> None:
        # Runs on the capture thread
        if generation != self.generation or self.audio_queue is None or self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self.audio_queue.put_nowait, event.audio_data)

    async def _send_audio(self, ws, audio_queue: asyncio.Queue) -> None:
        while True:
            chunk = await audio_queue.get()
            if ws.closed:
                return
            try:
                await ws.send_bytes(chunk)
            except (ConnectionResetError, aiohttp.ClientError) as e:
                # the receiver reports the closed connection
                logger.warning(f"Stopped sending audio: {e}")
                return

    async def _receive(self, ws, generation: int) -> None:
        async for msg in ws:
            if generation != self.generation:
                return
            if msg.type == aiohttp.WSMsgType.TEXT:
                self.handle_message(msg.data)
            elif msg.type == aiohttp.WSMsgType.ERROR:
                logger.error(f"WebSocket error: {ws.exception()}")
                break

        if generation == self.generation and self._on_error is not None:
            logger.warning("WebSocket closed by server")
            self._on_error(TranscriptionError("connection-closed", "Connection closed"))

    def handle_message(self, raw: str) -> None:
        """Turn one server message into a result or an error."""
        data = parse_message(raw)
        if data is None:
            return

        message_type = data.get("type")
        text = data.get("text") or ""
        if message_type == "transcription":
            is_final = bool(data.get("is_final"))
        elif message_type in INTERIM_MESSAGE_TYPES:
            is_final = False
        elif message_type in FINAL_MESSAGE_TYPES:
            is_final = True
        elif message_type == "error":
            message = data.get("message") or "Transcription error occurred"
            logger.error(f"Transcription error: {message}")
            if self._on_error is not None:
                self._on_error(TranscriptionError("provider-error", message, fatal=False))
            return
        else:
            logger.debug(f"Ignoring WebSocket message of type {message_type!r}")
            return

        if is_final and not text.strip():
            return
        if self._on_result is not None:
            self._on_result(TranscriptionResult(text=text.strip() if is_final else text, is_final=is_final))

    def stop(self) -> None:
        self.generation += 1

        capture, self.capture = self.capture, None
        if capture is not None:
            capture.stop_recording()

        for task in (self.sender_task, self.receiver_task):
            if task is not None and not task.done():
                task.cancel()
        self.sender_task = None
        self.receiver_task = None

        ws, self.ws = self.ws, None
        session, self.session = self.session, None
        if ws is not None or session is not None:
            logger.info("Closing WebSocket transcription stream")
            self.close_task = self.loop.create_task(self._close(ws, session))

        self.audio_queue = None
        self._on_result = None
        self._on_error = None

    async def wait_closed(self) -> None:
        task, self.close_task = self.close_task, None
        if task is not None:
            await task

    @staticmethod
    async def _close(ws, session) -> None:
        if ws is not None:
            await ws.close()
        if session is not None:
            await session.close()
