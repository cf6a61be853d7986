"""Google Speech-to-Text streaming recognition engine."""

import asyncio
import logging
import queue
import threading
from typing import Iterator, Optional

from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.oauth2 import service_account

from .streaming import RecognitionEngine, RecognitionSegment
from ..audio.capture import AudioCapture
from ..errors import EngineStateError, MicrophoneUnavailableError
from ..models.events import AudioEvent

logger = logging.getLogger(__name__)

# Order matters: subclasses before GoogleAPICallError
ERROR_KINDS = (
    (gax_exceptions.DeadlineExceeded, "no-speech"),
    (gax_exceptions.ServiceUnavailable, "network"),
    (gax_exceptions.OutOfRange, "aborted"),
    (gax_exceptions.Aborted, "aborted"),
    (gax_exceptions.PermissionDenied, "not-allowed"),
    (gax_exceptions.Unauthenticated, "not-allowed"),
    (gax_exceptions.InvalidArgument, "bad-request"),
)


def classify_api_error(error: Exception) -> str:
    """Map a Google API exception onto a recognition error kind."""
    for exc_type, kind in ERROR_KINDS:
        if isinstance(error, exc_type):
            return kind
    return "service-error"


class GoogleStreamingEngine(RecognitionEngine):
    """Streams microphone audio to Google streaming recognition.

    The gRPC stream runs on a worker thread; every callback is handed back to
    the event loop with `call_soon_threadsafe`.
    """

    def __init__(self,
                 credentials_path: str,
                 loop: asyncio.AbstractEventLoop,
                 sample_rate: int = 16000,
                 chunk_size: int = 1600,
                 use_enhanced: bool = True,
                 enable_automatic_punctuation: bool = True,
                 client: Optional[speech.SpeechClient] = None,
                 capture_factory=None):
        """Initialize Google streaming engine.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            loop: Event loop that receives the engine callbacks
            sample_rate: Microphone sample rate in Hz
            chunk_size: Samples per microphone read
            use_enhanced: Whether to use the enhanced model
            enable_automatic_punctuation: Enable automatic punctuation
            client: Pre-built SpeechClient (credentials_path is then ignored)
        """
        super().__init__()
        self.credentials_path = credentials_path
        self.loop = loop
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.use_enhanced = use_enhanced
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.client = client
        self.capture_factory = capture_factory or AudioCapture

        self.audio_queue: "queue.Queue[Optional[bytes]]" = queue.Queue()
        self.stop_event = threading.Event()
        self.worker: Optional[threading.Thread] = None
        self.capture: Optional[AudioCapture] = None

    def _get_client(self) -> speech.SpeechClient:
        if self.client is None:
            logger.info(f"Loading Google credentials from: {self.credentials_path}")
            credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
            self.client = speech.SpeechClient(credentials=credentials)
            logger.info(f"Using Google Cloud project: {credentials.project_id}")
        return self.client

    def _streaming_config(self) -> speech.StreamingRecognitionConfig:
        config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=self.sample_rate,
            language_code=self.language,
            max_alternatives=self.max_alternatives,
            use_enhanced=self.use_enhanced,
            enable_automatic_punctuation=self.enable_automatic_punctuation,
        )
        return speech.StreamingRecognitionConfig(
            config=config,
            interim_results=self.interim_results,
            single_utterance=not self.continuous,
        )

    def start(self) -> None:
        if self.worker is not None and self.worker.is_alive():
            raise EngineStateError("Recognition engine is already listening")

        client = self._get_client()
        self.stop_event.clear()
        self.audio_queue = queue.Queue()

        self.capture = self.capture_factory(
            callback=self._on_audio_event,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
        )
        try:
            self.capture.start_recording()
        except MicrophoneUnavailableError:
            self.capture = None
            raise

        self.worker = threading.Thread(target=self._run_stream, args=(client,), daemon=True)
        self.worker.name = "GoogleStreamingWorker"
        self.worker.start()
        logger.info(f"Google streaming recognition started ({self.language})")

    def _on_audio_event(self, event: AudioEvent) -> None:
        self.audio_queue.put(event.audio_data)

    def _audio_chunks(self) -> Iterator[bytes]:
        while not self.stop_event.is_set():
            try:
                chunk = self.audio_queue.get(timeout=0.1)
            except queue.Empty:
                continue
            if chunk is None:
                return
            yield chunk

    def _run_stream(self, client: speech.SpeechClient) -> None:
        """Worker thread: run one streaming recognition call until it ends."""
        requests = (speech.StreamingRecognizeRequest(audio_content=chunk)
                    for chunk in self._audio_chunks())
        try:
            responses = client.streaming_recognize(config=self._streaming_config(), requests=requests)
            for response in responses:
                segments = [
                    RecognitionSegment(transcript=result.alternatives[0].transcript,
                                       is_final=result.is_final)
                    for result in response.results if result.alternatives
                ]
                if segments:
                    self._emit(self.on_result, segments)
        except gax_exceptions.GoogleAPICallError as e:
            kind = classify_api_error(e)
            logger.warning(f"Google streaming recognition error ({kind}): {e}")
            self._emit(self.on_error, kind, str(e))
        finally:
            self._stop_capture()
            self._emit(self.on_end)

    def _emit(self, callback, *args) -> None:
        if callback is None or self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(callback, *args)

    def _stop_capture(self) -> None:
        capture, self.capture = self.capture, None
        if capture is not None:
            capture.stop_recording()

    def stop(self) -> None:
        logger.info("Stopping Google streaming recognition")
        self.stop_event.set()
        self.audio_queue.put(None)
        self._stop_capture()
