"""Segmenting microphone capture into uploadable WAV blobs."""

import io
import wave
import logging
import threading
from typing import Optional, Callable

from .capture import AudioCapture
from ..models.audio import AudioSegment
from ..models.events import AudioEvent

logger = logging.getLogger(__name__)

SAMPLE_WIDTH_BYTES = 2  # 16-bit PCM


def encode_wav(pcm: bytes, sample_rate: int, channels: int) -> bytes:
    """Wrap raw 16-bit PCM in a WAV container."""
    buffer = io.BytesIO()
    with wave.open(buffer, 'wb') as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(SAMPLE_WIDTH_BYTES)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return buffer.getvalue()


class AudioChunker:
    """Records the microphone continuously and cuts it into segments on demand.

    Capture never pauses: `rotate()` swaps the segment buffer under a lock, so
    the capture thread keeps appending to the fresh buffer while the closed
    one is encoded.
    """

    def __init__(self,
                 sample_rate: int = 16000,
                 chunk_size: int = 1600,
                 channels: int = 1,
                 capture_factory: Optional[Callable[..., AudioCapture]] = None):
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.capture_factory = capture_factory or AudioCapture

        self.capture: Optional[AudioCapture] = None
        self.lock = threading.Lock()
        self.segment_buffer = bytearray()
        self.segments_produced = 0

    @property
    def is_open(self) -> bool:
        return self.capture is not None

    def open(self) -> None:
        """Open the microphone and begin the first segment.

        Raises:
            MicrophoneUnavailableError: If the device cannot be opened
        """
        if self.capture is not None:
            logger.warning("AudioChunker already open")
            return

        capture = self.capture_factory(
            callback=self._on_audio_event,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            channels=self.channels,
        )
        with self.lock:
            self.segment_buffer = bytearray()
        capture.start_recording()
        self.capture = capture
        logger.info("AudioChunker opened")

    def _on_audio_event(self, event: AudioEvent) -> None:
        # Runs on the capture thread
        with self.lock:
            self.segment_buffer.extend(event.audio_data)

    def rotate(self) -> AudioSegment:
        """Close the current segment and start a new one without pausing capture."""
        with self.lock:
            pcm = bytes(self.segment_buffer)
            self.segment_buffer = bytearray()

        self.segments_produced += 1
        frame_count = len(pcm) // (SAMPLE_WIDTH_BYTES * self.channels)
        segment = AudioSegment(
            data=encode_wav(pcm, self.sample_rate, self.channels) if pcm else b"",
            frame_count=frame_count,
            sequence_number=self.segments_produced,
            duration_seconds=frame_count / float(self.sample_rate),
        )
        logger.debug(f"Rotated segment #{segment.sequence_number}: "
                     f"{segment.frame_count} frames ({segment.duration_seconds:.2f}s)")
        return segment

    def close(self) -> None:
        """Stop capture and release the device. Buffered audio is discarded."""
        capture, self.capture = self.capture, None
        if capture is not None:
            capture.stop_recording()
            logger.info("AudioChunker closed")
        with self.lock:
            self.segment_buffer = bytearray()
