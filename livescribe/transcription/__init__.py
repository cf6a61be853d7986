"""Transcription providers and result aggregation for livescribe."""

from .base import AbstractTranscriptionProvider
from .streaming import StreamingRecognizer, RecognitionEngine, RecognitionSegment, TRANSIENT_ERRORS
from .google_engine import GoogleStreamingEngine
from .chunked import ChunkedHttpTranscriber, HttpBackend, OPENAI_BACKEND, MISTRAL_BACKEND
from .websocket import WebSocketStreamingTranscriber
from .aggregator import FinalizationAggregator
from .publisher import TranscriptPublisher
from .factory import create_provider

__all__ = [
    "AbstractTranscriptionProvider",
    "StreamingRecognizer",
    "RecognitionEngine",
    "RecognitionSegment",
    "TRANSIENT_ERRORS",
    "GoogleStreamingEngine",
    "ChunkedHttpTranscriber",
    "HttpBackend",
    "OPENAI_BACKEND",
    "MISTRAL_BACKEND",
    "WebSocketStreamingTranscriber",
    "FinalizationAggregator",
    "TranscriptPublisher",
    "create_provider",
]
