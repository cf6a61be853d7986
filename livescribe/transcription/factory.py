"""Builds the provider selected by configuration."""

import asyncio
import logging
from functools import partial

from .base import AbstractTranscriptionProvider
from .chunked import ChunkedHttpTranscriber, OPENAI_BACKEND, MISTRAL_BACKEND
from .google_engine import GoogleStreamingEngine
from .streaming import StreamingRecognizer
from .websocket import WebSocketStreamingTranscriber
from ..audio.capture import microphone_available
from ..audio.chunker import AudioChunker
from ..config import LivescribeConfig, PROVIDER_KINDS

logger = logging.getLogger(__name__)

HTTP_BACKENDS = {
    "openai": OPENAI_BACKEND,
    "mistral": MISTRAL_BACKEND,
}


def _google_engine_factory(config: LivescribeConfig, loop: asyncio.AbstractEventLoop):
    def factory():
        return GoogleStreamingEngine(
            credentials_path=config.get_google_credentials_path(),
            loop=loop,
            sample_rate=config.get('audio.sample_rate'),
            chunk_size=config.get('audio.chunk_size'),
            use_enhanced=config.get('google_cloud.use_enhanced_model', True),
            enable_automatic_punctuation=config.get('google_cloud.enable_automatic_punctuation', True),
        )
    return factory


def create_provider(kind: str,
                    config: LivescribeConfig,
                    loop: asyncio.AbstractEventLoop) -> AbstractTranscriptionProvider:
    """Create the transcription provider for `kind`.

    Raises:
        ValueError: If `kind` is not a known provider
    """
    logger.info(f"Creating '{kind}' transcription provider")

    if kind == "streaming":
        return StreamingRecognizer(
            engine_factory=_google_engine_factory(config, loop),
            loop=loop,
            restart_backoff=config.get_seconds('session.restart_backoff_ms'),
            capability_probe=lambda: config.get_google_credentials_path() is not None and microphone_available(),
        )

    if kind in HTTP_BACKENDS:
        return ChunkedHttpTranscriber(
            backend=HTTP_BACKENDS[kind],
            api_key=config.get_api_key(kind),
            loop=loop,
            rotation_interval=config.get_seconds('session.chunk_interval_ms'),
            chunker_factory=partial(
                AudioChunker,
                sample_rate=config.get('audio.sample_rate'),
                chunk_size=config.get('audio.chunk_size'),
                channels=config.get('audio.channels'),
            ),
        )

    if kind == "elevenlabs":
        return WebSocketStreamingTranscriber(
            api_key=config.get_api_key(kind),
            loop=loop,
            sample_rate=config.get('audio.sample_rate'),
        )

    raise ValueError(f"Unknown transcription provider '{kind}', expected one of {PROVIDER_KINDS}")
