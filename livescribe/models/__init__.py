"""Data models for the livescribe application."""

from .transcription import TranscriptionResult, MessageLogEntry
from .audio import AudioStats, AudioSegment
from .events import AudioEvent
from .session import SessionState, SessionConfig, locale_tag

__all__ = [
    "TranscriptionResult",
    "MessageLogEntry",
    "AudioStats",
    "AudioSegment",
    "AudioEvent",
    "SessionState",
    "SessionConfig",
    "locale_tag",
]
