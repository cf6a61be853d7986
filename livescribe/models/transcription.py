"""Transcription-related data models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class TranscriptionResult:
    """A single recognition event emitted by a provider."""
    text: str
    is_final: bool


@dataclass(frozen=True)
class MessageLogEntry:
    """A committed transcript entry. Never mutated after creation."""
    text: str
    timestamp: str  # HH:MM:SS, local clock
    created_at: datetime

    @classmethod
    def create(cls, text: str, now: Optional[datetime] = None) -> "MessageLogEntry":
        now = now or datetime.now()
        return cls(text=text, timestamp=now.strftime("%H:%M:%S"), created_at=now)

    def relative_age(self, now: Optional[datetime] = None) -> str:
        """Coarse human-readable age of the entry (e.g. "3 minutes ago")."""
        now = now or datetime.now()
        seconds = max(0, int((now - self.created_at).total_seconds()))
        minutes = seconds // 60
        hours = minutes // 60

        if seconds < 60:
            return "just now" if seconds <= 1 else f"{seconds} seconds ago"
        if minutes < 60:
            return "1 minute ago" if minutes == 1 else f"{minutes} minutes ago"
        return "1 hour ago" if hours == 1 else f"{hours} hours ago"
