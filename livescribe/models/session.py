"""Session-related data models."""

from dataclasses import dataclass
from enum import Enum

DEFAULT_LANGUAGE = "en"

LOCALE_TAGS = {
    "en": "en-US",
    "fi": "fi-FI",
}


class SessionState(Enum):
    """Public lifecycle of a transcription session."""
    IDLE = "idle"
    STARTING = "starting"
    ACTIVE = "active"
    STOPPING = "stopping"


def locale_tag(language: str) -> str:
    """Map a short language code to the locale tag engines expect."""
    return LOCALE_TAGS.get(language, LOCALE_TAGS[DEFAULT_LANGUAGE])


@dataclass(frozen=True)
class SessionConfig:
    """What to start: which provider, in which language."""
    provider: str
    language: str = DEFAULT_LANGUAGE

    @property
    def locale(self) -> str:
        return locale_tag(self.language)
