"""Publishes session output on pubsub topics for the presentation layer."""

import logging
from typing import Callable
from pubsub import pub

from ..errors import TranscriptionError
from ..models.session import SessionState
from ..models.transcription import MessageLogEntry

logger = logging.getLogger(__name__)

LIVE_TEXT_TOPIC = "transcript_live"
ENTRY_TOPIC = "transcript_entry"
ERROR_TOPIC = "transcript_error"
STATE_TOPIC = "session_state"


class TranscriptPublisher:
    """Publishes live text, committed entries, errors and state changes using pubsub.pub."""

    def __init__(self, prefix: str = ""):
        """Initialize transcript publisher.

        Args:
            prefix: Optional topic prefix, e.g. to run two sessions side by side
        """
        self.prefix = f"{prefix}_" if prefix else ""
        self.live_text_topic = self.prefix + LIVE_TEXT_TOPIC
        self.entry_topic = self.prefix + ENTRY_TOPIC
        self.error_topic = self.prefix + ERROR_TOPIC
        self.state_topic = self.prefix + STATE_TOPIC
        logger.info(f"TranscriptPublisher initialized (entry topic: {self.entry_topic})")

    def publish_live_text(self, text: str) -> None:
        pub.sendMessage(self.live_text_topic, text=text)

    def publish_entry(self, entry: MessageLogEntry) -> None:
        pub.sendMessage(self.entry_topic, entry=entry)
        logger.debug(f"Published entry: {entry.timestamp}")

    def publish_error(self, error: TranscriptionError) -> None:
        pub.sendMessage(self.error_topic, error=error)

    def publish_state(self, state: SessionState) -> None:
        pub.sendMessage(self.state_topic, state=state)
        logger.debug(f"Published session state: {state.value}")

    def get_entry_callback(self) -> Callable[[MessageLogEntry], None]:
        return self.publish_entry

    def get_live_text_callback(self) -> Callable[[str], None]:
        return self.publish_live_text
