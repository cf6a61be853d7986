"""Debounced aggregation of transcription fragments into log entries.

Some providers split one spoken utterance into many "final" fragments, and
chunked providers deliver one final per upload. The aggregator joins every
final fragment that arrives within the debounce window into a single
`MessageLogEntry`:

 - every event refreshes the live text (pending text + current hypothesis)
 - a final fragment is appended to the pending text and (re)arms one timer
 - timer expiry commits the pending text as a new entry (newest first)
 - `flush()` commits immediately, cancelling the timer first

Trigger phrases are matched against committed text only.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from ..models.transcription import MessageLogEntry, TranscriptionResult

logger = logging.getLogger(__name__)

TriggerAction = Callable[[MessageLogEntry], None]


class FinalizationAggregator:
    """Turns a stream of interim/final results into discrete log entries."""

    def __init__(self,
                 loop: Optional[asyncio.AbstractEventLoop] = None,
                 debounce_seconds: float = 1.5,
                 entry_callback: Optional[Callable[[MessageLogEntry], None]] = None,
                 live_text_callback: Optional[Callable[[str], None]] = None,
                 triggers: Optional[Dict[str, TriggerAction]] = None,
                 clock: Callable[[], datetime] = datetime.now):
        """Initialize the aggregator.

        Args:
            loop: Loop used for the debounce timer (defaults to the running loop)
            debounce_seconds: Quiet period after the last final fragment
            entry_callback: Receives every committed MessageLogEntry
            live_text_callback: Receives the evolving current-utterance text
            triggers: Phrase -> action, checked in insertion order
            clock: Source of entry timestamps
        """
        self.loop = loop
        self.debounce_seconds = debounce_seconds
        self.entry_callback = entry_callback
        self.live_text_callback = live_text_callback
        self.triggers: Dict[str, TriggerAction] = dict(triggers or {})
        self.clock = clock

        self.entries: List[MessageLogEntry] = []
        self.pending_text = ""
        self.live_text = ""
        self.timer = None

    def handle_result(self, result: TranscriptionResult) -> None:
        """Consume one provider event."""
        if result.is_final:
            fragment = result.text.strip()
            if fragment:
                self.pending_text = f"{self.pending_text} {fragment}".strip()
            self._set_live_text(self.pending_text)
            self._arm_timer()
        else:
            self._set_live_text(f"{self.pending_text} {result.text}".strip())

    def _arm_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
        if self.loop is None:
            self.loop = asyncio.get_running_loop()
        self.timer = self.loop.call_later(self.debounce_seconds, self._on_debounce_expired)

    def _on_debounce_expired(self) -> None:
        self.timer = None
        self._commit()

    def flush(self) -> Optional[MessageLogEntry]:
        """Commit pending text now. Used when a session stops or is reconfigured."""
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None
        return self._commit()

    def _commit(self) -> Optional[MessageLogEntry]:
        text, self.pending_text = self.pending_text, ""
        self._set_live_text("")
        if not text:
            return None

        entry = MessageLogEntry.create(text, self.clock())
        self.entries.insert(0, entry)
        logger.info(f"Committed entry at {entry.timestamp}: '{text[:50]}'")

        if self.entry_callback is not None:
            self.entry_callback(entry)
        self._run_triggers(entry)
        return entry

    def _run_triggers(self, entry: MessageLogEntry) -> None:
        lowered = entry.text.lower()
        for phrase, action in self.triggers.items():
            if phrase.lower() in lowered:
                logger.info(f"Trigger phrase '{phrase}' matched")
                try:
                    action(entry)
                except Exception as e:
                    logger.error(f"Trigger action for '{phrase}' failed: {e}", exc_info=True)
                break

    def _set_live_text(self, text: str) -> None:
        if text == self.live_text:
            return
        self.live_text = text
        if self.live_text_callback is not None:
            self.live_text_callback(text)

    @property
    def has_pending(self) -> bool:
        return bool(self.pending_text)
