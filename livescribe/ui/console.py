"""Console presenter: prints session output as it is published."""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from pubsub import pub
from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..errors import TranscriptionError
from ..models.session import SessionState
from ..models.transcription import MessageLogEntry
from ..transcription.publisher import TranscriptPublisher

logger = logging.getLogger(__name__)

KEYWORD_STYLE = "bold black on yellow"

STATE_LABELS = {
    SessionState.IDLE: ("⏹️  STOPPED", "bold yellow"),
    SessionState.STARTING: ("⏳ STARTING", "bold cyan"),
    SessionState.ACTIVE: ("🔴 TRANSCRIBING", "bold red"),
    SessionState.STOPPING: ("⏳ STOPPING", "bold cyan"),
}


class ConsolePresenter:
    """Subscribes to a TranscriptPublisher's topics and renders them with rich."""

    def __init__(self,
                 publisher: TranscriptPublisher,
                 keywords: Optional[List[str]] = None,
                 console: Optional[Console] = None):
        self.publisher = publisher
        self.keywords = keywords or []
        self.console = console or Console()
        self.live_text = ""

        pub.subscribe(self.on_live_text, publisher.live_text_topic)
        pub.subscribe(self.on_entry, publisher.entry_topic)
        pub.subscribe(self.on_error, publisher.error_topic)
        pub.subscribe(self.on_state, publisher.state_topic)

    def highlight(self, text: str) -> Text:
        rendered = Text(text)
        if self.keywords:
            rendered.highlight_words(self.keywords, style=KEYWORD_STYLE, case_sensitive=False)
        return rendered

    def on_live_text(self, text: str) -> None:
        self.live_text = text
        if text:
            self.console.print(Text(f"… {text}", style="italic dim"))

    def on_entry(self, entry: MessageLogEntry) -> None:
        self.console.print(Text.assemble((f"[{entry.timestamp}] ", "dim"), self.highlight(entry.text)))

    def on_error(self, error: TranscriptionError) -> None:
        style = "bold red" if error.fatal else "yellow"
        self.console.print(Text(f"Error: {error.message}", style=style))

    def on_state(self, state: SessionState) -> None:
        label, style = STATE_LABELS[state]
        self.console.print(Text(label, style=style))

    def print_log(self, entries: Sequence[MessageLogEntry], now: Optional[datetime] = None) -> None:
        """Print the session log, newest first, with each entry's age."""
        if not entries:
            self.console.print(Text("No transcript entries", style="dim"))
            return

        now = now or datetime.now()
        table = Table(title="Session log", show_lines=False)
        table.add_column("Time", style="cyan", no_wrap=True)
        table.add_column("Age", style="dim", no_wrap=True)
        table.add_column("Text")
        for entry in entries:
            table.add_row(entry.timestamp, entry.relative_age(now), self.highlight(entry.text))
        self.console.print(table)

    def close(self) -> None:
        for listener, topic in ((self.on_live_text, self.publisher.live_text_topic),
                                (self.on_entry, self.publisher.entry_topic),
                                (self.on_error, self.publisher.error_topic),
                                (self.on_state, self.publisher.state_topic)):
            pub.unsubscribe(listener, topic)
