"""Integration tests: controller, provider, aggregator, publisher and console together."""

import asyncio
import io
from datetime import datetime

import pytest
from rich.console import Console

from livescribe.models.session import SessionConfig, SessionState
from livescribe.services.session_controller import SessionController
from livescribe.transcription.aggregator import FinalizationAggregator
from livescribe.transcription.publisher import TranscriptPublisher
from livescribe.transcription.streaming import StreamingRecognizer
from livescribe.ui.console import ConsolePresenter
from tests.conftest import FakeEngine


class Session:
    """Everything the application wires up, on a fake loop with a fake engine."""

    def __init__(self, loop, prefix, triggers=None):
        self.loop = loop
        self.engines = []
        self.console = Console(file=io.StringIO(), width=120, color_system=None)
        self.publisher = TranscriptPublisher(prefix=prefix)
        self.presenter = ConsolePresenter(self.publisher, console=self.console)
        self.aggregator = FinalizationAggregator(
            loop=loop,
            debounce_seconds=1.5,
            entry_callback=self.publisher.get_entry_callback(),
            live_text_callback=self.publisher.get_live_text_callback(),
            triggers=triggers,
            clock=lambda: datetime(2024, 5, 1, 12, 0, 0),
        )
        self.controller = SessionController(self.build_provider, self.aggregator,
                                            publisher=self.publisher, settle_delay=0)

    def build_provider(self, config):
        def engine_factory():
            engine = FakeEngine()
            self.engines.append(engine)
            return engine
        return StreamingRecognizer(engine_factory=engine_factory, loop=self.loop, restart_backoff=1.0)

    @property
    def output(self):
        return self.console.file.getvalue()

    def close(self):
        self.controller.stop()
        self.presenter.close()


@pytest.fixture
def session(fake_loop, request):
    s = Session(fake_loop, prefix=request.node.name.replace("[", "_").replace("]", ""))
    yield s
    s.close()


@pytest.mark.integration
class TestSessionFlow:

    def test_utterance_becomes_one_printed_entry(self, session, fake_loop):
        asyncio.run(session.controller.start(SessionConfig(provider="streaming", language="en")))
        engine = session.engines[0]

        engine.emit_result(("good", False))
        engine.emit_result(("good morning", True))
        fake_loop.advance(0.3)
        engine.emit_result(("every", False))
        engine.emit_result(("everyone", True))
        fake_loop.advance(1.5)

        assert [e.text for e in session.aggregator.entries] == ["good morning everyone"]
        assert "[12:00:00] good morning everyone" in session.output
        assert "TRANSCRIBING" in session.output

    def test_transient_error_is_invisible(self, session, fake_loop):
        asyncio.run(session.controller.start(SessionConfig(provider="streaming")))
        engine = session.engines[0]

        engine.emit_error("no-speech")
        engine.emit_end()
        fake_loop.advance(1.0)
        engine.emit_result(("still here", True))
        fake_loop.advance(1.5)

        assert session.controller.state is SessionState.ACTIVE
        assert session.controller.last_error is None
        assert engine.start_calls == 2
        assert "Error" not in session.output
        assert session.aggregator.entries[0].text == "still here"

    def test_terminal_error_ends_session(self, session, fake_loop):
        asyncio.run(session.controller.start(SessionConfig(provider="streaming")))
        engine = session.engines[0]
        engine.emit_result(("half a sentence", True))

        engine.emit_error("not-allowed", "Microphone permission denied")
        fake_loop.advance(5)

        assert session.controller.state is SessionState.IDLE
        assert engine.start_calls == 1
        assert session.aggregator.entries[0].text == "half a sentence"
        assert "Microphone permission denied" in session.output
        assert "STOPPED" in session.output

    def test_language_switch_commits_and_restarts(self, session, fake_loop):
        asyncio.run(session.controller.start(SessionConfig(provider="streaming", language="en")))
        session.engines[0].emit_result(("hello", True))

        asyncio.run(session.controller.reconfigure(SessionConfig(provider="streaming", language="fi")))
        session.engines[0].emit_result(("stale", True))
        session.engines[1].emit_result(("hei", True))
        fake_loop.advance(1.5)

        assert [e.text for e in session.aggregator.entries] == ["hei", "hello"]
        assert session.engines[0].listening is False
        assert session.engines[1].language == "fi-FI"

    def test_trigger_runs_on_commit(self, fake_loop):
        fired = []
        session = Session(fake_loop, prefix="triggerflow", triggers={"rickroll": fired.append})
        try:
            asyncio.run(session.controller.start(SessionConfig(provider="streaming")))
            session.engines[0].emit_result(("let's rickroll", False))
            assert fired == []

            session.engines[0].emit_result(("let's rickroll them", True))
            fake_loop.advance(1.5)
        finally:
            session.close()

        assert [e.text for e in fired] == ["let's rickroll them"]
