"""Main application entry point for livescribe."""

import sys
import asyncio
import argparse
import logging
import webbrowser
from pathlib import Path
from typing import Dict, Optional

from .config import LivescribeConfig, PROVIDER_KINDS
from .errors import TranscriptionError
from .models.session import SessionConfig, SessionState, LOCALE_TAGS
from .services.session_controller import SessionController
from .transcription.aggregator import FinalizationAggregator, TriggerAction
from .transcription.factory import create_provider
from .transcription.publisher import TranscriptPublisher
from .ui.console import ConsolePresenter

logger = logging.getLogger(__name__)


def build_trigger_actions(config: LivescribeConfig, presenter: ConsolePresenter) -> Dict[str, TriggerAction]:
    """Turn configured trigger phrases into side-effecting callbacks."""
    actions: Dict[str, TriggerAction] = {}
    for trigger in config.get_triggers():
        phrase = trigger['phrase']
        if trigger.get('open_url'):
            url = trigger['open_url']
            actions[phrase] = lambda entry, url=url: webbrowser.open(url, new=2)
        elif trigger.get('message'):
            message = trigger['message']
            actions[phrase] = lambda entry, message=message: presenter.console.print(message, style="bold green")
        else:
            raise ValueError(f"Trigger '{phrase}' needs either 'open_url' or 'message'")
    return actions


async def wait_for_session(controller: SessionController,
                           duration: Optional[float] = None,
                           poll_interval: float = 1.0) -> None:
    """Return once the session has gone idle or `duration` seconds have passed."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + duration if duration else None
    while controller.state is not SessionState.IDLE:
        if deadline is None:
            await asyncio.sleep(poll_interval)
            continue
        remaining = deadline - loop.time()
        if remaining <= 0:
            return
        await asyncio.sleep(min(poll_interval, remaining))


class Server:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        self.config = LivescribeConfig(config_path)
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))

    async def run(self, session_config: SessionConfig, duration: Optional[int]) -> int:
        loop = asyncio.get_running_loop()

        publisher = TranscriptPublisher()
        presenter = ConsolePresenter(publisher, keywords=self.config.get_keywords())
        aggregator = FinalizationAggregator(
            loop=loop,
            debounce_seconds=self.config.get_seconds('session.debounce_ms'),
            entry_callback=publisher.get_entry_callback(),
            live_text_callback=publisher.get_live_text_callback(),
            triggers=build_trigger_actions(self.config, presenter),
        )
        controller = SessionController(
            provider_factory=lambda cfg: create_provider(cfg.provider, self.config, loop),
            aggregator=aggregator,
            publisher=publisher,
            settle_delay=self.config.get_seconds('session.settle_delay_ms'),
        )

        try:
            await controller.start(session_config)
        except TranscriptionError as e:
            logger.error(f"Could not start session: {e}")
            await controller.wait_closed()
            presenter.close()
            return 1

        try:
            await wait_for_session(controller, duration)
        finally:
            controller.stop()
            await controller.wait_closed()
            presenter.print_log(aggregator.entries)
            presenter.close()

        logger.info(f"Session finished with {len(aggregator.entries)} entries")
        return 0 if controller.last_error is None or not controller.last_error.fatal else 1


def setup_logging(config: LivescribeConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/livescribe.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("livescribe starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def main() -> None:
    """Main entry point for livescribe."""
    parser = argparse.ArgumentParser(
        description="livescribe - resilient live speech-to-text",
        epilog="Press Ctrl+C to stop the session"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (defaults are used when omitted)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (overrides config)"
    )

    parser.add_argument(
        "--provider",
        type=str,
        choices=PROVIDER_KINDS,
        help="Transcription provider (overrides config)"
    )

    parser.add_argument(
        "--language",
        type=str,
        choices=sorted(LOCALE_TAGS),
        help="Spoken language (overrides config)"
    )

    parser.add_argument(
        "--duration",
        type=int,
        help="Stop automatically after this many seconds"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="livescribe v0.1.0"
    )

    args = parser.parse_args()

    try:
        server = Server(args.config, args.log_level)
        defaults = server.config.get_session_config()
        session_config = SessionConfig(
            provider=args.provider or defaults.provider,
            language=args.language or defaults.language,
        )
        exit_code = asyncio.run(server.run(session_config, args.duration))
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
        exit_code = 0
    except (ValueError, FileNotFoundError) as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
