"""Session controller: the only owner of the active provider and session state."""

import asyncio
import logging
from typing import Callable, Optional

from ..errors import TranscriptionError, UnsupportedProviderError
from ..models.session import SessionConfig, SessionState
from ..models.transcription import TranscriptionResult
from ..transcription.aggregator import FinalizationAggregator
from ..transcription.base import AbstractTranscriptionProvider
from ..transcription.publisher import TranscriptPublisher

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[SessionConfig], AbstractTranscriptionProvider]


class SessionController:
    """Starts, stops and reconfigures transcription sessions.

    Holds at most one provider. Every provider callback is bound to the
    session epoch it was created for, so events from a provider that has
    since been stopped are dropped.
    """

    def __init__(self,
                 provider_factory: ProviderFactory,
                 aggregator: FinalizationAggregator,
                 publisher: Optional[TranscriptPublisher] = None,
                 settle_delay: float = 0.25):
        """Initialize session controller.

        Args:
            provider_factory: Builds a provider for a SessionConfig
            aggregator: Receives every result of the active session
            publisher: Receives errors and state changes
            settle_delay: Pause between stop and start when reconfiguring
        """
        self.provider_factory = provider_factory
        self.aggregator = aggregator
        self.publisher = publisher
        self.settle_delay = settle_delay

        self.state = SessionState.IDLE
        self.config: Optional[SessionConfig] = None
        self.provider: Optional[AbstractTranscriptionProvider] = None
        self.epoch = 0
        self.last_error: Optional[TranscriptionError] = None
        self.retired: Optional[AbstractTranscriptionProvider] = None

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    def _set_state(self, state: SessionState) -> None:
        if state is self.state:
            return
        logger.info(f"Session state: {self.state.value} -> {state.value}")
        self.state = state
        if self.publisher is not None:
            self.publisher.publish_state(state)

    async def start(self, config: SessionConfig) -> None:
        """Start a session with the given provider and language.

        Raises:
            UnsupportedProviderError: If the provider cannot run here
            TranscriptionError: If the provider failed to start
        """
        if self.state is not SessionState.IDLE:
            logger.info("Session already running, stopping it before starting a new one")
            self.stop()

        provider = self.provider_factory(config)
        if not provider.is_supported():
            error = UnsupportedProviderError(config.provider)
            self._report(error)
            raise error

        self.epoch += 1
        epoch = self.epoch
        self.config = config
        self.provider = provider
        self.last_error = None
        self._set_state(SessionState.STARTING)

        try:
            await provider.start(
                config.language,
                on_result=lambda result: self._on_result(epoch, result),
                on_error=lambda error: self._on_error(epoch, error),
            )
        except Exception as e:
            provider.stop()
            self.retired = provider
            if epoch != self.epoch:
                logger.debug(f"Ignoring start failure of a stopped session: {e}")
                return
            error = e if isinstance(e, TranscriptionError) else TranscriptionError(
                "start-failed", f"Failed to start {config.provider} session: {e}")
            logger.error(f"Failed to start {config.provider} session: {e}")
            self.provider = None
            self._set_state(SessionState.IDLE)
            self._report(error)
            if error is e:
                raise
            raise error from e

        if epoch != self.epoch:
            # stop() was called while the provider was starting
            provider.stop()
            return

        self._set_state(SessionState.ACTIVE)
        logger.info(f"Session started: provider={config.provider}, language={config.language}")

    def stop(self) -> None:
        """Stop the session, committing any pending text first. No-op when idle."""
        if self.state is SessionState.IDLE:
            logger.debug("stop() called while idle")
            return

        self._set_state(SessionState.STOPPING)
        self.epoch += 1
        self.aggregator.flush()

        provider, self.provider = self.provider, None
        if provider is not None:
            provider.stop()
            self.retired = provider
        self._set_state(SessionState.IDLE)
        logger.info("Session stopped")

    async def wait_closed(self) -> None:
        """Wait until the most recently stopped provider has released its resources."""
        provider, self.retired = self.retired, None
        if provider is not None:
            await provider.wait_closed()

    async def reconfigure(self, config: SessionConfig) -> None:
        """Switch language or provider, restarting the session if it is running."""
        if self.state is SessionState.IDLE:
            self.config = config
            return

        logger.info(f"Reconfiguring session: {self.config} -> {config}")
        self.stop()
        await self.wait_closed()
        await asyncio.sleep(self.settle_delay)
        await self.start(config)

    def _on_result(self, epoch: int, result: TranscriptionResult) -> None:
        if epoch != self.epoch:
            logger.debug("Discarding result from a stopped session")
            return
        self.aggregator.handle_result(result)

    def _on_error(self, epoch: int, error: TranscriptionError) -> None:
        if epoch != self.epoch:
            logger.debug(f"Discarding error from a stopped session: {error}")
            return

        self._report(error)
        if error.fatal:
            logger.error(f"Fatal transcription error, stopping session: {error}")
            self.stop()
        else:
            logger.warning(f"Transcription error: {error}")

    def _report(self, error: TranscriptionError) -> None:
        self.last_error = error
        if self.publisher is not None:
            self.publisher.publish_error(error)
