"""Assistant session: owns the conversation between exchanges."""

import asyncio
import logging
from enum import Enum

from transit_assistant.conversation.debug_log import DebugLog
from transit_assistant.conversation.exchange import (
    ExchangeCancelledError,
    ExchangeContext,
    ExchangeInProgressError,
    ExchangeLoop,
)
from transit_assistant.conversation.model_client import ModelService
from transit_assistant.conversation.prompts import build_system_prompt
from transit_assistant.conversation.speech import SpeechOutput, speak_safely
from transit_assistant.conversation.usage import TokenUsage
from transit_assistant.data.backend import BackendUnavailableError, TransitBackend
from transit_assistant.data.config import AssistantConfig
from transit_assistant.services.datetime_service import get_current_datetime
from transit_assistant.tools.executor import ToolExecutor

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    SPEAKING = "speaking"


class AssistantSession:
    """One user's conversation with the assistant.

    Only one exchange runs at a time. A failed or cancelled exchange leaves
    the history as it was before the request and the session idle.

    Usage:
        session = AssistantSession(loop, backend, speech=ConsoleSpeechOutput())
        answer = await session.ask("Next bus from Gare Centrale?")
    """

    def __init__(
        self,
        loop: ExchangeLoop,
        backend: TransitBackend | None = None,
        speech: SpeechOutput | None = None,
        debug_log: DebugLog | None = None,
    ):
        self._loop = loop
        self._backend = backend
        self._speech = speech
        self.debug_log = debug_log
        self._context = ExchangeContext()
        self._state = SessionState.IDLE
        self._task: asyncio.Task | None = None
        self._generation = 0
        self.last_response: str = ""
        self.last_error: str | None = None

    @classmethod
    def from_config(
        cls,
        config: AssistantConfig,
        backend: TransitBackend,
        model: ModelService,
        speech: SpeechOutput | None = None,
    ) -> "AssistantSession":
        """Wire a session from configuration."""
        debug_log = DebugLog()
        now = get_current_datetime(tz=config.timezone) if config.inject_current_datetime else None
        loop = ExchangeLoop(
            model,
            ToolExecutor(backend, timezone=config.timezone),
            system_prompt=build_system_prompt(config, now),
            max_iterations=config.max_iterations,
            max_tokens=config.max_output_tokens,
            observer=debug_log,
        )
        return cls(loop, backend=backend, speech=speech, debug_log=debug_log)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def context(self) -> ExchangeContext:
        return self._context

    @property
    def usage(self) -> TokenUsage:
        return self._context.usage

    def _record(self, entry_type: str, data: dict) -> None:
        if self.debug_log is not None:
            self.debug_log.record(entry_type, data)

    async def ask(self, text: str) -> str:
        """Run one exchange and speak the answer.

        Raises:
            ExchangeInProgressError: If another exchange is running.
            BackendUnavailableError: If the transit data is not loaded.
            ExchangeCancelledError: If cancel() was called while this ran.
            TooManyIterationsError, ModelServiceError: If the exchange failed.
        """
        if self._state != SessionState.IDLE:
            raise ExchangeInProgressError("An exchange is already in progress")
        if self._backend is not None and not self._backend.is_ready:
            self.last_error = "Transit data is not loaded yet"
            raise BackendUnavailableError(self.last_error)

        generation = self._generation
        self._state = SessionState.PROCESSING
        self.last_error = None
        try:
            task = asyncio.create_task(self._loop.run_exchange(self._context, text))
            self._task = task
            try:
                result = await task
            except asyncio.CancelledError:
                if generation != self._generation:
                    raise ExchangeCancelledError("Exchange cancelled") from None
                raise
            finally:
                if self._task is task:
                    self._task = None

            # Results that arrive after cancel() are dropped
            if generation != self._generation:
                raise ExchangeCancelledError("Exchange cancelled")

            self._context = result.context
            self.last_response = result.text

            if self._speech is not None and result.text:
                self._state = SessionState.SPEAKING
                await speak_safely(self._speech, result.text)
            return result.text
        except ExchangeCancelledError:
            logger.info("Exchange cancelled, result discarded")
            raise
        except Exception as e:
            self.last_error = str(e)
            self._record("error", {"message": str(e)})
            raise
        finally:
            if generation == self._generation:
                self._state = SessionState.IDLE

    def cancel(self) -> None:
        """Abandon the running exchange and stop speaking."""
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        if self._speech is not None:
            self._speech.stop()
        self._state = SessionState.IDLE

    def reset(self) -> None:
        """Cancel anything running and forget the conversation."""
        self.cancel()
        self._context = ExchangeContext()
        self.last_response = ""
        self.last_error = None
        if self.debug_log is not None:
            self.debug_log.clear()
        self._record("system", {"message": "Conversation reset"})
