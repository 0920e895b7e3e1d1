"""The tool-call loop driving one user exchange with the Model Service.

One exchange:

    awaiting-model -> executing-tools -> awaiting-model -> ... -> done

Each round sends the whole history plus the tool schema. If the reply asks
for tools, they run one at a time in the order requested and their results
go back to the model in a single user turn. A reply without tool calls is
the final answer. Rounds are capped; running out of rounds without an
answer fails the exchange.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Protocol

from transit_assistant.conversation.model_client import ModelService, ModelServiceError
from transit_assistant.conversation.usage import TokenUsage
from transit_assistant.models.conversation import Message, ToolResultBlock, Usage
from transit_assistant.tools.definitions import TOOL_DEFINITIONS
from transit_assistant.tools.executor import ToolExecutor

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 10
DEFAULT_MAX_TOKENS = 1024


class ExchangeError(Exception):
    """Base class for exchange failures."""


class TooManyIterationsError(ExchangeError):
    """The model kept calling tools past the round limit."""

    def __init__(self, max_iterations: int, context: "ExchangeContext"):
        super().__init__(f"Too many tool call iterations (limit {max_iterations})")
        self.max_iterations = max_iterations
        self.context = context


class ExchangeInProgressError(ExchangeError):
    """A new request arrived while an exchange was still running."""


class ExchangeCancelledError(ExchangeError):
    """The exchange was abandoned; its result was discarded."""


@dataclass(frozen=True)
class ExchangeContext:
    """Conversation state threaded through each round.

    Every step returns a new context; history is only ever appended to.
    """

    history: tuple[Message, ...] = ()
    usage: TokenUsage = field(default_factory=TokenUsage)
    rounds: int = 0

    def append(self, *messages: Message) -> "ExchangeContext":
        return replace(self, history=self.history + messages)

    def add_usage(self, usage: Usage) -> "ExchangeContext":
        return replace(self, usage=self.usage.add(usage))


@dataclass(frozen=True)
class ExchangeResult:
    text: str
    context: ExchangeContext


class ExchangeObserver(Protocol):
    def record(self, entry_type: str, data: dict[str, Any]) -> None: ...


class ExchangeLoop:
    """Runs exchanges against one model and one tool executor."""

    def __init__(
        self,
        model: ModelService,
        executor: ToolExecutor,
        system_prompt: str,
        tools: list[dict[str, Any]] | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        observer: ExchangeObserver | None = None,
    ):
        self._model = model
        self._executor = executor
        self.system_prompt = system_prompt
        self._tools = tools if tools is not None else TOOL_DEFINITIONS
        self.max_iterations = max_iterations
        self._max_tokens = max_tokens
        self._observer = observer

    def _report(self, entry_type: str, data: dict[str, Any]) -> None:
        """Hand an event to the observer. Observer failures never reach the exchange."""
        if self._observer is None:
            return
        try:
            self._observer.record(entry_type, data)
        except Exception as e:
            logger.warning(f"Exchange observer failed on {entry_type}: {e}")

    async def run_exchange(self, context: ExchangeContext, user_message: str) -> ExchangeResult:
        """Run one exchange to completion.

        Args:
            context: History and token totals from previous exchanges.
            user_message: The user's new message.

        Returns:
            ExchangeResult with the final answer and the updated context.

        Raises:
            TooManyIterationsError: If no final answer came within max_iterations rounds.
            ModelServiceError: If the Model Service fails.
        """
        context = replace(context.append(Message(role="user", content=user_message)), rounds=0)
        self._report("user_input", {"transcript": user_message})

        for round_number in range(1, self.max_iterations + 1):
            context = replace(context, rounds=round_number)
            logger.debug(f"Round {round_number}: sending {len(context.history)} messages")
            self._report(
                "system",
                {
                    "message": f"Sending to model (iteration {round_number})",
                    "messageCount": len(context.history),
                },
            )

            try:
                response = await self._model.create_message(
                    system=self.system_prompt,
                    messages=list(context.history),
                    tools=self._tools,
                    max_tokens=self._max_tokens,
                )
            except ModelServiceError as e:
                logger.warning(f"Model Service failed in round {round_number}: {e}")
                self._report("error", {"message": str(e), "round": round_number})
                raise

            context = context.add_usage(response.usage)
            self._report(
                "assistant_response",
                {
                    "content": [block.model_dump(mode="json") for block in response.content],
                    "stopReason": response.stop_reason,
                    "usage": response.usage.model_dump(),
                },
            )

            context = context.append(Message(role="assistant", content=response.content))
            tool_uses = response.tool_uses
            if not tool_uses:
                return ExchangeResult(text=response.text, context=context)

            results: list[ToolResultBlock] = []
            for tool_use in tool_uses:
                self._report(
                    "tool_call", {"id": tool_use.id, "name": tool_use.name, "input": tool_use.input}
                )
                content = await self._executor.execute(tool_use.name, tool_use.input)
                self._report(
                    "tool_result", {"id": tool_use.id, "name": tool_use.name, "result": content}
                )
                results.append(ToolResultBlock(tool_use_id=tool_use.id, content=content))

            context = context.append(Message(role="user", content=results))

        error = TooManyIterationsError(self.max_iterations, context)
        logger.warning(str(error))
        self._report("error", {"message": str(error)})
        raise error
