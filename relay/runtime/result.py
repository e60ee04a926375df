"""
Run results.

RunResult is returned by Runner.run(). RunResultStreaming is returned by
Runner.run_streamed() and exposes the event stream while the run is still in
progress; once the stream is drained it carries the same fields.
"""

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, AsyncIterator, TypeVar

from relay.domain.items import RunItem, input_to_messages, items_to_messages
from relay.domain.models import Usage
from relay.exceptions import UserError

if TYPE_CHECKING:
    from relay.agent import Agent
    from relay.domain import RunEvent
    from relay.guardrails import InputGuardrailResult, OutputGuardrailResult
    from relay.llm import ModelResponse

    from .context import RunContext
    from .wire import Wire

T = TypeVar("T")


def _cast_output(output: Any, cls: type[T]) -> T:
    if not isinstance(output, cls):
        raise TypeError(f"Final output is {type(output).__name__}, not {cls.__name__}")
    return output


@dataclass(frozen=True)
class RunResult:
    """
    Attributes:
        input: The input the run was started with
        new_items: Every item produced during the run, in order
        final_output: Final message text, or the parsed output_type instance
        last_agent: Agent that produced the final output
        raw_responses: Model responses, one per turn
        input_guardrail_results: Results of input guardrails that ran
        output_guardrail_results: Results of output guardrails that ran
        context_wrapper: The run's RunContext (caller context and usage)
    """

    input: str | list[dict[str, Any]]
    new_items: tuple[RunItem, ...]
    final_output: Any
    last_agent: "Agent"
    raw_responses: tuple["ModelResponse", ...] = ()
    input_guardrail_results: tuple["InputGuardrailResult", ...] = ()
    output_guardrail_results: tuple["OutputGuardrailResult", ...] = ()
    context_wrapper: "RunContext | None" = None
    run_id: str | None = None
    trace_id: str | None = None

    @property
    def usage(self) -> Usage:
        return self.context_wrapper.usage if self.context_wrapper else Usage()

    @property
    def last_agent_name(self) -> str:
        return self.last_agent.name

    def final_output_as(self, cls: type[T]) -> T:
        return _cast_output(self.final_output, cls)

    def to_input_list(self) -> list[dict[str, Any]]:
        """Original input plus everything produced, as messages for a follow-up run."""
        return input_to_messages(self.input) + items_to_messages(list(self.new_items))

    def __str__(self) -> str:
        return (
            f"RunResult(last_agent={self.last_agent.name!r}, "
            f"items={len(self.new_items)}, final_output={self.final_output!r})"
        )


@dataclass
class RunResultStreaming:
    """
    Handle to a run in progress.

    Read events with `async for event in result.stream_events()`. When the
    run fails, the exception is raised from stream_events() after the
    remaining events have been delivered.
    """

    input: str | list[dict[str, Any]]
    current_agent: "Agent"
    _wire: "Wire" = field(repr=False)
    _task: "asyncio.Task | None" = field(default=None, repr=False)
    _result: RunResult | None = field(default=None, repr=False)

    def _attach(self, task: "asyncio.Task") -> None:
        self._task = task

    @property
    def is_complete(self) -> bool:
        return self._task is not None and self._task.done()

    async def stream_events(self) -> AsyncIterator["RunEvent"]:
        """
        Yield run events in production order.

        Raises:
            AgentsException: The run failed
            asyncio.CancelledError: The run was cancelled
        """
        async for event in self._wire.read():
            yield event
        if self._task is not None:
            self._result = await self._task

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    @property
    def result(self) -> RunResult:
        if self._result is None:
            if self._task is not None and self._task.done() and not self._task.cancelled():
                self._result = self._task.result()
            else:
                raise UserError("Streamed run has not completed; drain stream_events() first")
        return self._result

    @property
    def final_output(self) -> Any:
        return self.result.final_output

    @property
    def new_items(self) -> tuple[RunItem, ...]:
        return self.result.new_items

    @property
    def last_agent(self) -> "Agent":
        return self.result.last_agent

    def final_output_as(self, cls: type[T]) -> T:
        return _cast_output(self.final_output, cls)

    def to_input_list(self) -> list[dict[str, Any]]:
        return self.result.to_input_list()


__all__ = ["RunResult", "RunResultStreaming"]
