"""
Runner - the run orchestrator.

Drives the turn loop for one run:
1. Build the current agent's messages (instructions + input + items so far)
2. Invoke the model (after the input guardrails, on an agent's first turn)
3. Classify the response into a ModelAction and act on it:
   - tool calls: execute them, append results, loop
   - handoff: run accompanying tools, switch agents, loop
   - final message: run output guardrails, return RunResult
4. Stop with MaxTurnsExceeded once the turn bound is exceeded

Runner.run() awaits completion, Runner.run_streamed() returns immediately
and streams RunEvents through a Wire while the loop runs in a task.
"""

import asyncio
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from pydantic import BaseModel

from relay.agent import AgentRegistry
from relay.config import RunConfig
from relay.domain import (
    HandoffCallItem,
    MessageOutputItem,
    RunEvent,
    RunEventType,
    RunItem,
    ToolCallItem,
    ToolCallOutputItem,
    Usage,
    create_agent_updated_event,
    create_item_event,
    create_run_failed_event,
    input_to_messages,
    items_to_messages,
)
from relay.exceptions import (
    AgentsException,
    MaxTurnsExceeded,
    ModelBehaviorError,
    RunErrorDetails,
    RunTimeoutError,
    UserError,
)
from relay.guardrails import run_input_guardrails, run_output_guardrails
from relay.handoffs import HandoffController
from relay.llm import ModelResponse, ToolCallAccumulator
from relay.tools import ToolExecutor
from relay.tracing import Span, Trace, agent_span, generation_span, get_current_trace, trace
from relay.utils.logging import get_logger

from .actions import (
    FinalMessageAction,
    HandoffAction,
    InvalidAction,
    ToolCallsAction,
    classify_response,
)
from .context import RunContext
from .hooks import HookDispatcher, RunHooks
from .result import RunResult, RunResultStreaming
from .wire import Wire

if TYPE_CHECKING:
    from relay.agent import Agent

    from .control import AbortSignal

logger = get_logger(__name__)

REJECTED_HANDOFF_MESSAGE = "Multiple handoffs detected, ignoring this one."


class RunExecutor:
    """
    State and turn loop of a single run.

    Not reusable: create one per run.
    """

    def __init__(
        self,
        starting_agent: "Agent",
        input: str | list[dict[str, Any]],
        ctx: RunContext,
        run_config: RunConfig,
        hooks: RunHooks | None = None,
        registry: "AgentRegistry | None" = None,
        abort_signal: "AbortSignal | None" = None,
        wire: Wire | None = None,
        streaming: RunResultStreaming | None = None,
    ):
        self.run_id = str(uuid4())
        self.input = input
        self.ctx = ctx
        self.run_config = run_config
        self.hooks = hooks
        self.registry = registry
        self.abort_signal = abort_signal
        self.wire = wire
        self.streaming = streaming

        self.current_agent = starting_agent
        self.current_turn = 0
        self.max_turns = run_config.max_turns

        # History the model sees: original input (possibly filtered by a
        # handoff) followed by model_items. all_items is what the caller sees.
        self.original_input: str | list[dict[str, Any]] = input
        self.model_items: list[RunItem] = []
        self.all_items: list[RunItem] = []

        self.raw_responses: list[ModelResponse] = []
        self.input_guardrail_results: list = []
        self.output_guardrail_results: list = []

        self._agent_started = False
        self._needs_input_guardrails = True
        self._agent_span: Span | None = None
        self._trace: Trace | None = None
        self._hooks: HookDispatcher | None = None
        self._handoffs: HandoffController | None = None
        self._tools: ToolExecutor | None = None
        # Text deltas of a candidate final answer wait here until the output
        # guardrails pass; None when this turn streams them straight through.
        self._held_deltas: list[RunEvent] | None = None

    # --- run lifecycle ---

    async def run(self) -> RunResult:
        self._trace, owns_trace = self._open_trace()
        logger.info(
            "run_started",
            run_id=self.run_id,
            agent=self.current_agent.name,
            max_turns=self.max_turns,
            depth=self.ctx.depth,
        )
        await self._emit(
            RunEvent(
                type=RunEventType.RUN_STARTED,
                run_id=self.run_id,
                agent_name=self.current_agent.name,
                data={"trace_id": self._trace.trace_id},
            )
        )
        try:
            result = await self._run_with_timeout()
        except AgentsException as e:
            if e.run_data is None:
                e.run_data = self._error_details()
            self._trace.mark_error()
            logger.warning(
                "run_failed",
                run_id=self.run_id,
                agent=self.current_agent.name,
                turn=self.current_turn,
                error_type=type(e).__name__,
                error=str(e),
            )
            await self._emit(create_run_failed_event(self.run_id, e, self.current_agent.name))
            raise
        except asyncio.CancelledError as e:
            self._trace.mark_error()
            logger.info("run_cancelled", run_id=self.run_id, agent=self.current_agent.name)
            await self._emit(create_run_failed_event(self.run_id, e, self.current_agent.name))
            raise
        except Exception as e:
            self._trace.mark_error()
            logger.error("run_error", run_id=self.run_id, error=str(e), exc_info=True)
            await self._emit(create_run_failed_event(self.run_id, e, self.current_agent.name))
            raise
        else:
            output = result.final_output
            await self._emit(
                RunEvent(
                    type=RunEventType.RUN_COMPLETED,
                    run_id=self.run_id,
                    agent_name=result.last_agent.name,
                    turn=self.current_turn,
                    data={
                        "final_output": output.model_dump() if isinstance(output, BaseModel) else output,
                        "usage": self.ctx.usage.model_dump(),
                    },
                )
            )
            logger.info(
                "run_completed",
                run_id=self.run_id,
                agent=result.last_agent.name,
                turns=self.current_turn,
                total_tokens=self.ctx.usage.total_tokens,
            )
            return result
        finally:
            if owns_trace:
                self._trace.finish()
            if self.wire is not None:
                await self.wire.close()

    def _open_trace(self) -> tuple[Trace, bool]:
        # Nested runs (agent as tool) join the caller's trace
        current = get_current_trace()
        if current is not None:
            return current, False
        run_trace = trace(
            self.run_config.workflow_name,
            trace_id=self.run_config.trace_id,
            group_id=self.run_config.group_id,
            metadata=self.run_config.trace_metadata,
            disabled=self.run_config.tracing_disabled,
        )
        run_trace.start(mark_as_current=True)
        return run_trace, True

    async def _run_with_timeout(self) -> RunResult:
        timeout = self.run_config.run_timeout
        if timeout is None:
            return await self._loop()
        try:
            return await asyncio.wait_for(self._loop(), timeout)
        except asyncio.TimeoutError:
            raise RunTimeoutError(timeout, "run") from None

    async def _loop(self) -> RunResult:
        try:
            while True:
                if self.abort_signal:
                    self.abort_signal.raise_if_aborted()

                if not self._agent_started:
                    await self._start_agent()

                self.current_turn += 1
                if self.current_turn > self.max_turns:
                    if self._agent_span:
                        self._agent_span.set_error("Max turns exceeded", {"max_turns": self.max_turns})
                    raise MaxTurnsExceeded(self.max_turns)

                logger.debug(
                    "turn_started",
                    run_id=self.run_id,
                    agent=self.current_agent.name,
                    turn=self.current_turn,
                )
                result = await self._guarded(self._run_turn())
                if result is not None:
                    return result
        finally:
            self._finish_agent_span()

    async def _guarded(self, turn) -> RunResult | None:
        timeout = self.run_config.turn_timeout
        if timeout is not None:
            turn = self._with_turn_timeout(turn, timeout)
        if self.abort_signal:
            return await self.abort_signal.guard(turn)
        return await turn

    @staticmethod
    async def _with_turn_timeout(turn, timeout: float) -> RunResult | None:
        try:
            return await asyncio.wait_for(turn, timeout)
        except asyncio.TimeoutError:
            raise RunTimeoutError(timeout, "turn") from None

    async def _start_agent(self) -> None:
        agent = self.current_agent
        self._finish_agent_span()

        self._hooks = HookDispatcher(self.hooks, agent)
        self._handoffs = HandoffController(
            agent,
            registry=self.registry,
            default_input_filter=self.run_config.handoff_input_filter,
            hooks=self._hooks,
            tracing_disabled=self.run_config.tracing_disabled,
        )
        self._tools = ToolExecutor(
            agent.get_all_tools(),
            hooks=self._hooks,
            include_sensitive_data=self.run_config.trace_include_sensitive_data,
            tracing_disabled=self.run_config.tracing_disabled,
        )

        self._agent_span = agent_span(
            agent.name,
            handoffs=[h.agent_name for h in self._handoffs.handoffs],
            tools=[t.name for t in agent.tools],
            output_type=agent.output_type.__name__ if agent.output_type else None,
            disabled=self.run_config.tracing_disabled,
        )
        self._agent_span.start(mark_as_current=True)

        if self.streaming is not None:
            self.streaming.current_agent = agent
        self._agent_started = True

        await self._hooks.on_agent_start(self.ctx)
        await self._emit(create_agent_updated_event(self.run_id, agent.name, self.current_turn + 1))

    def _finish_agent_span(self) -> None:
        if self._agent_span is not None:
            self._agent_span.finish(reset_current=True)
            self._agent_span = None

    # --- one turn ---

    async def _run_turn(self) -> RunResult | None:
        agent = self.current_agent
        messages = await self._build_messages(agent)
        tools = [t.to_openai_schema() for t in agent.tools] + self._handoffs.tool_schemas()

        response = await self._invoke_model(agent, messages, tools)
        self.raw_responses.append(response)

        handoffs = {h.tool_name: h for h in self._handoffs.handoffs}
        action = classify_response(response, agent, set(self._tools.tools_map), handoffs)
        if not isinstance(action, FinalMessageAction):
            await self._release_deltas()

        turn_items: list[RunItem] = []
        if response.content and not isinstance(action, FinalMessageAction):
            await self._record(turn_items, MessageOutputItem(agent_name=agent.name, content=response.content))

        if isinstance(action, InvalidAction):
            logger.warning("model_behavior_error", agent=agent.name, turn=self.current_turn, reason=action.reason)
            if self._agent_span:
                self._agent_span.set_error("Model behavior error", {"reason": action.reason})
            raise ModelBehaviorError(action.reason)

        if isinstance(action, FinalMessageAction):
            return await self._finish(agent, action)

        if isinstance(action, ToolCallsAction):
            await self._record_calls(agent, response.tool_calls, handoffs, turn_items)
            await self._run_tools(agent, action.tool_calls, turn_items)
            self.model_items.extend(turn_items)
            return None

        if isinstance(action, HandoffAction):
            pre_handoff_items = list(self.model_items)
            await self._record_calls(agent, response.tool_calls, handoffs, turn_items)
            await self._run_tools(agent, action.tool_calls, turn_items)
            for call in action.rejected_calls:
                await self._record(
                    turn_items,
                    ToolCallOutputItem(
                        agent_name=agent.name,
                        call_id=call.get("id") or "",
                        tool_name=call["function"]["name"],
                        content=REJECTED_HANDOFF_MESSAGE,
                        is_error=True,
                    ),
                )
            await self._run_handoff(action, pre_handoff_items, turn_items)
            return None

        raise ModelBehaviorError(f"Unhandled model action: {type(action).__name__}")

    async def _build_messages(self, agent: "Agent") -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = []
        system_prompt = await agent.get_system_prompt(self.ctx)
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.extend(input_to_messages(self.original_input))
        messages.extend(items_to_messages(self.model_items))
        return messages

    def _guardrail_input(self) -> str | list[dict[str, Any]]:
        if not self.model_items:
            return self.original_input
        return input_to_messages(self.original_input) + items_to_messages(self.model_items)

    async def _invoke_model(
        self, agent: "Agent", messages: list[dict[str, Any]], tools: list[dict[str, Any]]
    ) -> ModelResponse:
        """Invoke the model, running input guardrails first on an agent's first turn."""
        guardrails: list = []
        if self._needs_input_guardrails:
            if self.current_turn == 1:
                guardrails.extend(self.run_config.input_guardrails)
            guardrails.extend(agent.input_guardrails)
            self._needs_input_guardrails = False

        if not guardrails:
            return await self._call_model(agent, messages, tools)

        check = run_input_guardrails(
            guardrails,
            agent,
            self._guardrail_input(),
            self.ctx,
            tracing_disabled=self.run_config.tracing_disabled,
        )

        if not self.run_config.input_guardrails_parallel:
            self.input_guardrail_results.extend(await check)
            return await self._call_model(agent, messages, tools)

        guardrail_task = asyncio.ensure_future(check)
        model_task = asyncio.ensure_future(self._call_model(agent, messages, tools))
        try:
            results = await guardrail_task
        except BaseException:
            model_task.cancel()
            await asyncio.gather(model_task, return_exceptions=True)
            raise
        self.input_guardrail_results.extend(results)
        return await model_task

    async def _call_model(
        self, agent: "Agent", messages: list[dict[str, Any]], tools: list[dict[str, Any]]
    ) -> ModelResponse:
        model = self.run_config.model or agent.model
        if model is None:
            raise UserError(f"Agent '{agent.name}' has no model and RunConfig.model is not set")

        output_schema = agent.output_type.model_json_schema() if agent.output_type else None
        sensitive = self.run_config.trace_include_sensitive_data

        self._held_deltas = [] if self._holds_final_text(agent) else None

        with generation_span(
            model.id,
            input=messages if sensitive else None,
            disabled=self.run_config.tracing_disabled,
        ) as span:
            content_parts: list[str] = []
            accumulator = ToolCallAccumulator()
            usage_data = None
            finish_reason = None

            async for chunk in model.arun_stream(messages, tools=tools or None, output_schema=output_schema):
                if chunk.content:
                    content_parts.append(chunk.content)
                    delta = RunEvent(
                        type=RunEventType.TEXT_DELTA,
                        run_id=self.run_id,
                        agent_name=agent.name,
                        turn=self.current_turn,
                        delta=chunk.content,
                    )
                    if self._held_deltas is not None:
                        self._held_deltas.append(delta)
                    else:
                        await self._emit(delta)
                if chunk.tool_calls:
                    accumulator.accumulate(chunk.tool_calls)
                    await self._emit(
                        RunEvent(
                            type=RunEventType.TOOL_CALL_DELTA,
                            run_id=self.run_id,
                            agent_name=agent.name,
                            turn=self.current_turn,
                            tool_calls=chunk.tool_calls,
                        )
                    )
                if chunk.usage:
                    usage_data = chunk.usage
                if chunk.finish_reason:
                    finish_reason = chunk.finish_reason

            response = ModelResponse(
                content="".join(content_parts) if content_parts else None,
                tool_calls=accumulator.finalize(),
                usage=Usage.from_usage_dict(usage_data),
                finish_reason=finish_reason,
            )
            span.set_data(usage=response.usage.model_dump(), finish_reason=finish_reason)
            if sensitive:
                span.set_data(output={"content": response.content, "tool_calls": response.tool_calls})

        self.ctx.usage.add(response.usage)
        logger.debug(
            "model_response",
            agent=agent.name,
            turn=self.current_turn,
            tool_calls=len(response.tool_calls),
            finish_reason=finish_reason,
        )
        return response

    async def _record(self, turn_items: list[RunItem], item: RunItem) -> None:
        turn_items.append(item)
        self.all_items.append(item)
        await self._emit(create_item_event(self.run_id, item, self.current_turn))

    async def _record_calls(
        self,
        agent: "Agent",
        tool_calls: list[dict[str, Any]],
        handoffs: dict[str, Any],
        turn_items: list[RunItem],
    ) -> None:
        for call in tool_calls:
            name = call["function"]["name"]
            item_type = HandoffCallItem if name in handoffs else ToolCallItem
            await self._record(
                turn_items,
                item_type(
                    agent_name=agent.name,
                    call_id=call.get("id") or "",
                    tool_name=name,
                    arguments=call["function"].get("arguments") or "{}",
                ),
            )

    async def _run_tools(
        self, agent: "Agent", tool_calls: list[dict[str, Any]], turn_items: list[RunItem]
    ) -> None:
        results = await self._tools.execute_batch(tool_calls, self.ctx)
        for result in results:
            await self._record(
                turn_items,
                ToolCallOutputItem(
                    agent_name=agent.name,
                    call_id=result.tool_call_id,
                    tool_name=result.tool_name,
                    content=result.content,
                    output=result.output,
                    is_error=not result.is_success,
                ),
            )

    async def _run_handoff(
        self,
        action: HandoffAction,
        pre_handoff_items: list[RunItem],
        turn_items: list[RunItem],
    ) -> None:
        outcome = await self._handoffs.execute(
            action.handoff_call,
            self.ctx,
            input_history=self.original_input,
            pre_handoff_items=pre_handoff_items,
            new_items=turn_items,
        )
        self.all_items.append(outcome.output_item)
        await self._emit(create_item_event(self.run_id, outcome.output_item, self.current_turn))

        self.original_input = outcome.input_history
        self.model_items = outcome.pre_handoff_items + outcome.new_items
        self.current_agent = outcome.target
        self._agent_started = False
        self._needs_input_guardrails = True

    async def _finish(self, agent: "Agent", action: FinalMessageAction) -> RunResult:
        guardrails = list(self.run_config.output_guardrails) + list(agent.output_guardrails)
        results = await run_output_guardrails(
            guardrails,
            agent,
            action.output,
            self.ctx,
            tracing_disabled=self.run_config.tracing_disabled,
        )
        self.output_guardrail_results.extend(results)
        await self._release_deltas()

        item = MessageOutputItem(agent_name=agent.name, content=action.content)
        await self._record(self.model_items, item)
        await self._hooks.on_agent_end(self.ctx, action.output)

        return RunResult(
            input=self.input,
            new_items=tuple(self.all_items),
            final_output=action.output,
            last_agent=agent,
            raw_responses=tuple(self.raw_responses),
            input_guardrail_results=tuple(self.input_guardrail_results),
            output_guardrail_results=tuple(self.output_guardrail_results),
            context_wrapper=self.ctx,
            run_id=self.run_id,
            trace_id=self._trace.trace_id if self._trace else None,
        )

    # --- helpers ---

    def _holds_final_text(self, agent: "Agent") -> bool:
        if self.wire is None:
            return False
        return bool(self.run_config.output_guardrails or agent.output_guardrails)

    async def _release_deltas(self) -> None:
        held, self._held_deltas = self._held_deltas, None
        for event in held or ():
            await self._emit(event)

    async def _emit(self, event: RunEvent) -> None:
        if self.wire is not None:
            await self.wire.write(event)

    def _error_details(self) -> RunErrorDetails:
        return RunErrorDetails(
            input=self.input,
            new_items=list(self.all_items),
            last_agent_name=self.current_agent.name,
            input_guardrail_results=list(self.input_guardrail_results),
            output_guardrail_results=list(self.output_guardrail_results),
        )


class Runner:
    """Entry points for running agents."""

    @classmethod
    async def run(
        cls,
        starting_agent: "Agent",
        input: str | list[dict[str, Any]],
        *,
        context: Any = None,
        max_turns: int | None = None,
        run_config: RunConfig | None = None,
        hooks: RunHooks | None = None,
        registry: "AgentRegistry | None" = None,
        abort_signal: "AbortSignal | None" = None,
    ) -> RunResult:
        """
        Run an agent to completion.

        Args:
            starting_agent: Agent that receives the input
            input: User message, or a list of OpenAI-format messages
            context: Caller state passed to tools, guardrails and hooks
            max_turns: Bound on model invocations (overrides run_config)
            run_config: Run-wide settings
            hooks: Run lifecycle hooks
            registry: Agents handoffs may target; defaults to every agent
                reachable from starting_agent
            abort_signal: Cancels the run when fired

        Returns:
            RunResult

        Raises:
            MaxTurnsExceeded: The turn bound was exceeded
            InputGuardrailTripwireTriggered / OutputGuardrailTripwireTriggered
            ModelBehaviorError: The model produced an uninterpretable action
            HandoffError: A handoff could not be carried out
            ToolExecutionError / GuardrailExecutionError: User code raised
            RunTimeoutError: A run or turn timeout elapsed
            asyncio.CancelledError: The run was aborted
        """
        executor = cls._prepare(
            starting_agent, input, context, max_turns, run_config, hooks, registry, abort_signal
        )
        return await executor.run()

    @classmethod
    def run_sync(
        cls,
        starting_agent: "Agent",
        input: str | list[dict[str, Any]],
        **kwargs: Any,
    ) -> RunResult:
        """Blocking wrapper around run(). Not usable inside a running event loop."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(cls.run(starting_agent, input, **kwargs))
        raise UserError("run_sync() cannot be called from a running event loop; await Runner.run() instead")

    @classmethod
    def run_streamed(
        cls,
        starting_agent: "Agent",
        input: str | list[dict[str, Any]],
        *,
        context: Any = None,
        max_turns: int | None = None,
        run_config: RunConfig | None = None,
        hooks: RunHooks | None = None,
        registry: "AgentRegistry | None" = None,
        abort_signal: "AbortSignal | None" = None,
    ) -> RunResultStreaming:
        """
        Start a run in the background and return a streaming handle.

        Must be called from a running event loop. Consume events with
        `async for event in result.stream_events()`.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            raise UserError("run_streamed() must be called from a running event loop") from None

        wire = Wire()
        streaming = RunResultStreaming(input=input, current_agent=starting_agent, _wire=wire)
        executor = cls._prepare(
            starting_agent,
            input,
            context,
            max_turns,
            run_config,
            hooks,
            registry,
            abort_signal,
            wire=wire,
            streaming=streaming,
        )
        streaming._attach(loop.create_task(executor.run()))
        return streaming

    @staticmethod
    def _prepare(
        starting_agent: "Agent",
        input: str | list[dict[str, Any]],
        context: Any,
        max_turns: int | None,
        run_config: RunConfig | None,
        hooks: RunHooks | None,
        registry: "AgentRegistry | None",
        abort_signal: "AbortSignal | None",
        wire: Wire | None = None,
        streaming: RunResultStreaming | None = None,
    ) -> RunExecutor:
        if not isinstance(input, (str, list)):
            raise UserError(f"Run input must be a string or a list of messages, got {type(input).__name__}")

        if run_config is None and isinstance(context, RunContext):
            run_config = context.run_config
        run_config = run_config or RunConfig()
        if max_turns is not None:
            if max_turns < 1:
                raise UserError("max_turns must be at least 1")
            run_config = run_config.model_copy(update={"max_turns": max_turns})

        ctx = context if isinstance(context, RunContext) else RunContext(context=context)
        ctx.run_config = run_config
        if registry is None:
            registry = AgentRegistry.from_agent(starting_agent)
        if isinstance(input, list):
            input = [dict(message) for message in input]

        return RunExecutor(
            starting_agent,
            input,
            ctx,
            run_config,
            hooks=hooks,
            registry=registry,
            abort_signal=abort_signal,
            wire=wire,
            streaming=streaming,
        )


__all__ = ["Runner", "RunExecutor", "REJECTED_HANDOFF_MESSAGE"]
