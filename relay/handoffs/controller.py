"""
Handoff Controller - exposes an agent's handoffs to the model and carries
them out.

Execution order for one handoff call:
1. Resolve the target (validating the handoff input)
2. Check the target against the allow-list and the registry
3. Fire on_handoff hooks
4. Apply the input filter to the accumulated history
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from relay.domain.items import HandoffOutputItem, RunItem
from relay.exceptions import AgentsException, HandoffError, UserError
from relay.tracing import handoff_span
from relay.utils.logging import get_logger

from .handoff import Handoff, HandoffInputData, HandoffInputFilter, handoff

if TYPE_CHECKING:
    from relay.agent import Agent, AgentRegistry
    from relay.runtime.context import RunContext
    from relay.runtime.hooks import HookDispatcher

logger = get_logger(__name__)


@dataclass
class HandoffOutcome:
    """Result of a completed handoff: the new agent and its effective history."""

    target: "Agent"
    output_item: HandoffOutputItem
    input_history: str | list[dict[str, Any]]
    pre_handoff_items: list[RunItem]
    new_items: list[RunItem]


class HandoffController:
    def __init__(
        self,
        agent: "Agent",
        registry: "AgentRegistry | None" = None,
        default_input_filter: HandoffInputFilter | None = None,
        hooks: "HookDispatcher | None" = None,
        tracing_disabled: bool = False,
    ):
        from relay.agent import Agent

        self.agent = agent
        self.registry = registry
        self.default_input_filter = default_input_filter
        self.hooks = hooks
        self.tracing_disabled = tracing_disabled

        self.handoffs: list[Handoff] = []
        for target in agent.handoffs:
            if isinstance(target, Handoff):
                self.handoffs.append(target)
            elif isinstance(target, Agent):
                self.handoffs.append(handoff(target))
            else:
                raise UserError(f"Agent '{agent.name}': invalid handoff target {target!r}")

        self._by_name: dict[str, Handoff] = {}
        tool_names = {t.name for t in agent.tools}
        for h in self.handoffs:
            if h.tool_name in self._by_name or h.tool_name in tool_names:
                raise UserError(f"Agent '{agent.name}': duplicate tool name '{h.tool_name}'")
            self._by_name[h.tool_name] = h

    def get(self, tool_name: str) -> Handoff | None:
        return self._by_name.get(tool_name)

    def tool_schemas(self) -> list[dict[str, Any]]:
        return [h.to_openai_schema() for h in self.handoffs]

    async def execute(
        self,
        tool_call: dict[str, Any],
        ctx: "RunContext",
        input_history: str | list[dict[str, Any]],
        pre_handoff_items: list[RunItem],
        new_items: list[RunItem],
    ) -> HandoffOutcome:
        """
        Carry out one handoff tool call.

        Args:
            tool_call: OpenAI format tool call naming one of this agent's handoffs
            ctx: Run context
            input_history: The run's original input
            pre_handoff_items: Items produced before the current turn
            new_items: Items produced in the current turn so far

        Returns:
            HandoffOutcome

        Raises:
            HandoffError: Invalid input, disallowed or unregistered target,
                or the resolution callback failed
        """
        function = tool_call.get("function", {})
        tool_name = function.get("name") or ""
        arguments = function.get("arguments") or "{}"
        call_id = tool_call.get("id") or ""

        handoff_def = self.get(tool_name)
        if handoff_def is None:
            raise HandoffError(tool_name, f"agent '{self.agent.name}' has no such handoff")

        with handoff_span(self.agent.name, disabled=self.tracing_disabled) as span:
            target = await self._resolve(handoff_def, ctx, arguments)
            span.set_data(to_agent=target.name)

            logger.info(
                "handoff",
                from_agent=self.agent.name,
                to_agent=target.name,
                tool_name=tool_name,
                depth=ctx.depth,
            )
            if self.hooks:
                await self.hooks.on_handoff(ctx, target)

            output_item = HandoffOutputItem(
                agent_name=self.agent.name,
                call_id=call_id,
                tool_name=tool_name,
                source_agent_name=self.agent.name,
                target_agent_name=target.name,
            )
            history, pre_items, turn_items = self._apply_filter(
                handoff_def,
                input_history,
                pre_handoff_items,
                list(new_items) + [output_item],
            )

        return HandoffOutcome(
            target=target,
            output_item=output_item,
            input_history=history,
            pre_handoff_items=pre_items,
            new_items=turn_items,
        )

    async def _resolve(self, handoff_def: Handoff, ctx: "RunContext", arguments: str) -> "Agent":
        from relay.agent import Agent

        try:
            target = await handoff_def.on_invoke_handoff(ctx, arguments)
        except AgentsException:
            raise
        except Exception as e:
            logger.error("handoff_resolution_failed", tool_name=handoff_def.tool_name, error=str(e), exc_info=True)
            raise HandoffError(handoff_def.tool_name, f"resolution raised {type(e).__name__}: {e}") from e

        if not isinstance(target, Agent):
            raise HandoffError(handoff_def.tool_name, f"resolved to {type(target).__name__}, expected Agent")
        if not handoff_def.is_allowed(target):
            raise HandoffError(handoff_def.tool_name, f"agent '{target.name}' is not an allowed target")
        if self.registry is not None and not self.registry.contains(target):
            raise HandoffError(handoff_def.tool_name, f"agent '{target.name}' is not registered")
        return target

    def _apply_filter(
        self,
        handoff_def: Handoff,
        input_history: str | list[dict[str, Any]],
        pre_handoff_items: list[RunItem],
        new_items: list[RunItem],
    ) -> tuple[str | list[dict[str, Any]], list[RunItem], list[RunItem]]:
        input_filter = handoff_def.input_filter or self.default_input_filter
        if input_filter is None:
            return input_history, list(pre_handoff_items), list(new_items)

        data = HandoffInputData(
            input_history=input_history if isinstance(input_history, str) else tuple(input_history),
            pre_handoff_items=tuple(pre_handoff_items),
            new_items=tuple(new_items),
        )
        try:
            filtered = input_filter(data)
        except AgentsException:
            raise
        except Exception as e:
            logger.error("handoff_filter_failed", tool_name=handoff_def.tool_name, error=str(e), exc_info=True)
            raise HandoffError(handoff_def.tool_name, f"input filter raised {type(e).__name__}: {e}") from e

        if not isinstance(filtered, HandoffInputData):
            raise UserError(f"Handoff input filter for '{handoff_def.tool_name}' must return HandoffInputData")

        history = filtered.input_history
        if not isinstance(history, str):
            history = list(history)
        return history, list(filtered.pre_handoff_items), list(filtered.new_items)


__all__ = ["HandoffController", "HandoffOutcome"]
