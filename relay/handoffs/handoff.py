"""
Handoff - a transfer of control exposed to the model as a tool.

A Handoff carries the synthetic tool surface (name, description, parameter
schema) and the callback that resolves the target agent. Targets are either
static (an Agent known at configuration time) or dynamic (an async resolver
called with the run context and the handoff input).
"""

import inspect
import re
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

from pydantic import BaseModel, ValidationError

from relay.exceptions import HandoffError, UserError
from relay.utils.logging import get_logger

if TYPE_CHECKING:
    from relay.agent import Agent
    from relay.domain.items import RunItem
    from relay.runtime.context import RunContext

logger = get_logger(__name__)


@dataclass(frozen=True)
class HandoffInputData:
    """
    Conversation view handed to an input filter.

    Attributes:
        input_history: The run's original input (string or message list)
        pre_handoff_items: Items produced before the turn that requested the handoff
        new_items: Items produced in that turn, including the handoff itself
    """

    input_history: Union[str, tuple[dict[str, Any], ...]]
    pre_handoff_items: tuple["RunItem", ...]
    new_items: tuple["RunItem", ...]

    def clone(self, **changes: Any) -> "HandoffInputData":
        return replace(self, **changes)


HandoffInputFilter = Callable[[HandoffInputData], HandoffInputData]
OnInvokeHandoff = Callable[["RunContext", str], Awaitable["Agent"]]


@dataclass(frozen=True)
class Handoff:
    tool_name: str
    tool_description: str
    input_json_schema: dict[str, Any]
    on_invoke_handoff: OnInvokeHandoff
    agent_name: str
    input_filter: HandoffInputFilter | None = None
    agent: "Agent | None" = None
    allowed_agents: tuple["Agent", ...] | None = None

    def to_openai_schema(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.tool_name,
                "description": self.tool_description,
                "parameters": self.input_json_schema,
            },
        }

    def is_allowed(self, agent: "Agent") -> bool:
        if self.allowed_agents is None:
            return True
        return any(agent is allowed for allowed in self.allowed_agents)

    @classmethod
    def default_tool_name(cls, agent: "Agent") -> str:
        return f"transfer_to_{_snake_case(agent.name)}"

    @classmethod
    def default_tool_description(cls, agent: "Agent") -> str:
        desc = f"Handoff to the {agent.name} agent to handle the request."
        if agent.handoff_description:
            desc = f"{desc} {agent.handoff_description}"
        return desc


def _snake_case(name: str) -> str:
    name = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", name)
    return re.sub(r"[^a-zA-Z0-9]+", "_", name).strip("_").lower()


_EMPTY_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}, "additionalProperties": False}


def _parse_input(tool_name: str, input_type: type[BaseModel] | None, input_json: str | None) -> BaseModel | None:
    if input_type is None:
        return None
    try:
        return input_type.model_validate_json(input_json or "{}")
    except ValidationError as e:
        logger.info("handoff_input_invalid", tool_name=tool_name, errors=e.error_count())
        raise HandoffError(tool_name, f"invalid input: {e}") from e


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def handoff(
    agent: "Agent | None" = None,
    *,
    tool_name_override: str | None = None,
    tool_description_override: str | None = None,
    on_handoff: Callable[..., Any] | None = None,
    input_type: type[BaseModel] | None = None,
    input_filter: HandoffInputFilter | None = None,
    resolver: Callable[..., Any] | None = None,
    allowed_agents: list["Agent"] | None = None,
) -> Handoff:
    """
    Create a handoff.

    Args:
        agent: Static target agent. Omit when a resolver is given.
        tool_name_override: Tool name shown to the model
        tool_description_override: Tool description shown to the model
        on_handoff: Called when the handoff is invoked, as on_handoff(ctx)
            or on_handoff(ctx, input) when input_type is set. Sync or async.
        input_type: Pydantic model the handoff arguments must validate against
        input_filter: Transforms the history the target agent receives
        resolver: Async (or sync) resolver(ctx, input) -> Agent for dynamic targets
        allowed_agents: Agents a resolver may return

    Returns:
        Handoff
    """
    if (agent is None) == (resolver is None):
        raise UserError("handoff() needs exactly one of agent or resolver")
    if input_type is not None and not (isinstance(input_type, type) and issubclass(input_type, BaseModel)):
        raise UserError("handoff() input_type must be a pydantic BaseModel subclass")

    if agent is not None:
        tool_name = tool_name_override or Handoff.default_tool_name(agent)
        tool_description = tool_description_override or Handoff.default_tool_description(agent)
        agent_name = agent.name
    else:
        if not tool_name_override:
            raise UserError("Dynamic handoffs need a tool_name_override")
        tool_name = tool_name_override
        tool_description = tool_description_override or "Transfer the conversation to another agent."
        agent_name = "dynamic"

    if input_type is not None:
        schema = input_type.model_json_schema()
        schema.pop("title", None)
    else:
        schema = dict(_EMPTY_SCHEMA)

    async def _invoke(ctx: "RunContext", input_json: str) -> "Agent":
        parsed = _parse_input(tool_name, input_type, input_json)
        if on_handoff is not None:
            if input_type is not None:
                await _maybe_await(on_handoff(ctx, parsed))
            else:
                await _maybe_await(on_handoff(ctx))
        if agent is not None:
            return agent
        return await _maybe_await(resolver(ctx, parsed))

    return Handoff(
        tool_name=tool_name,
        tool_description=tool_description,
        input_json_schema=schema,
        on_invoke_handoff=_invoke,
        agent_name=agent_name,
        input_filter=input_filter,
        agent=agent,
        allowed_agents=tuple(allowed_agents) if allowed_agents is not None else None,
    )


__all__ = ["Handoff", "HandoffInputData", "HandoffInputFilter", "handoff"]
