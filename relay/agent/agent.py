"""
Agent - immutable agent definition.

An Agent holds configuration only: instructions, model, tools, guardrails,
permitted handoffs and an optional structured output type. It is never
mutated after construction; clone(), with_handoffs() and with_tools() return
new Agent values that share every untouched field with the original. This
makes a single Agent safe to use from many concurrent runs.
"""

import dataclasses
import inspect
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Union

from pydantic import BaseModel

from relay.exceptions import UserError

if TYPE_CHECKING:
    from relay.guardrails import InputGuardrail, OutputGuardrail
    from relay.handoffs import Handoff
    from relay.llm import Model
    from relay.runtime.agent_tool import AgentTool
    from relay.runtime.context import RunContext
    from relay.runtime.hooks import AgentHooks
    from relay.tools import Tool


Instructions = Union[
    str,
    Callable[["RunContext", "Agent"], Union[str, Awaitable[str]]],
    None,
]


@dataclass(frozen=True, eq=False)
class Agent:
    """
    Agent configuration container.

    Attributes:
        name: Unique agent name
        instructions: System prompt, or a (sync/async) function producing it
        model: Model used for this agent's turns
        tools: Tools the agent may call (unique by name)
        handoffs: Agents (or Handoff values) the agent may transfer control to
        input_guardrails: Checks run on the input the agent receives
        output_guardrails: Checks run on the agent's final output
        output_type: Pydantic model the final output must parse into
        handoff_description: Shown to other agents that can hand off to this one
        hooks: Lifecycle hooks for this agent
        metadata: Free-form read-only annotations, copied at construction
    """

    name: str
    instructions: Instructions = None
    model: "Model | None" = None
    tools: tuple["Tool", ...] = ()
    handoffs: tuple[Union["Agent", "Handoff"], ...] = ()
    input_guardrails: tuple["InputGuardrail", ...] = ()
    output_guardrails: tuple["OutputGuardrail", ...] = ()
    output_type: type[BaseModel] | None = None
    handoff_description: str | None = None
    hooks: "AgentHooks | None" = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.name or not isinstance(self.name, str):
            raise UserError("Agent name must be a non-empty string")

        # Accept any iterable at construction, store tuples
        for attr in ("tools", "handoffs", "input_guardrails", "output_guardrails"):
            value = getattr(self, attr)
            if not isinstance(value, tuple):
                object.__setattr__(self, attr, tuple(value or ()))

        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata or {})))

        seen: set[str] = set()
        for tool in self.tools:
            if tool.name in seen:
                raise UserError(f"Agent '{self.name}' has duplicate tool name '{tool.name}'")
            seen.add(tool.name)

        if self.output_type is not None and not (
            isinstance(self.output_type, type) and issubclass(self.output_type, BaseModel)
        ):
            raise UserError(f"Agent '{self.name}': output_type must be a pydantic BaseModel subclass")

    # --- derivations ---

    def clone(self, **changes: Any) -> "Agent":
        """Return a new Agent with `changes` applied."""
        return dataclasses.replace(self, **changes)

    def with_handoffs(self, *targets: Union["Agent", "Handoff"]) -> "Agent":
        """Return a new Agent that can additionally hand off to `targets`."""
        return dataclasses.replace(self, handoffs=self.handoffs + tuple(targets))

    def with_tools(self, *tools: "Tool") -> "Agent":
        """Return a new Agent with additional tools."""
        return dataclasses.replace(self, tools=self.tools + tuple(tools))

    # --- accessors ---

    async def get_system_prompt(self, ctx: "RunContext") -> str | None:
        if self.instructions is None or isinstance(self.instructions, str):
            return self.instructions
        if callable(self.instructions):
            prompt = self.instructions(ctx, self)
            if inspect.isawaitable(prompt):
                prompt = await prompt
            return prompt
        raise UserError(f"Agent '{self.name}': instructions must be a string or a callable")

    def get_all_tools(self) -> list["Tool"]:
        return list(self.tools)

    def as_tool(
        self,
        tool_name: str | None = None,
        tool_description: str | None = None,
        max_depth: int | None = None,
    ) -> "AgentTool":
        """
        Expose this agent as a tool another agent can call.

        Unlike a handoff, the calling agent keeps control and receives this
        agent's final output as the tool result.
        """
        from relay.runtime.agent_tool import DEFAULT_MAX_DEPTH, AgentTool

        return AgentTool(
            self,
            name=tool_name,
            description=tool_description,
            max_depth=max_depth if max_depth is not None else DEFAULT_MAX_DEPTH,
        )

    def __repr__(self) -> str:
        return f"Agent(name={self.name!r})"


__all__ = ["Agent", "Instructions"]
