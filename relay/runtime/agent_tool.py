"""
AgentTool - Adapter to expose an Agent as a Tool.

The calling agent stays in control: the wrapped agent runs as a nested run
and its final output becomes the tool result. Nested runs share the caller's
context object, RunConfig and trace; their usage is added to the caller's.

Safety features:
- Maximum depth limit to prevent infinite nesting
- Call stack tracking to detect circular references at runtime
"""

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from relay.tools.base import Tool
from relay.utils.logging import get_logger

from .context import RunContext

if TYPE_CHECKING:
    from relay.agent import Agent

logger = get_logger(__name__)

# Default maximum nesting depth for Agent as Tool
DEFAULT_MAX_DEPTH = 5


class CircularReferenceError(Exception):
    """Raised when a circular reference is detected in the agent call chain."""

    pass


class MaxDepthExceededError(Exception):
    """Raised when the maximum nesting depth is exceeded."""

    pass


class AgentToolArgs(BaseModel):
    task: str = Field(description="The task to delegate to this agent")
    context: str | None = Field(default=None, description="Optional additional context for the task")


def _report_error(ctx: RunContext, error: Exception) -> str:
    if isinstance(error, CircularReferenceError):
        return f"Circular reference error: {error}"
    if isinstance(error, MaxDepthExceededError):
        return f"Max depth exceeded: {error}"
    return f"Error executing agent: {type(error).__name__}: {error}"


class AgentTool(Tool):
    """
    Adapter that converts an Agent into a Tool.

    Usage:
        research_tool = research_agent.as_tool(tool_description="Research expert")
        orchestrator = Agent(name="orchestrator", model=model, tools=[research_tool])
    """

    args_schema = AgentToolArgs

    def __init__(
        self,
        agent: "Agent",
        description: str | None = None,
        name: str | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        """
        Args:
            agent: The Agent to wrap
            description: Tool description for the LLM
            name: Tool name, defaults to call_{agent.name}
            max_depth: Maximum nesting depth allowed
        """
        self.agent = agent
        self.name = name or f"call_{agent.name}"
        self.description = description or agent.handoff_description or f"Delegate a task to {agent.name}"
        self.max_depth = max_depth
        self.on_error = _report_error

    def _check_call_chain(self, ctx: RunContext) -> None:
        chain = " -> ".join(ctx.call_stack + (self.agent.name,))
        if ctx.depth + 1 > self.max_depth:
            raise MaxDepthExceededError(
                f"Maximum nesting depth ({self.max_depth}) exceeded. Call chain: {chain}"
            )
        if self.agent.name in ctx.call_stack:
            raise CircularReferenceError(
                f"{self.agent.name} is already in the call chain. Call chain: {chain}"
            )

    async def invoke(self, ctx: RunContext, arguments: dict[str, Any]) -> Any:
        from .runner import Runner

        self._check_call_chain(ctx)

        input_text = arguments["task"]
        if arguments.get("context"):
            input_text = f"{input_text}\n\nContext: {arguments['context']}"

        child_ctx = ctx.child(self.agent.name)
        logger.debug("agent_tool_started", agent=self.agent.name, depth=child_ctx.depth)
        try:
            result = await Runner.run(
                self.agent, input_text, context=child_ctx, run_config=child_ctx.run_config
            )
        finally:
            ctx.usage.add(child_ctx.usage)
        return result.final_output


__all__ = [
    "AgentTool",
    "AgentToolArgs",
    "CircularReferenceError",
    "MaxDepthExceededError",
    "DEFAULT_MAX_DEPTH",
]
