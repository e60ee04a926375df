"""
Lifecycle hooks.

RunHooks observe every agent in a run; AgentHooks are attached to one agent
and only see events concerning it. Override the methods you need.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from relay.agent import Agent
    from relay.domain import ToolResult
    from relay.tools import Tool

    from .context import RunContext


class RunHooks:
    """Base class for run-wide hooks."""

    async def on_agent_start(self, ctx: "RunContext", agent: "Agent") -> None:
        pass

    async def on_agent_end(self, ctx: "RunContext", agent: "Agent", output: Any) -> None:
        pass

    async def on_handoff(self, ctx: "RunContext", from_agent: "Agent", to_agent: "Agent") -> None:
        pass

    async def on_tool_start(self, ctx: "RunContext", agent: "Agent", tool: "Tool") -> None:
        pass

    async def on_tool_end(
        self, ctx: "RunContext", agent: "Agent", tool: "Tool", result: "ToolResult"
    ) -> None:
        pass


class AgentHooks:
    """Base class for hooks attached to a single agent."""

    async def on_start(self, ctx: "RunContext", agent: "Agent") -> None:
        pass

    async def on_end(self, ctx: "RunContext", agent: "Agent", output: Any) -> None:
        pass

    async def on_handoff(self, ctx: "RunContext", agent: "Agent", source: "Agent") -> None:
        """Called on the agent being handed off to."""
        pass

    async def on_tool_start(self, ctx: "RunContext", agent: "Agent", tool: "Tool") -> None:
        pass

    async def on_tool_end(
        self, ctx: "RunContext", agent: "Agent", tool: "Tool", result: "ToolResult"
    ) -> None:
        pass


class HookDispatcher:
    """Calls run hooks and the current agent's hooks for one agent's turn."""

    def __init__(self, run_hooks: RunHooks | None, agent: "Agent"):
        self.run_hooks = run_hooks or RunHooks()
        self.agent = agent

    async def on_agent_start(self, ctx: "RunContext") -> None:
        await self.run_hooks.on_agent_start(ctx, self.agent)
        if self.agent.hooks:
            await self.agent.hooks.on_start(ctx, self.agent)

    async def on_agent_end(self, ctx: "RunContext", output: Any) -> None:
        await self.run_hooks.on_agent_end(ctx, self.agent, output)
        if self.agent.hooks:
            await self.agent.hooks.on_end(ctx, self.agent, output)

    async def on_handoff(self, ctx: "RunContext", to_agent: "Agent") -> None:
        await self.run_hooks.on_handoff(ctx, self.agent, to_agent)
        if to_agent.hooks:
            await to_agent.hooks.on_handoff(ctx, to_agent, self.agent)

    async def on_tool_start(self, ctx: "RunContext", tool: "Tool") -> None:
        await self.run_hooks.on_tool_start(ctx, self.agent, tool)
        if self.agent.hooks:
            await self.agent.hooks.on_tool_start(ctx, self.agent, tool)

    async def on_tool_end(self, ctx: "RunContext", tool: "Tool", result: "ToolResult") -> None:
        await self.run_hooks.on_tool_end(ctx, self.agent, tool, result)
        if self.agent.hooks:
            await self.agent.hooks.on_tool_end(ctx, self.agent, tool, result)


__all__ = ["RunHooks", "AgentHooks", "HookDispatcher"]
