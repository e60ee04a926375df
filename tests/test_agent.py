"""
Tests for agent definitions and the agent registry.
"""

import dataclasses

import pytest
from pydantic import BaseModel

from relay.agent import Agent, AgentRegistry
from relay.exceptions import UserError
from relay.handoffs import handoff
from relay.runtime.context import RunContext
from relay.tools import function_tool


@function_tool
def lookup(key: str) -> str:
    """Look a key up."""
    return key


class TestAgent:
    def test_is_immutable(self):
        agent = Agent(name="a", instructions="hi")
        with pytest.raises(dataclasses.FrozenInstanceError):
            agent.instructions = "changed"

    def test_iterables_stored_as_tuples(self):
        agent = Agent(name="a", tools=[lookup])
        assert agent.tools == (lookup,)
        assert agent.get_all_tools() == [lookup]

    def test_derivations_leave_original_untouched(self):
        b = Agent(name="b")
        base = Agent(name="a", instructions="base")

        with_handoff = base.with_handoffs(b)
        with_tool = base.with_tools(lookup)
        renamed = base.clone(name="a2")

        assert base.handoffs == () and base.tools == ()
        assert with_handoff.handoffs == (b,)
        assert with_tool.tools == (lookup,)
        assert renamed.name == "a2" and renamed.instructions == "base"

    def test_equality_is_identity(self):
        assert Agent(name="a") != Agent(name="a")
        agent = Agent(name="a")
        assert {agent: 1}[agent] == 1

    def test_metadata_is_read_only_and_not_shared(self):
        source = {"team": "billing"}
        base = Agent(name="a", metadata=source)
        source["team"] = "changed"

        assert base.metadata == {"team": "billing"}
        with pytest.raises(TypeError):
            base.metadata["team"] = "other"

        derived = base.clone(metadata={**base.metadata, "tier": "gold"})
        with_tool = base.with_tools(lookup)
        assert base.metadata == {"team": "billing"}
        assert derived.metadata == {"team": "billing", "tier": "gold"}
        assert with_tool.metadata == {"team": "billing"}
        assert with_tool.metadata is not base.metadata

    def test_validation(self):
        with pytest.raises(UserError):
            Agent(name="")
        with pytest.raises(UserError):
            Agent(name="a", tools=[lookup, lookup])
        with pytest.raises(UserError):
            Agent(name="a", output_type=dict)

    def test_output_type_accepted(self):
        class Answer(BaseModel):
            value: int

        assert Agent(name="a", output_type=Answer).output_type is Answer

    @pytest.mark.asyncio
    async def test_system_prompt_forms(self):
        ctx = RunContext(context={"lang": "fr"})

        def sync_prompt(ctx, agent):
            return f"{agent.name} speaks {ctx.context['lang']}"

        async def async_prompt(ctx, agent):
            return "async"

        assert await Agent(name="a").get_system_prompt(ctx) is None
        assert await Agent(name="a", instructions="static").get_system_prompt(ctx) == "static"
        assert await Agent(name="a", instructions=sync_prompt).get_system_prompt(ctx) == "a speaks fr"
        assert await Agent(name="a", instructions=async_prompt).get_system_prompt(ctx) == "async"

    def test_as_tool(self):
        researcher = Agent(name="researcher", handoff_description="Finds facts")
        tool = researcher.as_tool()
        assert tool.name == "call_researcher"
        assert tool.agent is researcher
        assert tool.to_openai_schema()["function"]["parameters"]["required"] == ["task"]

        custom = researcher.as_tool(tool_name="research", tool_description="Research things", max_depth=2)
        assert custom.name == "research"
        assert custom.description == "Research things"
        assert custom.max_depth == 2


class TestAgentRegistry:
    def test_register_and_lookup(self):
        a = Agent(name="a")
        registry = AgentRegistry([a])

        assert registry.get("a") is a
        assert a in registry
        assert "a" in registry
        assert Agent(name="a") not in registry
        assert len(registry) == 1
        assert registry.names == ["a"]

    def test_name_collision(self):
        registry = AgentRegistry([Agent(name="a")])
        replacement = Agent(name="a")

        with pytest.raises(UserError):
            registry.register(replacement)

        registry.register(replacement, replace=True)
        assert registry.get("a") is replacement

    def test_reregistering_same_agent_is_allowed(self):
        a = Agent(name="a")
        registry = AgentRegistry([a])
        registry.register(a)
        assert len(registry) == 1

    def test_unregister(self):
        registry = AgentRegistry([Agent(name="a")])
        assert registry.unregister("a") is True
        assert registry.unregister("a") is False
        assert list(registry) == []

    def test_from_agent_walks_handoff_graph(self):
        leaf = Agent(name="leaf")
        allowed = Agent(name="allowed")
        middle = Agent(name="middle", handoffs=[handoff(leaf)])
        dynamic = handoff(resolver=lambda ctx, data: allowed, tool_name_override="route", allowed_agents=[allowed])
        root = Agent(name="root", handoffs=[middle, dynamic])
        # Cycles back to root are fine
        middle_with_cycle = middle.with_handoffs(root)
        root = root.clone(handoffs=(middle_with_cycle, dynamic))

        registry = AgentRegistry.from_agent(root)

        assert sorted(registry.names) == ["allowed", "leaf", "middle", "root"]
        assert registry.contains(middle_with_cycle)
