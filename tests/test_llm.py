"""
Tests for streamed tool-call accumulation.
"""

import pytest

from relay import Agent, Runner, function_tool
from relay.domain import ToolCallItem, ToolCallOutputItem
from relay.llm import StreamChunk, ToolCallAccumulator
from tests.helpers import ScriptedModel


class TestToolCallAccumulator:
    def test_openai_style_deltas_are_joined_by_index(self):
        acc = ToolCallAccumulator()
        acc.accumulate([{"index": 0, "id": "c1", "function": {"name": "look", "arguments": '{"ke'}}])
        acc.accumulate([{"index": 0, "function": {"name": "up", "arguments": 'y": "x"}'}}])
        acc.accumulate([{"index": 1, "id": "c2", "function": {"name": "add", "arguments": {"a": 1}}}])

        calls = acc.finalize()

        assert [c["id"] for c in calls] == ["c1", "c2"]
        assert calls[0]["function"] == {"name": "lookup", "arguments": '{"key": "x"}'}
        assert calls[1]["function"]["arguments"] == '{"a": 1}'

    def test_call_without_id_is_kept_with_generated_id(self):
        acc = ToolCallAccumulator()
        acc.accumulate([{"index": 0, "function": {"name": "lookup", "arguments": "{}"}}])
        acc.accumulate([{"index": 1, "id": "c2", "function": {"name": "add", "arguments": "{}"}}])

        calls = acc.finalize()

        assert [c["function"]["name"] for c in calls] == ["lookup", "add"]
        assert calls[0]["id"].startswith("call_")
        assert calls[1]["id"] == "c2"
        # Stable across repeated finalize() calls
        assert acc.finalize()[0]["id"] == calls[0]["id"]


@pytest.mark.asyncio
async def test_id_less_tool_call_is_executed_not_treated_as_final_text():
    invocations = []

    @function_tool
    def ping(host: str) -> str:
        """Ping a host."""
        invocations.append(host)
        return "pong"

    model = ScriptedModel(
        [
            [
                StreamChunk(content="Let me check. "),
                StreamChunk(tool_calls=[{"index": 0, "function": {"name": "ping", "arguments": '{"host": "db"}'}}]),
            ],
            "db is up",
        ]
    )
    agent = Agent(name="ops", model=model, tools=[ping])

    result = await Runner.run(agent, "is the db up?")

    assert result.final_output == "db is up"
    assert invocations == ["db"]
    call = next(i for i in result.new_items if isinstance(i, ToolCallItem))
    output = next(i for i in result.new_items if isinstance(i, ToolCallOutputItem))
    assert call.call_id and call.call_id == output.call_id
