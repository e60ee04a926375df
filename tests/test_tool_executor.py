import asyncio
import json

import pytest

from relay.domain.tools import ToolResult
from relay.exceptions import ToolExecutionError
from relay.runtime.context import RunContext
from relay.tools import ToolExecutor, function_tool
from tests.helpers import tool_call


@pytest.fixture
def ctx():
    return RunContext(context=None)


def make_counting_add():
    calls = []

    @function_tool
    def add(a: int, b: int) -> int:
        """Add two integers.

        Args:
            a: First operand
            b: Second operand
        """
        calls.append((a, b))
        return a + b

    return add, calls


@pytest.mark.asyncio
async def test_tool_executor_success(ctx):
    """Test successful tool execution"""
    add, calls = make_counting_add()
    executor = ToolExecutor([add])

    result = await executor.execute(tool_call("add", {"a": 2, "b": 3}, "call_123"), ctx)

    assert isinstance(result, ToolResult)
    assert result.is_success is True
    assert result.tool_name == "add"
    assert result.tool_call_id == "call_123"
    assert result.output == 5
    assert result.content == "5"
    assert result.error is None
    assert calls == [(2, 3)]


@pytest.mark.asyncio
async def test_invalid_arguments_never_reach_callable(ctx):
    add, calls = make_counting_add()
    executor = ToolExecutor([add])

    bad_calls = [
        tool_call("add", {"a": "two", "b": 3}, "c1"),  # wrong type
        tool_call("add", {"a": 1}, "c2"),  # missing field
        tool_call("add", {"a": 1, "b": 2, "c": 3}, "c3"),  # unknown field
        tool_call("add", "{not json", "c4"),
        tool_call("add", "[1, 2]", "c5"),  # not an object
    ]
    for call in bad_calls:
        result = await executor.execute(call, ctx)
        assert result.is_success is False
        assert result.error
        assert result.content == result.error

    assert calls == []


@pytest.mark.asyncio
async def test_validation_error_message_names_field(ctx):
    add, _ = make_counting_add()
    executor = ToolExecutor([add])

    result = await executor.execute(tool_call("add", {"a": 1}, "c1"), ctx)

    assert "add" in result.error
    assert "b" in result.error


@pytest.mark.asyncio
async def test_tool_executor_not_found(ctx):
    """Test tool execution when tool is not found"""
    add, _ = make_counting_add()
    executor = ToolExecutor([add])

    result = await executor.execute(tool_call("nonexistent_tool", {}, "call_789"), ctx)

    assert result.is_success is False
    assert result.tool_name == "nonexistent_tool"
    assert "not found" in result.error.lower()


@pytest.mark.asyncio
async def test_tool_exception_raises_tool_execution_error(ctx):
    @function_tool
    def explode() -> str:
        """Always fails."""
        raise ValueError("Intentional failure")

    executor = ToolExecutor([explode])

    with pytest.raises(ToolExecutionError) as exc_info:
        await executor.execute(tool_call("explode", {}, "call_456"), ctx)

    assert exc_info.value.tool_name == "explode"
    assert isinstance(exc_info.value.original, ValueError)
    assert "Intentional failure" in str(exc_info.value)


@pytest.mark.asyncio
async def test_on_error_reports_exception_in_band(ctx):
    @function_tool(on_error=lambda ctx, e: f"lookup failed: {e}")
    def lookup(key: str) -> str:
        """Look up a key."""
        raise KeyError(key)

    executor = ToolExecutor([lookup])
    result = await executor.execute(tool_call("lookup", {"key": "x"}, "c1"), ctx)

    assert result.is_success is False
    assert result.content.startswith("lookup failed")


@pytest.mark.asyncio
async def test_batch_preserves_request_order(ctx):
    finished = []

    @function_tool
    async def sleepy(label: str, delay: float) -> str:
        """Sleep then echo the label."""
        await asyncio.sleep(delay)
        finished.append(label)
        return label

    executor = ToolExecutor([sleepy])
    calls = [
        tool_call("sleepy", {"label": "slow", "delay": 0.05}, "c1"),
        tool_call("sleepy", {"label": "fast", "delay": 0.0}, "c2"),
        tool_call("sleepy", {"label": "medium", "delay": 0.02}, "c3"),
    ]

    results = await executor.execute_batch(calls, ctx)

    assert [r.output for r in results] == ["slow", "fast", "medium"]
    assert [r.tool_call_id for r in results] == ["c1", "c2", "c3"]
    assert finished == ["fast", "medium", "slow"]


@pytest.mark.asyncio
async def test_batch_runs_concurrently(ctx):
    @function_tool
    async def wait(delay: float) -> float:
        """Sleep."""
        await asyncio.sleep(delay)
        return delay

    executor = ToolExecutor([wait])
    calls = [tool_call("wait", {"delay": 0.1}, f"c{i}") for i in range(5)]

    loop = asyncio.get_running_loop()
    start = loop.time()
    await executor.execute_batch(calls, ctx)

    assert loop.time() - start < 0.4


@pytest.mark.asyncio
async def test_batch_failure_cancels_in_flight_calls(ctx):
    cancelled = asyncio.Event()

    @function_tool
    async def slow() -> str:
        """Slow tool."""
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            cancelled.set()
            raise
        return "done"

    @function_tool
    async def boom() -> str:
        """Failing tool."""
        await asyncio.sleep(0.01)
        raise RuntimeError("boom")

    executor = ToolExecutor([slow, boom])

    with pytest.raises(ToolExecutionError):
        await executor.execute_batch(
            [tool_call("slow", {}, "c1"), tool_call("boom", {}, "c2")], ctx
        )

    assert cancelled.is_set()


@pytest.mark.asyncio
async def test_structured_output_is_serialized(ctx):
    @function_tool
    def profile(name: str) -> dict:
        """Build a profile."""
        return {"name": name, "tags": ["a", "b"]}

    executor = ToolExecutor([profile])
    result = await executor.execute(tool_call("profile", {"name": "ada"}), ctx)

    assert json.loads(result.content) == {"name": "ada", "tags": ["a", "b"]}


@pytest.mark.asyncio
async def test_context_injected_as_first_parameter():
    ctx = RunContext(context={"user": "ada"})

    @function_tool
    def whoami(run_ctx: RunContext) -> str:
        """Return the current user."""
        return run_ctx.context["user"]

    executor = ToolExecutor([whoami])
    result = await executor.execute(tool_call("whoami", {}), ctx)

    assert result.output == "ada"
