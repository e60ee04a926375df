"""
Unified tool executor.

Validates model-produced arguments against each tool's schema, runs the tool
and converts the outcome to a ToolResult. Validation problems are returned
in-band (is_success=False) so the model can retry; exceptions raised by the
tool itself terminate the run unless the tool defines on_error.
"""

import asyncio
import json
import time
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError

from relay.domain import ToolResult
from relay.exceptions import ToolExecutionError
from relay.tracing import function_span
from relay.utils.logging import get_logger

if TYPE_CHECKING:
    from relay.runtime.context import RunContext
    from relay.runtime.hooks import HookDispatcher

    from .base import Tool

logger = get_logger(__name__)


def serialize_tool_output(output: Any) -> str:
    """Render a tool's return value as the text the model sees."""
    if isinstance(output, str):
        return output
    if isinstance(output, BaseModel):
        return output.model_dump_json()
    if isinstance(output, (dict, list, tuple, int, float, bool)) or output is None:
        return json.dumps(output, default=str, ensure_ascii=False)
    return str(output)


def format_validation_error(tool_name: str, error: ValidationError) -> str:
    problems = []
    for err in error.errors():
        location = ".".join(str(part) for part in err.get("loc", ())) or "arguments"
        problems.append(f"{location}: {err.get('msg')}")
    return f"Invalid arguments for tool {tool_name}: " + "; ".join(problems)


class ToolExecutor:
    """Unified tool executor that returns ToolResult directly."""

    def __init__(
        self,
        tools: list["Tool"],
        hooks: "HookDispatcher | None" = None,
        include_sensitive_data: bool = True,
        tracing_disabled: bool = False,
    ):
        """
        Initialize tool executor.

        Args:
            tools: Tools available to the current agent
            hooks: Lifecycle hook dispatcher (optional)
            include_sensitive_data: Record tool inputs/outputs on function spans
            tracing_disabled: Skip span creation for this run
        """
        self.tools_map = {t.name: t for t in tools}
        self.hooks = hooks
        self.include_sensitive_data = include_sensitive_data
        self.tracing_disabled = tracing_disabled

    async def execute(
        self,
        tool_call: dict[str, Any],
        ctx: "RunContext",
    ) -> ToolResult:
        """
        Execute a single tool call.

        Args:
            tool_call: OpenAI format tool call
            ctx: Run context

        Returns:
            ToolResult: Tool execution result

        Raises:
            ToolExecutionError: The tool raised and has no on_error handler
            asyncio.CancelledError: The call was cancelled
        """
        fn_name = tool_call.get("function", {}).get("name")
        fn_args_str = tool_call.get("function", {}).get("arguments") or "{}"
        call_id = tool_call.get("id") or ""
        start_time = time.time()

        if not fn_name:
            return self._create_error_result(
                call_id=call_id,
                tool_name="unknown",
                error="Tool name missing in tool call",
                start_time=start_time,
            )

        tool = self.tools_map.get(fn_name)
        if not tool:
            return self._create_error_result(
                call_id=call_id,
                tool_name=fn_name,
                error=f"Tool {fn_name} not found",
                start_time=start_time,
            )

        try:
            if isinstance(fn_args_str, str):
                raw_args = json.loads(fn_args_str)
            else:
                raw_args = fn_args_str or {}
        except json.JSONDecodeError as e:
            logger.info("tool_arguments_invalid_json", tool_name=fn_name, tool_call_id=call_id)
            return self._create_error_result(
                call_id=call_id,
                tool_name=fn_name,
                error=f"Invalid JSON arguments for tool {fn_name}: {e}",
                start_time=start_time,
            )

        if not isinstance(raw_args, dict):
            return self._create_error_result(
                call_id=call_id,
                tool_name=fn_name,
                error=f"Arguments for tool {fn_name} must be a JSON object",
                start_time=start_time,
            )

        try:
            args = tool.validate_arguments(raw_args)
        except ValidationError as e:
            logger.info(
                "tool_arguments_invalid",
                tool_name=fn_name,
                tool_call_id=call_id,
                errors=e.error_count(),
            )
            return self._create_error_result(
                call_id=call_id,
                tool_name=fn_name,
                error=format_validation_error(fn_name, e),
                start_time=start_time,
                input_args=raw_args,
            )

        span = function_span(
            fn_name,
            input=fn_args_str if self.include_sensitive_data else None,
            disabled=self.tracing_disabled,
        )
        with span:
            if self.hooks:
                await self.hooks.on_tool_start(ctx, tool)

            try:
                logger.debug("executing_tool", tool_name=fn_name, tool_call_id=call_id)
                output = await tool.invoke(ctx, args)

            except asyncio.CancelledError:
                logger.info("tool_execution_cancelled", tool_name=fn_name, tool_call_id=call_id)
                span.set_error("Tool execution was cancelled")
                raise

            except Exception as e:
                span.set_error(f"Tool {fn_name} raised {type(e).__name__}", {"error": str(e)})
                if tool.on_error is None:
                    logger.error(
                        "tool_execution_exception",
                        tool_name=fn_name,
                        tool_call_id=call_id,
                        error=str(e),
                        exc_info=True,
                    )
                    raise ToolExecutionError(fn_name, e) from e

                logger.warning("tool_execution_error_reported", tool_name=fn_name, error=str(e))
                message = tool.on_error(ctx, e)
                result = self._create_error_result(
                    call_id=call_id,
                    tool_name=fn_name,
                    error=message,
                    start_time=start_time,
                    input_args=args,
                )
            else:
                end_time = time.time()
                content = serialize_tool_output(output)
                if self.include_sensitive_data:
                    span.set_data(output=content)
                result = ToolResult(
                    tool_name=fn_name,
                    tool_call_id=call_id,
                    input_args=args,
                    content=content,
                    output=output,
                    start_time=start_time,
                    end_time=end_time,
                    duration=end_time - start_time,
                    is_success=True,
                )

            logger.debug(
                "tool_execution_completed",
                tool_name=fn_name,
                success=result.is_success,
                duration=result.duration,
            )
            if self.hooks:
                await self.hooks.on_tool_end(ctx, tool, result)
            return result

    async def execute_batch(
        self,
        tool_calls: list[dict[str, Any]],
        ctx: "RunContext",
    ) -> list[ToolResult]:
        """
        Execute multiple tool calls concurrently.

        Results are returned in request order regardless of completion order.
        If any call raises, the calls still in flight are cancelled and
        awaited before the exception propagates.

        Args:
            tool_calls: List of tool calls
            ctx: Run context

        Returns:
            list[ToolResult]: One result per call, in request order
        """
        if not tool_calls:
            return []

        tasks = [
            asyncio.ensure_future(self.execute(tc, ctx))
            for tc in tool_calls
        ]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    def _create_error_result(
        self,
        call_id: str,
        tool_name: str,
        error: str,
        start_time: float,
        input_args: dict[str, Any] | None = None,
    ) -> ToolResult:
        """Create error result."""
        end_time = time.time()
        return ToolResult(
            tool_name=tool_name,
            tool_call_id=call_id,
            input_args=input_args or {},
            content=error,
            output=None,
            error=error,
            start_time=start_time,
            end_time=end_time,
            duration=end_time - start_time,
            is_success=False,
        )


__all__ = ["ToolExecutor", "serialize_tool_output", "format_validation_error"]
