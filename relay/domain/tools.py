from typing import Any

from pydantic import BaseModel


class ToolResult(BaseModel):
    """Result of a tool execution"""

    tool_name: str
    tool_call_id: str
    input_args: dict[str, Any]
    content: str  # Result for LLM
    output: Any  # Raw execution result
    error: str | None = None
    start_time: float
    end_time: float
    duration: float
    is_success: bool = True
