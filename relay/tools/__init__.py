"""
Tool Invocation Layer.

- Tool: abstract tool value (name, description, schema, callable)
- FunctionTool / function_tool: build a Tool from a Python function
- ToolExecutor: validate, execute and serialize tool calls
"""

from .base import Tool
from .executor import ToolExecutor, format_validation_error, serialize_tool_output
from .function import FunctionTool, function_tool, parse_docstring

__all__ = [
    "Tool",
    "FunctionTool",
    "function_tool",
    "parse_docstring",
    "ToolExecutor",
    "serialize_tool_output",
    "format_validation_error",
]
