"""
FunctionTool - a Tool built from a plain Python function.

The argument schema is derived from the function signature and the
description (tool and per-parameter) from its Google-style docstring.
"""

import inspect
import re
from typing import Any, Callable, get_origin, get_type_hints

from pydantic import BaseModel, ConfigDict, Field, create_model

from relay.exceptions import UserError
from relay.runtime.context import RunContext

from .base import Tool

_SECTION_RE = re.compile(r"^\s*(Args|Arguments|Parameters|Returns|Raises|Yields|Examples?)\s*:\s*$")
_PARAM_RE = re.compile(r"^\s*(\*{0,2}\w+)\s*(?:\([^)]*\))?\s*:\s*(.*)$")


def parse_docstring(doc: str | None) -> tuple[str, dict[str, str]]:
    """
    Split a Google-style docstring into a summary and per-argument descriptions.

    Returns:
        (description, {param_name: description})
    """
    if not doc:
        return "", {}

    lines = inspect.cleandoc(doc).splitlines()
    summary: list[str] = []
    params: dict[str, str] = {}
    section: str | None = None
    current: str | None = None
    param_indent: int | None = None

    for line in lines:
        match = _SECTION_RE.match(line)
        if match:
            section = match.group(1)
            current = None
            param_indent = None
            continue

        if section is None:
            summary.append(line)
            continue

        if section not in ("Args", "Arguments", "Parameters") or not line.strip():
            continue

        indent = len(line) - len(line.lstrip())
        param_match = _PARAM_RE.match(line)
        if param_match and (param_indent is None or indent <= param_indent):
            param_indent = indent
            current = param_match.group(1).lstrip("*")
            params[current] = param_match.group(2).strip()
        elif current is not None:
            params[current] = f"{params[current]} {line.strip()}".strip()

    return "\n".join(summary).strip(), params


def _is_context_annotation(annotation: Any) -> bool:
    if annotation is inspect.Parameter.empty:
        return False
    origin = get_origin(annotation) or annotation
    return origin is RunContext


class FunctionTool(Tool):
    def __init__(
        self,
        func: Callable,
        name: str | None = None,
        description: str | None = None,
        on_error: Callable[[RunContext, Exception], str] | None = None,
    ):
        if not callable(func):
            raise UserError(f"FunctionTool requires a callable, got {type(func).__name__}")

        self.func = func
        self.name = name or func.__name__
        doc_description, self._param_docs = parse_docstring(func.__doc__)
        self.description = description or doc_description
        self.on_error = on_error
        self.takes_context = False
        self.args_schema = self._create_args_schema(func)

    def _create_args_schema(self, func: Callable) -> type[BaseModel]:
        """Dynamically create a Pydantic model from function signature."""
        sig = inspect.signature(func)
        try:
            type_hints = get_type_hints(func)
        except (NameError, TypeError):
            type_hints = {}

        fields: dict[str, Any] = {}
        for index, (param_name, param) in enumerate(sig.parameters.items()):
            if param_name in ("self", "cls"):
                continue

            annotation = type_hints.get(param_name, param.annotation)
            if index == 0 and _is_context_annotation(annotation):
                self.takes_context = True
                continue
            if _is_context_annotation(annotation):
                raise UserError(
                    f"Tool '{self.name}': RunContext must be the first parameter, found at '{param_name}'"
                )
            if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                raise UserError(f"Tool '{self.name}': *args/**kwargs parameters are not supported")

            if annotation is inspect.Parameter.empty:
                annotation = Any

            field_info = Field(
                default=... if param.default is inspect.Parameter.empty else param.default,
                description=self._param_docs.get(param_name),
            )
            fields[param_name] = (annotation, field_info)

        return create_model(
            f"{self.name}_args",
            __config__=ConfigDict(extra="forbid"),
            **fields,
        )

    async def invoke(self, ctx: RunContext, arguments: dict[str, Any]) -> Any:
        if self.takes_context:
            result = self.func(ctx, **arguments)
        else:
            result = self.func(**arguments)
        if inspect.isawaitable(result):
            result = await result
        return result


def function_tool(
    func: Callable | None = None,
    *,
    name_override: str | None = None,
    description_override: str | None = None,
    on_error: Callable[[RunContext, Exception], str] | None = None,
):
    """
    Build a FunctionTool from a function.

    Works both as `function_tool(fn, name_override=...)` and as a bare or
    parameterized decorator. Either way the result is a FunctionTool value;
    nothing is registered globally.
    """

    def build(fn: Callable) -> FunctionTool:
        return FunctionTool(fn, name=name_override, description=description_override, on_error=on_error)

    if func is not None:
        return build(func)
    return build


__all__ = ["FunctionTool", "function_tool", "parse_docstring"]
