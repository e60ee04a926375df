"""
Helpers for creating traces and typed spans.

Spans are created unstarted; use them as context managers or call
start()/finish() explicitly.
"""

from typing import Any

from .provider import get_trace_provider
from .scope import Scope
from .spans import Span, SpanKind, Trace


def trace(
    workflow_name: str,
    trace_id: str | None = None,
    group_id: str | None = None,
    metadata: dict[str, Any] | None = None,
    disabled: bool = False,
) -> Trace:
    """Create a new trace. Use as `with trace("My workflow"): ...`."""
    return get_trace_provider().create_trace(
        name=workflow_name,
        trace_id=trace_id,
        group_id=group_id,
        metadata=metadata,
        disabled=disabled,
    )


def get_current_trace() -> Trace | None:
    return Scope.get_current_trace()


def get_current_span() -> Span | None:
    return Scope.get_current_span()


def agent_span(
    name: str,
    handoffs: list[str] | None = None,
    tools: list[str] | None = None,
    output_type: str | None = None,
    disabled: bool = False,
) -> Span:
    return get_trace_provider().create_span(
        SpanKind.AGENT,
        name,
        data={"handoffs": handoffs or [], "tools": tools or [], "output_type": output_type},
        disabled=disabled,
    )


def generation_span(
    model: str | None = None,
    input: list[dict] | None = None,
    disabled: bool = False,
) -> Span:
    return get_trace_provider().create_span(
        SpanKind.GENERATION,
        model or "generation",
        data={"model": model, "input": input},
        disabled=disabled,
    )


def function_span(name: str, input: str | None = None, disabled: bool = False) -> Span:
    return get_trace_provider().create_span(
        SpanKind.FUNCTION, name, data={"input": input}, disabled=disabled
    )


def handoff_span(from_agent: str, to_agent: str | None = None, disabled: bool = False) -> Span:
    return get_trace_provider().create_span(
        SpanKind.HANDOFF,
        f"{from_agent} -> {to_agent or '?'}",
        data={"from_agent": from_agent, "to_agent": to_agent},
        disabled=disabled,
    )


def guardrail_span(name: str, triggered: bool = False, disabled: bool = False) -> Span:
    return get_trace_provider().create_span(
        SpanKind.GUARDRAIL, name, data={"triggered": triggered}, disabled=disabled
    )


def custom_span(name: str, data: dict[str, Any] | None = None, disabled: bool = False) -> Span:
    return get_trace_provider().create_span(SpanKind.CUSTOM, name, data=data, disabled=disabled)


__all__ = [
    "trace",
    "get_current_trace",
    "get_current_span",
    "agent_span",
    "generation_span",
    "function_span",
    "handoff_span",
    "guardrail_span",
    "custom_span",
]
