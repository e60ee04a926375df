"""
Tracing module - passive, best-effort observability for runs.
"""

from .create import (
    agent_span,
    custom_span,
    function_span,
    generation_span,
    get_current_span,
    get_current_trace,
    guardrail_span,
    handoff_span,
    trace,
)
from .processors import (
    BackendSpanExporter,
    BatchTraceProcessor,
    ConsoleSpanExporter,
    ConsoleSpanProcessor,
    InMemoryTracingProcessor,
    MultiTracingProcessor,
    SimpleTracingProcessor,
    TracingExporter,
    TracingProcessor,
)
from .provider import (
    TraceProvider,
    add_trace_processor,
    get_trace_provider,
    set_trace_processors,
    set_trace_provider,
    set_tracing_disabled,
)
from .spans import NoOpSpan, NoOpTrace, Span, SpanKind, SpanStatus, Trace

__all__ = [
    "Trace",
    "Span",
    "NoOpTrace",
    "NoOpSpan",
    "SpanKind",
    "SpanStatus",
    "trace",
    "get_current_trace",
    "get_current_span",
    "agent_span",
    "generation_span",
    "function_span",
    "handoff_span",
    "guardrail_span",
    "custom_span",
    "TracingProcessor",
    "TracingExporter",
    "MultiTracingProcessor",
    "SimpleTracingProcessor",
    "ConsoleSpanExporter",
    "ConsoleSpanProcessor",
    "BackendSpanExporter",
    "BatchTraceProcessor",
    "InMemoryTracingProcessor",
    "TraceProvider",
    "get_trace_provider",
    "set_trace_provider",
    "set_tracing_disabled",
    "add_trace_processor",
    "set_trace_processors",
]
