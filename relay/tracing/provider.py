"""
Process-wide trace provider.

Owns the enable/disable switch and the registered processors, and hands out
Trace / Span objects. The current trace and span themselves live in
contextvars (see scope.py), not here.
"""

import atexit
import threading
from typing import Any

from relay.config.settings import settings
from relay.utils.logging import get_logger

from .processors import (
    BackendSpanExporter,
    BatchTraceProcessor,
    ConsoleSpanProcessor,
    MultiTracingProcessor,
    TracingProcessor,
)
from .scope import Scope
from .spans import NoOpSpan, NoOpTrace, Span, SpanKind, Trace

logger = get_logger(__name__)


class TraceProvider:
    def __init__(self, disabled: bool = False):
        self._multi = MultiTracingProcessor()
        self._disabled = disabled
        self._lock = threading.Lock()

    @property
    def disabled(self) -> bool:
        return self._disabled

    def set_disabled(self, disabled: bool) -> None:
        with self._lock:
            self._disabled = disabled
        logger.info("tracing_switch_changed", disabled=disabled)

    @property
    def processors(self) -> tuple[TracingProcessor, ...]:
        return self._multi.processors

    def add_processor(self, processor: TracingProcessor) -> None:
        self._multi.add_processor(processor)

    def set_processors(self, processors: list[TracingProcessor]) -> None:
        self._multi.set_processors(processors)

    def create_trace(
        self,
        name: str,
        trace_id: str | None = None,
        group_id: str | None = None,
        metadata: dict[str, Any] | None = None,
        disabled: bool = False,
    ) -> Trace:
        if self._disabled or disabled:
            return NoOpTrace(name=name, processor=self._multi, trace_id=trace_id)
        return Trace(
            name=name,
            processor=self._multi,
            trace_id=trace_id,
            group_id=group_id,
            metadata=metadata,
        )

    def create_span(
        self,
        kind: SpanKind,
        name: str,
        data: dict[str, Any] | None = None,
        parent: Trace | Span | None = None,
        disabled: bool = False,
    ) -> Span:
        """
        Create a span under `parent`, or under the current span/trace.

        Returns a NoOpSpan when tracing is disabled or there is no active
        (real) trace to attach to.
        """
        if parent is None:
            parent = Scope.get_current_span() or Scope.get_current_trace()

        trace: Trace | None
        parent_id: str | None
        if isinstance(parent, Span):
            trace = parent._trace
            parent_id = parent.span_id
            trace_id = parent.trace_id
            parent_is_noop = isinstance(parent, NoOpSpan)
        elif isinstance(parent, Trace):
            trace = parent
            parent_id = None
            trace_id = parent.trace_id
            parent_is_noop = isinstance(parent, NoOpTrace)
        else:
            trace, parent_id, trace_id, parent_is_noop = None, None, "no-op", True

        if self._disabled or disabled or parent_is_noop:
            span: Span = NoOpSpan(
                trace_id=trace_id, kind=kind, name=name, processor=self._multi, parent_id=parent_id, data=data
            )
        else:
            span = Span(
                trace_id=trace_id, kind=kind, name=name, processor=self._multi, parent_id=parent_id, data=data
            )
        span._bind(trace if not isinstance(span, NoOpSpan) else None)
        return span

    def force_flush(self) -> None:
        self._multi.force_flush()

    def shutdown(self) -> None:
        logger.debug("trace_provider_shutdown")
        self._multi.shutdown()


def _default_processors() -> list[TracingProcessor]:
    processors: list[TracingProcessor] = []
    if settings.trace_console:
        processors.append(ConsoleSpanProcessor())
    if settings.trace_export_endpoint:
        api_key = settings.trace_export_api_key
        processors.append(
            BatchTraceProcessor(
                BackendSpanExporter(
                    endpoint=settings.trace_export_endpoint,
                    api_key=api_key.get_secret_value() if api_key else None,
                    timeout=settings.trace_export_timeout,
                    max_retries=settings.trace_export_max_retries,
                ),
                max_queue_size=settings.trace_max_queue_size,
                max_batch_size=settings.trace_batch_size,
                schedule_delay=settings.trace_schedule_delay,
            )
        )
    return processors


# Global provider instance (lazy)
_provider: TraceProvider | None = None
_provider_lock = threading.Lock()


def get_trace_provider() -> TraceProvider:
    global _provider
    if _provider is None:
        with _provider_lock:
            if _provider is None:
                provider = TraceProvider(disabled=settings.tracing_disabled)
                provider.set_processors(_default_processors())
                atexit.register(provider.shutdown)
                _provider = provider
    return _provider


def set_trace_provider(provider: TraceProvider) -> None:
    global _provider
    with _provider_lock:
        _provider = provider


def set_tracing_disabled(disabled: bool) -> None:
    """Globally enable or disable tracing."""
    get_trace_provider().set_disabled(disabled)


def add_trace_processor(processor: TracingProcessor) -> None:
    """Register an additional trace processor."""
    get_trace_provider().add_processor(processor)


def set_trace_processors(processors: list[TracingProcessor]) -> None:
    """Replace all registered trace processors."""
    get_trace_provider().set_processors(processors)


__all__ = [
    "TraceProvider",
    "get_trace_provider",
    "set_trace_provider",
    "set_tracing_disabled",
    "add_trace_processor",
    "set_trace_processors",
]
