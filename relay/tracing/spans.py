"""
Trace and Span records.

A Trace is the root record of one run; Spans nest under it. Both are
created on start, sealed on finish and handed to the processors. A sealed
record is never mutated again and finishing twice is a no-op, so each span
reaches the processors exactly once.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from relay.utils.logging import get_logger

from .scope import Scope

if TYPE_CHECKING:
    from .processors import TracingProcessor

logger = get_logger(__name__)


class SpanKind(str, Enum):
    AGENT = "agent"
    GENERATION = "generation"
    FUNCTION = "function"
    HANDOFF = "handoff"
    GUARDRAIL = "guardrail"
    CUSTOM = "custom"


class SpanStatus(str, Enum):
    UNSET = "unset"
    OK = "ok"
    ERROR = "error"


def gen_trace_id() -> str:
    return f"trace_{uuid4().hex}"


def gen_span_id() -> str:
    return f"span_{uuid4().hex[:24]}"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Span:
    """
    A timed operation within a trace.

    Usable as a context manager; an exception escaping the block marks the
    span as errored before it finishes.
    """

    def __init__(
        self,
        trace_id: str,
        kind: SpanKind,
        name: str,
        processor: "TracingProcessor",
        parent_id: str | None = None,
        data: dict[str, Any] | None = None,
        span_id: str | None = None,
    ):
        self.trace_id = trace_id
        self.span_id = span_id or gen_span_id()
        self.parent_id = parent_id
        self.kind = kind
        self.name = name
        self._data: dict[str, Any] = dict(data or {})
        self._processor = processor
        self.started_at: datetime | None = None
        self.ended_at: datetime | None = None
        self.status = SpanStatus.UNSET
        self.error: dict[str, Any] | None = None
        self._restore = None
        self._trace: "Trace | None" = None

    @property
    def data(self) -> dict[str, Any]:
        return dict(self._data)

    @property
    def is_finished(self) -> bool:
        return self.ended_at is not None

    @property
    def duration_ms(self) -> float | None:
        if self.started_at is None or self.ended_at is None:
            return None
        return (self.ended_at - self.started_at).total_seconds() * 1000

    def _bind(self, trace: "Trace | None") -> None:
        self._trace = trace

    def start(self, mark_as_current: bool = True) -> "Span":
        if self.started_at is not None:
            logger.debug("span_already_started", span_id=self.span_id)
            return self
        self.started_at = _now()
        if self._trace is not None:
            self._trace._open_span(self)
        self._processor.on_span_start(self)
        if mark_as_current:
            self._restore = Scope.set_current_span(self)
        return self

    def set_data(self, **values: Any) -> None:
        if self.is_finished:
            logger.warning("span_mutation_after_finish", span_id=self.span_id, keys=list(values))
            return
        self._data.update(values)

    def set_error(self, message: str, data: dict[str, Any] | None = None) -> None:
        if self.is_finished:
            logger.warning("span_mutation_after_finish", span_id=self.span_id)
            return
        self.status = SpanStatus.ERROR
        self.error = {"message": message, "data": data}

    def finish(self, reset_current: bool = True) -> None:
        if self.is_finished:
            return
        if self.started_at is None:
            self.started_at = _now()
        if self.status == SpanStatus.UNSET:
            self.status = SpanStatus.OK
        self.ended_at = _now()
        if reset_current and self._restore is not None:
            self._restore.restore()
            self._restore = None
        if self._trace is not None:
            self._trace._close_span(self)
        self._processor.on_span_end(self)

    def export(self) -> dict[str, Any]:
        return {
            "object": "trace.span",
            "id": self.span_id,
            "trace_id": self.trace_id,
            "parent_id": self.parent_id,
            "kind": self.kind.value,
            "name": self.name,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "status": self.status.value,
            "span_data": self._data,
            "error": self.error,
        }

    def __enter__(self) -> "Span":
        return self.start(mark_as_current=True)

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_val is not None and self.status != SpanStatus.ERROR:
            self.set_error(str(exc_val) or exc_type.__name__, {"error_type": exc_type.__name__})
        self.finish(reset_current=True)

    def __repr__(self) -> str:
        return f"Span(kind={self.kind.value}, name={self.name!r}, id={self.span_id})"


class Trace:
    """Root record of a run."""

    def __init__(
        self,
        name: str,
        processor: "TracingProcessor",
        trace_id: str | None = None,
        group_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ):
        self.trace_id = trace_id or gen_trace_id()
        self.name = name
        self.group_id = group_id
        self.metadata = dict(metadata or {})
        self._processor = processor
        self.started_at: datetime | None = None
        self.ended_at: datetime | None = None
        self.status = SpanStatus.UNSET
        self._open_spans: dict[str, Span] = {}
        self._restore = None

    @property
    def is_finished(self) -> bool:
        return self.ended_at is not None

    def _open_span(self, span: Span) -> None:
        self._open_spans[span.span_id] = span

    def _close_span(self, span: Span) -> None:
        self._open_spans.pop(span.span_id, None)

    def start(self, mark_as_current: bool = True) -> "Trace":
        if self.started_at is not None:
            return self
        self.started_at = _now()
        self._processor.on_trace_start(self)
        if mark_as_current:
            self._restore = Scope.set_current_trace(self)
        return self

    def mark_error(self) -> None:
        if not self.is_finished:
            self.status = SpanStatus.ERROR

    def finish(self, reset_current: bool = True) -> None:
        if self.is_finished:
            return
        # Spans still open at this point were abandoned by an error path
        for span in list(self._open_spans.values())[::-1]:
            logger.warning("span_open_at_trace_finish", trace_id=self.trace_id, span_id=span.span_id)
            span.set_error("Trace finished before span")
            span.finish(reset_current=False)
        if self.status == SpanStatus.UNSET:
            self.status = SpanStatus.OK
        self.ended_at = _now()
        if reset_current and self._restore is not None:
            self._restore.restore()
            self._restore = None
        self._processor.on_trace_end(self)

    def export(self) -> dict[str, Any]:
        return {
            "object": "trace",
            "id": self.trace_id,
            "workflow_name": self.name,
            "group_id": self.group_id,
            "metadata": self.metadata,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "status": self.status.value,
        }

    def __enter__(self) -> "Trace":
        return self.start(mark_as_current=True)

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_val is not None:
            self.mark_error()
        self.finish(reset_current=True)

    def __repr__(self) -> str:
        return f"Trace(name={self.name!r}, id={self.trace_id})"


class NoOpSpan(Span):
    """Span handed out while tracing is disabled. Never reaches a processor."""

    def start(self, mark_as_current: bool = True) -> "Span":
        if self.started_at is None:
            self.started_at = _now()
            if mark_as_current:
                self._restore = Scope.set_current_span(self)
        return self

    def finish(self, reset_current: bool = True) -> None:
        if self.is_finished:
            return
        self.ended_at = _now()
        if reset_current and self._restore is not None:
            self._restore.restore()
            self._restore = None


class NoOpTrace(Trace):
    """Trace handed out while tracing is disabled. Never reaches a processor."""

    def start(self, mark_as_current: bool = True) -> "Trace":
        if self.started_at is None:
            self.started_at = _now()
            if mark_as_current:
                self._restore = Scope.set_current_trace(self)
        return self

    def finish(self, reset_current: bool = True) -> None:
        if self.is_finished:
            return
        self.ended_at = _now()
        if reset_current and self._restore is not None:
            self._restore.restore()
            self._restore = None


__all__ = [
    "Span",
    "Trace",
    "NoOpSpan",
    "NoOpTrace",
    "SpanKind",
    "SpanStatus",
    "gen_trace_id",
    "gen_span_id",
]
