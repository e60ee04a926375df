"""
Tracing processors and exporters.

Processors receive every started/finished trace and span. They run beside
the run's critical path: the MultiTracingProcessor logs and swallows their
failures and notifies slow processors from a dispatch thread. The batching
processor hands export work to its own background thread.
"""

import queue
import threading
import time
from abc import ABC, abstractmethod
from typing import Any

import httpx

from relay.utils.logging import get_logger
from relay.utils.retry import retry_sync

from .spans import Span, Trace

logger = get_logger(__name__)


class TracingProcessor(ABC):
    """
    Receives trace and span lifecycle notifications.

    Set `runs_inline` only when every callback returns immediately (records
    in memory or hands off to its own worker); other processors are notified
    off the event loop.
    """

    runs_inline: bool = False

    @abstractmethod
    def on_trace_start(self, trace: Trace) -> None:
        pass

    @abstractmethod
    def on_trace_end(self, trace: Trace) -> None:
        pass

    @abstractmethod
    def on_span_start(self, span: Span) -> None:
        pass

    @abstractmethod
    def on_span_end(self, span: Span) -> None:
        pass

    def shutdown(self) -> None:
        pass

    def force_flush(self) -> None:
        pass


class TracingExporter(ABC):
    """Ships finished traces and spans somewhere."""

    @abstractmethod
    def export(self, items: list[Trace | Span]) -> None:
        pass


class MultiTracingProcessor(TracingProcessor):
    """
    Fans notifications out to every registered processor.

    Processors with `runs_inline` set are called directly; every other
    processor is notified, in order, from a single dispatch thread so that a
    slow one never blocks the event loop the run is on. force_flush() and
    shutdown() wait for pending notifications first. A processor that raises
    is logged and skipped; the error never reaches the caller.
    """

    def __init__(self):
        self._processors: tuple[TracingProcessor, ...] = ()
        self._lock = threading.Lock()
        self._pending: queue.Queue[tuple[TracingProcessor, str, tuple] | None] = queue.Queue()
        self._dispatcher: threading.Thread | None = None

    @property
    def processors(self) -> tuple[TracingProcessor, ...]:
        return self._processors

    def add_processor(self, processor: TracingProcessor) -> None:
        with self._lock:
            self._processors = self._processors + (processor,)

    def set_processors(self, processors: list[TracingProcessor]) -> None:
        with self._lock:
            self._processors = tuple(processors)

    def _ensure_dispatcher(self) -> None:
        if self._dispatcher is not None:
            return
        with self._lock:
            if self._dispatcher is None:
                self._dispatcher = threading.Thread(
                    target=self._run_dispatcher, name="relay-trace-dispatch", daemon=True
                )
                self._dispatcher.start()

    def _run_dispatcher(self) -> None:
        while True:
            entry = self._pending.get()
            try:
                if entry is None:
                    return
                processor, method, args = entry
                self._call(processor, method, args)
            finally:
                self._pending.task_done()

    @staticmethod
    def _call(processor: TracingProcessor, method: str, args: tuple) -> None:
        try:
            getattr(processor, method)(*args)
        except Exception as e:
            logger.error(
                "tracing_processor_failed",
                processor=type(processor).__name__,
                method=method,
                error=str(e),
                exc_info=True,
            )

    def _dispatch(self, method: str, *args: Any) -> None:
        for processor in self._processors:
            if processor.runs_inline:
                self._call(processor, method, args)
            else:
                self._ensure_dispatcher()
                self._pending.put((processor, method, args))

    def _wait_pending(self) -> None:
        if self._dispatcher is not None:
            self._pending.join()

    def on_trace_start(self, trace: Trace) -> None:
        self._dispatch("on_trace_start", trace)

    def on_trace_end(self, trace: Trace) -> None:
        self._dispatch("on_trace_end", trace)

    def on_span_start(self, span: Span) -> None:
        self._dispatch("on_span_start", span)

    def on_span_end(self, span: Span) -> None:
        self._dispatch("on_span_end", span)

    def shutdown(self) -> None:
        self._wait_pending()
        for processor in self._processors:
            self._call(processor, "shutdown", ())
        with self._lock:
            dispatcher, self._dispatcher = self._dispatcher, None
        if dispatcher is not None:
            self._pending.put(None)
            dispatcher.join()

    def force_flush(self) -> None:
        self._wait_pending()
        for processor in self._processors:
            self._call(processor, "force_flush", ())


# ============================================================================
# Exporters
# ============================================================================


class ConsoleSpanExporter(TracingExporter):
    """Writes each finished record to the relay logger."""

    def export(self, items: list[Trace | Span]) -> None:
        for item in items:
            if isinstance(item, Trace):
                logger.info("trace_exported", trace_id=item.trace_id, name=item.name, status=item.status.value)
            else:
                logger.info(
                    "span_exported",
                    trace_id=item.trace_id,
                    span_id=item.span_id,
                    parent_id=item.parent_id,
                    kind=item.kind.value,
                    name=item.name,
                    status=item.status.value,
                    duration_ms=item.duration_ms,
                )


class _RetryableStatus(Exception):
    pass


class BackendSpanExporter(TracingExporter):
    """
    POSTs batches of records as JSON to an ingest endpoint.

    Payload: {"data": [record.export(), ...]}. Transport errors and 5xx
    responses are retried with exponential backoff; 4xx responses are logged
    and dropped.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str | None = None,
        timeout: float = 10.0,
        max_retries: int = 3,
        client: httpx.Client | None = None,
        min_wait: float = 0.5,
        max_wait: float = 8.0,
    ):
        self.endpoint = endpoint
        self.api_key = api_key
        self.max_retries = max_retries
        self._client = client or httpx.Client(timeout=timeout)
        self._post = retry_sync(
            max_attempts=max_retries,
            min_wait=min_wait,
            max_wait=max_wait,
            exceptions=(httpx.TransportError, _RetryableStatus),
        )(self._post_once)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _post_once(self, payload: dict[str, Any]) -> None:
        response = self._client.post(self.endpoint, json=payload, headers=self._headers())
        if response.status_code >= 500:
            raise _RetryableStatus(f"{response.status_code}: {response.text[:200]}")
        if response.status_code >= 400:
            logger.error(
                "trace_export_rejected",
                status_code=response.status_code,
                body=response.text[:500],
            )

    def export(self, items: list[Trace | Span]) -> None:
        if not items:
            return
        payload = {"data": [item.export() for item in items]}
        try:
            self._post(payload)
        except (httpx.TransportError, _RetryableStatus) as e:
            logger.error("trace_export_failed", endpoint=self.endpoint, items=len(items), error=str(e))

    def close(self) -> None:
        self._client.close()


# ============================================================================
# Processors
# ============================================================================


class SimpleTracingProcessor(TracingProcessor):
    """Exports each record synchronously as soon as it finishes."""

    def __init__(self, exporter: TracingExporter):
        self.exporter = exporter

    def on_trace_start(self, trace: Trace) -> None:
        pass

    def on_trace_end(self, trace: Trace) -> None:
        self.exporter.export([trace])

    def on_span_start(self, span: Span) -> None:
        pass

    def on_span_end(self, span: Span) -> None:
        self.exporter.export([span])


class ConsoleSpanProcessor(SimpleTracingProcessor):
    def __init__(self):
        super().__init__(ConsoleSpanExporter())


class InMemoryTracingProcessor(TracingProcessor):
    """Keeps every record in memory, for tests and local inspection."""

    runs_inline = True

    def __init__(self):
        self._lock = threading.Lock()
        self.started_traces: list[Trace] = []
        self.finished_traces: list[Trace] = []
        self.started_spans: list[Span] = []
        self.finished_spans: list[Span] = []

    def on_trace_start(self, trace: Trace) -> None:
        with self._lock:
            self.started_traces.append(trace)

    def on_trace_end(self, trace: Trace) -> None:
        with self._lock:
            self.finished_traces.append(trace)

    def on_span_start(self, span: Span) -> None:
        with self._lock:
            self.started_spans.append(span)

    def on_span_end(self, span: Span) -> None:
        with self._lock:
            self.finished_spans.append(span)

    def spans_of_kind(self, kind) -> list[Span]:
        with self._lock:
            return [s for s in self.finished_spans if s.kind == kind]

    def clear(self) -> None:
        with self._lock:
            self.started_traces.clear()
            self.finished_traces.clear()
            self.started_spans.clear()
            self.finished_spans.clear()


class BatchTraceProcessor(TracingProcessor):
    """
    Buffers finished records and exports them in batches from a worker thread.

    A batch is sent when `max_batch_size` records are waiting or every
    `schedule_delay` seconds, whichever comes first. Delivery is eventual, not
    immediate. shutdown() stops the worker and exports everything still
    buffered before returning. When the buffer is full new records are
    dropped with a warning.
    """

    runs_inline = True

    def __init__(
        self,
        exporter: TracingExporter,
        max_queue_size: int = 8192,
        max_batch_size: int = 128,
        schedule_delay: float = 5.0,
    ):
        self.exporter = exporter
        self.max_batch_size = max_batch_size
        self.schedule_delay = schedule_delay
        self._queue: queue.Queue[Trace | Span] = queue.Queue(maxsize=max_queue_size)
        self._wakeup = threading.Event()
        self._stopped = threading.Event()
        self._export_lock = threading.Lock()
        self._worker: threading.Thread | None = None
        self._worker_lock = threading.Lock()

    def _ensure_worker(self) -> None:
        if self._worker is not None or self._stopped.is_set():
            return
        with self._worker_lock:
            if self._worker is None:
                self._worker = threading.Thread(
                    target=self._run, name="relay-trace-exporter", daemon=True
                )
                self._worker.start()

    def _enqueue(self, item: Trace | Span) -> None:
        if self._stopped.is_set():
            logger.warning("trace_processor_stopped_dropping", item=repr(item))
            return
        try:
            self._queue.put_nowait(item)
        except queue.Full:
            logger.warning("trace_queue_full_dropping", item=repr(item))
            return
        self._ensure_worker()
        if self._queue.qsize() >= self.max_batch_size:
            self._wakeup.set()

    def on_trace_start(self, trace: Trace) -> None:
        pass

    def on_trace_end(self, trace: Trace) -> None:
        self._enqueue(trace)

    def on_span_start(self, span: Span) -> None:
        pass

    def on_span_end(self, span: Span) -> None:
        self._enqueue(span)

    def _drain(self, limit: int | None = None) -> list[Trace | Span]:
        items: list[Trace | Span] = []
        while limit is None or len(items) < limit:
            try:
                items.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return items

    def _export_batches(self, everything: bool) -> None:
        with self._export_lock:
            while True:
                batch = self._drain(self.max_batch_size)
                if not batch:
                    return
                try:
                    self.exporter.export(batch)
                except Exception as e:
                    logger.error("trace_batch_export_failed", items=len(batch), error=str(e), exc_info=True)
                if not everything and self._queue.qsize() < self.max_batch_size:
                    return

    def _run(self) -> None:
        next_flush = time.monotonic() + self.schedule_delay
        while not self._stopped.is_set():
            timeout = max(0.0, next_flush - time.monotonic())
            self._wakeup.wait(timeout)
            self._wakeup.clear()
            if self._stopped.is_set():
                break
            timed_out = time.monotonic() >= next_flush
            if timed_out or self._queue.qsize() >= self.max_batch_size:
                self._export_batches(everything=timed_out)
            if timed_out:
                next_flush = time.monotonic() + self.schedule_delay

    def force_flush(self) -> None:
        self._export_batches(everything=True)

    def shutdown(self, timeout: float | None = None) -> None:
        if self._stopped.is_set():
            return
        self._stopped.set()
        self._wakeup.set()
        if self._worker is not None:
            self._worker.join(timeout=timeout)
        self._export_batches(everything=True)
        close = getattr(self.exporter, "close", None)
        if callable(close):
            close()


__all__ = [
    "TracingProcessor",
    "TracingExporter",
    "MultiTracingProcessor",
    "ConsoleSpanExporter",
    "BackendSpanExporter",
    "SimpleTracingProcessor",
    "ConsoleSpanProcessor",
    "InMemoryTracingProcessor",
    "BatchTraceProcessor",
]
