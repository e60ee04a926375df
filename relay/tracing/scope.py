"""
Ambient "current trace / current span" pointers.

Held in contextvars, so every asyncio task (and therefore every concurrent
run, and every concurrently executing tool call) sees its own stack. Starting
a span pushes it; finishing it restores the previous value.
"""

import contextvars
from typing import TYPE_CHECKING, Any

from relay.utils.logging import get_logger

if TYPE_CHECKING:
    from .spans import Span, Trace

logger = get_logger(__name__)

_current_trace: contextvars.ContextVar["Trace | None"] = contextvars.ContextVar(
    "current_trace", default=None
)
_current_span: contextvars.ContextVar["Span | None"] = contextvars.ContextVar(
    "current_span", default=None
)


class _Restore:
    """Undo handle for a context variable change."""

    def __init__(self, var: contextvars.ContextVar, token: contextvars.Token, previous: Any):
        self._var = var
        self._token = token
        self._previous = previous

    def restore(self) -> None:
        try:
            self._var.reset(self._token)
        except ValueError:
            # Finished from a different context than the one it started in
            self._var.set(self._previous)


class Scope:
    @classmethod
    def get_current_trace(cls) -> "Trace | None":
        return _current_trace.get()

    @classmethod
    def set_current_trace(cls, trace: "Trace | None") -> _Restore:
        previous = _current_trace.get()
        return _Restore(_current_trace, _current_trace.set(trace), previous)

    @classmethod
    def get_current_span(cls) -> "Span | None":
        return _current_span.get()

    @classmethod
    def set_current_span(cls, span: "Span | None") -> _Restore:
        previous = _current_span.get()
        return _Restore(_current_span, _current_span.set(span), previous)


__all__ = ["Scope"]
