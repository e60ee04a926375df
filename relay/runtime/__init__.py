"""
Runtime module - run context, control and lifecycle hooks.

The orchestrator lives in relay.runtime.runner; import it from there (or
from the top-level package).
"""

from .context import RunContext, TContext
from .control import AbortSignal
from .hooks import AgentHooks, HookDispatcher, RunHooks

__all__ = [
    "RunContext",
    "TContext",
    "AbortSignal",
    "RunHooks",
    "AgentHooks",
    "HookDispatcher",
]
