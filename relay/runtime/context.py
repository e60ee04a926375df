"""
Run-scoped context.

RunContext wraps the caller's opaque context object for the duration of one
run. It is passed to tools that declare it, to guardrails, to dynamic
instructions and to lifecycle hooks. It is never shared between runs.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from relay.domain.models import Usage

if TYPE_CHECKING:
    from relay.config import RunConfig

TContext = TypeVar("TContext")


@dataclass
class RunContext(Generic[TContext]):
    """
    Attributes:
        context: Caller-supplied state (any object, or None)
        usage: Usage accumulated by the run so far
        depth: Nesting depth (0 = top-level, >0 inside an agent-as-tool)
        call_stack: Names of agents currently running as nested tools
        run_config: Settings of the run this context belongs to; nested runs inherit it
    """

    context: TContext
    usage: Usage = field(default_factory=Usage)
    depth: int = 0
    call_stack: tuple[str, ...] = ()
    run_config: "RunConfig | None" = field(default=None, repr=False)

    def child(self, agent_name: str) -> "RunContext[TContext]":
        """Create the context for a nested run, sharing the caller's context object."""
        return RunContext(
            context=self.context,
            depth=self.depth + 1,
            call_stack=self.call_stack + (agent_name,),
            run_config=self.run_config,
        )


__all__ = ["RunContext", "TContext"]
