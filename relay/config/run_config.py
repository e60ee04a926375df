"""
Per-run execution configuration.
"""

from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

from relay.config.settings import settings


class RunConfig(BaseModel):
    """
    Runtime configuration for a single run.

    Unset values fall back to the global RelaySettings.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    # Loop configuration
    max_turns: int = Field(
        default_factory=lambda: settings.default_max_turns,
        ge=1,
        description="Maximum model invocations before MaxTurnsExceeded",
    )

    # Timeout configuration
    run_timeout: float | None = Field(
        default_factory=lambda: settings.run_timeout,
        description="Wall-clock bound for the whole run (seconds)",
    )
    turn_timeout: float | None = Field(
        default_factory=lambda: settings.turn_timeout,
        description="Wall-clock bound for a single turn (seconds)",
    )

    # Model override applied to every agent in the run
    model: Any = None  # Model

    # Guardrails applied in addition to the agent's own
    input_guardrails: list[Any] = Field(default_factory=list)
    output_guardrails: list[Any] = Field(default_factory=list)
    input_guardrails_parallel: bool = Field(
        default_factory=lambda: settings.input_guardrails_parallel,
        description="Run input guardrails concurrently with the first model call",
    )

    # Applied to handoffs that do not define their own input filter
    handoff_input_filter: Callable[[Any], Any] | None = None  # HandoffInputData -> HandoffInputData

    # Tracing
    tracing_disabled: bool = Field(default_factory=lambda: settings.tracing_disabled)
    trace_include_sensitive_data: bool = Field(
        default_factory=lambda: settings.trace_include_sensitive_data
    )
    workflow_name: str = "Agent workflow"
    trace_id: str | None = None
    group_id: str | None = None
    trace_metadata: dict[str, Any] | None = None


__all__ = ["RunConfig"]
