"""Runtime exceptions.

Fatal failures are raised to the caller as distinct exception types. Tool
argument validation failures never appear here: they are returned to the
model as tool results so it can correct itself.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from relay.domain.items import RunItem
    from relay.guardrails import InputGuardrailResult, OutputGuardrailResult


@dataclass
class RunErrorDetails:
    """Snapshot of a run at the moment it failed."""

    input: str | list[dict[str, Any]]
    new_items: list["RunItem"] = field(default_factory=list)
    last_agent_name: str | None = None
    input_guardrail_results: list["InputGuardrailResult"] = field(default_factory=list)
    output_guardrail_results: list["OutputGuardrailResult"] = field(default_factory=list)


class AgentsException(Exception):
    """Base exception for all runtime errors."""

    run_data: RunErrorDetails | None = None


class MaxTurnsExceeded(AgentsException):
    """The run needed more model invocations than max_turns allows."""

    def __init__(self, max_turns: int):
        self.max_turns = max_turns
        super().__init__(f"Max turns ({max_turns}) exceeded")


class ModelBehaviorError(AgentsException):
    """The model produced an action the runtime cannot interpret."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UserError(AgentsException):
    """The runtime was configured or called incorrectly."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InputGuardrailTripwireTriggered(AgentsException):
    """An input guardrail tripped."""

    def __init__(self, guardrail_result: "InputGuardrailResult"):
        self.guardrail_result = guardrail_result
        super().__init__(
            f"Guardrail {guardrail_result.guardrail.get_name()} triggered tripwire"
        )

    @property
    def output_info(self) -> Any:
        return self.guardrail_result.output.output_info


class OutputGuardrailTripwireTriggered(AgentsException):
    """An output guardrail tripped; the candidate output was discarded."""

    def __init__(self, guardrail_result: "OutputGuardrailResult"):
        self.guardrail_result = guardrail_result
        super().__init__(
            f"Guardrail {guardrail_result.guardrail.get_name()} triggered tripwire"
        )

    @property
    def output_info(self) -> Any:
        return self.guardrail_result.output.output_info


class UserCodeError(AgentsException):
    """An exception escaped user-supplied code (a tool or a guardrail)."""

    component: str = "user_code"

    def __init__(self, name: str, original: BaseException):
        self.name = name
        self.original = original
        super().__init__(f"{self.component} '{name}' raised {type(original).__name__}: {original}")


class ToolExecutionError(UserCodeError):
    component = "tool"

    @property
    def tool_name(self) -> str:
        return self.name


class GuardrailExecutionError(UserCodeError):
    component = "guardrail"

    @property
    def guardrail_name(self) -> str:
        return self.name


class HandoffError(AgentsException):
    """A handoff could not be carried out."""

    def __init__(self, handoff_name: str, reason: str):
        self.handoff_name = handoff_name
        self.reason = reason
        super().__init__(f"Handoff '{handoff_name}' failed: {reason}")


class RunTimeoutError(AgentsException):
    """A caller-supplied wall-clock bound was exceeded."""

    def __init__(self, timeout: float, scope: str = "run"):
        self.timeout = timeout
        self.scope = scope
        super().__init__(f"{scope.capitalize()} timed out after {timeout}s")


__all__ = [
    "RunErrorDetails",
    "AgentsException",
    "MaxTurnsExceeded",
    "ModelBehaviorError",
    "UserError",
    "InputGuardrailTripwireTriggered",
    "OutputGuardrailTripwireTriggered",
    "UserCodeError",
    "ToolExecutionError",
    "GuardrailExecutionError",
    "HandoffError",
    "RunTimeoutError",
]
