"""
Guardrail values.

A guardrail is a named function `(ctx, agent, payload) -> GuardrailFunctionOutput`
(sync or async). Input guardrails see the pending input; output guardrails
see the candidate final output. Guardrail functions are expected to be free
of side effects.
"""

import inspect
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

from relay.exceptions import UserError

if TYPE_CHECKING:
    from relay.agent import Agent
    from relay.runtime.context import RunContext


@dataclass(frozen=True)
class GuardrailFunctionOutput:
    """What a guardrail function returns."""

    tripwire_triggered: bool
    output_info: Any = None


GuardrailFunction = Callable[
    ["RunContext", "Agent", Any],
    Union[GuardrailFunctionOutput, Awaitable[GuardrailFunctionOutput]],
]


async def _call_guardrail(func: GuardrailFunction, name: str, ctx, agent, payload) -> GuardrailFunctionOutput:
    output = func(ctx, agent, payload)
    if inspect.isawaitable(output):
        output = await output
    if not isinstance(output, GuardrailFunctionOutput):
        raise UserError(
            f"Guardrail '{name}' must return GuardrailFunctionOutput, got {type(output).__name__}"
        )
    return output


@dataclass(frozen=True)
class InputGuardrail:
    guardrail_function: GuardrailFunction
    name: str | None = None

    def get_name(self) -> str:
        return self.name or getattr(self.guardrail_function, "__name__", "input_guardrail")

    async def run(
        self, agent: "Agent", input: str | list[dict[str, Any]], ctx: "RunContext"
    ) -> "InputGuardrailResult":
        output = await _call_guardrail(self.guardrail_function, self.get_name(), ctx, agent, input)
        return InputGuardrailResult(guardrail=self, output=output)


@dataclass(frozen=True)
class OutputGuardrail:
    guardrail_function: GuardrailFunction
    name: str | None = None

    def get_name(self) -> str:
        return self.name or getattr(self.guardrail_function, "__name__", "output_guardrail")

    async def run(self, agent: "Agent", agent_output: Any, ctx: "RunContext") -> "OutputGuardrailResult":
        output = await _call_guardrail(self.guardrail_function, self.get_name(), ctx, agent, agent_output)
        return OutputGuardrailResult(
            guardrail=self,
            agent_name=agent.name,
            agent_output=agent_output,
            output=output,
        )


@dataclass(frozen=True)
class InputGuardrailResult:
    guardrail: InputGuardrail
    output: GuardrailFunctionOutput

    @property
    def tripwire_triggered(self) -> bool:
        return self.output.tripwire_triggered


@dataclass(frozen=True)
class OutputGuardrailResult:
    guardrail: OutputGuardrail
    agent_name: str
    agent_output: Any
    output: GuardrailFunctionOutput

    @property
    def tripwire_triggered(self) -> bool:
        return self.output.tripwire_triggered


def input_guardrail(func: GuardrailFunction | None = None, *, name: str | None = None):
    """Build an InputGuardrail value from a function (directly or as a decorator)."""

    def build(fn: GuardrailFunction) -> InputGuardrail:
        return InputGuardrail(guardrail_function=fn, name=name)

    if func is not None:
        return build(func)
    return build


def output_guardrail(func: GuardrailFunction | None = None, *, name: str | None = None):
    """Build an OutputGuardrail value from a function (directly or as a decorator)."""

    def build(fn: GuardrailFunction) -> OutputGuardrail:
        return OutputGuardrail(guardrail_function=fn, name=name)

    if func is not None:
        return build(func)
    return build


__all__ = [
    "GuardrailFunctionOutput",
    "GuardrailFunction",
    "InputGuardrail",
    "OutputGuardrail",
    "InputGuardrailResult",
    "OutputGuardrailResult",
    "input_guardrail",
    "output_guardrail",
]
