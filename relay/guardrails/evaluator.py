"""
Guardrail Evaluator.

All guardrails of one phase run concurrently. The aggregate tripwire is the
OR of the individual ones: the first guardrail (in completion order) that
trips cancels the rest and its result is raised. Exceptions from guardrail
code are wrapped in GuardrailExecutionError.
"""

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, TypeVar

from relay.exceptions import (
    AgentsException,
    GuardrailExecutionError,
    InputGuardrailTripwireTriggered,
    OutputGuardrailTripwireTriggered,
)
from relay.tracing import guardrail_span
from relay.utils.logging import get_logger

from .base import InputGuardrail, InputGuardrailResult, OutputGuardrail, OutputGuardrailResult

if TYPE_CHECKING:
    from relay.agent import Agent
    from relay.runtime.context import RunContext

logger = get_logger(__name__)

R = TypeVar("R", InputGuardrailResult, OutputGuardrailResult)


async def evaluate(
    guardrail: InputGuardrail | OutputGuardrail,
    ctx: "RunContext",
    agent: "Agent",
    payload: Any,
    tracing_disabled: bool = False,
) -> InputGuardrailResult | OutputGuardrailResult:
    """Run one guardrail inside a guardrail span."""
    name = guardrail.get_name()
    with guardrail_span(name, disabled=tracing_disabled) as span:
        try:
            result = await guardrail.run(agent, payload, ctx)
        except AgentsException:
            raise
        except Exception as e:
            logger.error("guardrail_raised", guardrail=name, agent=agent.name, error=str(e), exc_info=True)
            raise GuardrailExecutionError(name, e) from e
        span.set_data(triggered=result.output.tripwire_triggered)
        if result.output.tripwire_triggered:
            span.set_error("Guardrail tripwire triggered", {"guardrail": name})
        return result


async def _run_concurrently(awaitables: list[Awaitable[R]]) -> tuple[list[R], R | None]:
    """
    Run guardrail evaluations concurrently.

    Returns all results and the first tripped one. On a trip or an exception
    the remaining evaluations are cancelled.
    """
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    results: list[R] = []
    tripped: R | None = None
    try:
        for next_done in asyncio.as_completed(tasks):
            result = await next_done
            results.append(result)
            if result.output.tripwire_triggered:
                tripped = result
                break
    finally:
        pending = [t for t in tasks if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
    return results, tripped


async def run_input_guardrails(
    guardrails: list[InputGuardrail],
    agent: "Agent",
    input: str | list[dict[str, Any]],
    ctx: "RunContext",
    tracing_disabled: bool = False,
) -> list[InputGuardrailResult]:
    """
    Evaluate input guardrails.

    Raises:
        InputGuardrailTripwireTriggered: A guardrail tripped
        GuardrailExecutionError: A guardrail raised
    """
    if not guardrails:
        return []

    results, tripped = await _run_concurrently(
        [evaluate(g, ctx, agent, input, tracing_disabled) for g in guardrails]
    )
    if tripped is not None:
        logger.info(
            "input_guardrail_tripped",
            guardrail=tripped.guardrail.get_name(),
            agent=agent.name,
        )
        raise InputGuardrailTripwireTriggered(tripped)
    return results


async def run_output_guardrails(
    guardrails: list[OutputGuardrail],
    agent: "Agent",
    agent_output: Any,
    ctx: "RunContext",
    tracing_disabled: bool = False,
) -> list[OutputGuardrailResult]:
    """
    Evaluate output guardrails against a candidate final output.

    Raises:
        OutputGuardrailTripwireTriggered: A guardrail tripped
        GuardrailExecutionError: A guardrail raised
    """
    if not guardrails:
        return []

    results, tripped = await _run_concurrently(
        [evaluate(g, ctx, agent, agent_output, tracing_disabled) for g in guardrails]
    )
    if tripped is not None:
        logger.info(
            "output_guardrail_tripped",
            guardrail=tripped.guardrail.get_name(),
            agent=agent.name,
        )
        raise OutputGuardrailTripwireTriggered(tripped)
    return results


__all__ = ["evaluate", "run_input_guardrails", "run_output_guardrails"]
