"""
Guardrail Evaluator module.
"""

from .base import (
    GuardrailFunction,
    GuardrailFunctionOutput,
    InputGuardrail,
    InputGuardrailResult,
    OutputGuardrail,
    OutputGuardrailResult,
    input_guardrail,
    output_guardrail,
)
from .evaluator import evaluate, run_input_guardrails, run_output_guardrails

__all__ = [
    "GuardrailFunction",
    "GuardrailFunctionOutput",
    "InputGuardrail",
    "OutputGuardrail",
    "InputGuardrailResult",
    "OutputGuardrailResult",
    "input_guardrail",
    "output_guardrail",
    "evaluate",
    "run_input_guardrails",
    "run_output_guardrails",
]
