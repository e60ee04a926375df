"""
Relay - multi-agent orchestration runtime.

Agents call tools, hand off to each other and are checked by guardrails,
all inside a bounded turn loop that is traced end to end.
"""

from relay.agent import Agent, AgentRegistry
from relay.config import RelaySettings, RunConfig, settings
from relay.domain import (
    HandoffCallItem,
    HandoffOutputItem,
    MessageOutputItem,
    RunEvent,
    RunEventType,
    RunItem,
    ToolCallItem,
    ToolCallOutputItem,
    ToolResult,
    Usage,
)
from relay.exceptions import (
    AgentsException,
    GuardrailExecutionError,
    HandoffError,
    InputGuardrailTripwireTriggered,
    MaxTurnsExceeded,
    ModelBehaviorError,
    OutputGuardrailTripwireTriggered,
    RunErrorDetails,
    RunTimeoutError,
    ToolExecutionError,
    UserCodeError,
    UserError,
)
from relay.guardrails import (
    GuardrailFunctionOutput,
    InputGuardrail,
    InputGuardrailResult,
    OutputGuardrail,
    OutputGuardrailResult,
    input_guardrail,
    output_guardrail,
)
from relay.handoffs import Handoff, HandoffInputData, handoff, handoff_filters
from relay.llm import Model, ModelResponse, StreamChunk
from relay.runtime import AbortSignal, AgentHooks, RunContext, RunHooks
from relay.runtime.agent_tool import AgentTool
from relay.runtime.result import RunResult, RunResultStreaming
from relay.runtime.runner import Runner
from relay.tools import FunctionTool, Tool, function_tool
from relay.tracing import (
    add_trace_processor,
    set_trace_processors,
    set_tracing_disabled,
    trace,
)
from relay.utils.logging import configure_logging, get_logger

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Agents
    "Agent",
    "AgentRegistry",
    "AgentTool",
    # Running
    "Runner",
    "RunResult",
    "RunResultStreaming",
    "RunContext",
    "RunConfig",
    "RunHooks",
    "AgentHooks",
    "AbortSignal",
    # Tools
    "Tool",
    "FunctionTool",
    "function_tool",
    "ToolResult",
    # Guardrails
    "GuardrailFunctionOutput",
    "InputGuardrail",
    "OutputGuardrail",
    "InputGuardrailResult",
    "OutputGuardrailResult",
    "input_guardrail",
    "output_guardrail",
    # Handoffs
    "Handoff",
    "HandoffInputData",
    "handoff",
    "handoff_filters",
    # Model
    "Model",
    "ModelResponse",
    "StreamChunk",
    # Items and events
    "RunItem",
    "MessageOutputItem",
    "ToolCallItem",
    "ToolCallOutputItem",
    "HandoffCallItem",
    "HandoffOutputItem",
    "RunEvent",
    "RunEventType",
    "Usage",
    # Errors
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
    "RunErrorDetails",
    # Tracing
    "trace",
    "set_tracing_disabled",
    "add_trace_processor",
    "set_trace_processors",
    # Settings and logging
    "RelaySettings",
    "settings",
    "configure_logging",
    "get_logger",
]
