"""
Model abstraction layer - Pure LLM Interface

Responsibilities:
- Define the unified streaming interface the runtime calls
- Standardize output format (StreamChunk)
- Accumulate streamed tool calls into complete calls

Does NOT handle:
- Tool Loop logic
- Guardrails or handoffs
- Provider SDK integration (implemented outside this package)
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from relay.domain.models import Usage


class StreamChunk(BaseModel):
    """
    Minimal unit of LLM streaming output.

    All Model implementations must standardize their vendor-specific
    streaming output to this format.
    """

    model_config = ConfigDict(frozen=False)

    content: str | None = Field(default=None, description="Text content delta")
    tool_calls: list[dict] | None = Field(
        default=None, description="Tool calls delta (OpenAI format)"
    )
    usage: dict[str, int] | None = Field(
        default=None,
        description="Token usage stats {input_tokens, output_tokens, total_tokens}",
    )
    finish_reason: str | None = Field(
        default=None, description="Finish reason: stop, tool_calls, length, etc."
    )


class Model(BaseModel, ABC):
    """
    Unified Model abstract base class.

    Provider implementations inherit this class and implement arun_stream().
    """

    id: str = Field(description="Model identifier, format: provider/model-name")
    name: str = Field(description="Model name")

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1)

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="allow")

    @abstractmethod
    async def arun_stream(
        self,
        messages: list[dict],
        tools: list[dict] | None = None,
        output_schema: dict | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """
        Unified streaming interface.

        Args:
            messages: Message list, standard OpenAI format
            tools: Tool definition list, OpenAI format
            output_schema: JSON schema the final answer must follow, if any

        Yields:
            StreamChunk: Streaming output chunk
        """
        pass


class ToolCallAccumulator:
    """
    Accumulate streaming tool calls.

    Providers return tool calls incrementally; they must be accumulated before
    execution.
    """

    def __init__(self):
        self._calls: dict[int, dict] = {}

    def accumulate(self, delta_calls: list[dict]):
        """Accumulate incremental tool calls."""
        for tc in delta_calls:
            idx = self._resolve_index(tc)

            if idx not in self._calls:
                self._calls[idx] = {
                    "id": None,
                    "type": "function",
                    "function": {"name": "", "arguments": ""},
                }

            acc = self._calls[idx]

            if tc.get("id"):
                acc["id"] = tc["id"]

            if tc.get("type"):
                acc["type"] = tc["type"]

            if tc.get("function"):
                fn = tc["function"]
                if fn.get("name"):
                    acc["function"]["name"] += fn["name"]
                if fn.get("arguments"):
                    args = fn["arguments"]
                    if not isinstance(args, str):
                        args = json.dumps(args)
                    acc["function"]["arguments"] += args

    def _resolve_index(self, tc: dict) -> int:
        # OpenAI deltas carry an index; complete calls without one are keyed by id
        if "index" in tc:
            return tc["index"]
        call_id = tc.get("id")
        if call_id:
            for idx, call in self._calls.items():
                if call["id"] == call_id:
                    return idx
            return max(self._calls, default=-1) + 1
        return max(self._calls, default=0)

    def finalize(self) -> list[dict]:
        """
        Get final complete tool calls, in index order.

        Providers that never send an id still get their calls executed; those
        calls are given a generated one.
        """
        calls = []
        for idx in sorted(self._calls):
            call = self._calls[idx]
            if call["id"] is None:
                call["id"] = f"call_{uuid4().hex[:24]}"
            calls.append(call)
        return calls


@dataclass
class ModelResponse:
    """A complete model response assembled from its stream."""

    content: str | None = None
    tool_calls: list[dict[str, Any]] = field(default_factory=list)
    usage: Usage = field(default_factory=lambda: Usage(requests=1))
    finish_reason: str | None = None


__all__ = ["Model", "StreamChunk", "ToolCallAccumulator", "ModelResponse"]
