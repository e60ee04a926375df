"""
Core domain models.

- MessageRole: standard LLM message roles
- RunStatus: run lifecycle status
- Usage: token and request accounting for a run
"""

from enum import Enum

from pydantic import BaseModel


class MessageRole(str, Enum):
    """Standard LLM message roles"""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class RunStatus(str, Enum):
    """Run status"""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Usage(BaseModel):
    """
    Accumulated usage for a run.

    Supports add() for merging usage from nested runs and model calls.
    """

    requests: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def add(self, other: "Usage") -> None:
        self.requests += other.requests
        self.input_tokens += other.input_tokens
        self.output_tokens += other.output_tokens
        self.total_tokens += other.total_tokens

    @classmethod
    def from_usage_dict(cls, data: dict[str, int] | None) -> "Usage":
        """
        Build usage from a provider usage dict.

        Accepts both OpenAI-style (prompt_tokens/completion_tokens) and
        input_tokens/output_tokens keys.
        """
        if not data:
            return cls(requests=1)
        input_tokens = data.get("input_tokens", data.get("prompt_tokens", 0)) or 0
        output_tokens = data.get("output_tokens", data.get("completion_tokens", 0)) or 0
        total = data.get("total_tokens") or (input_tokens + output_tokens)
        return cls(
            requests=1,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=total,
        )


__all__ = ["MessageRole", "RunStatus", "Usage"]
