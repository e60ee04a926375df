from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel

if TYPE_CHECKING:
    from relay.runtime.context import RunContext


class Tool(ABC):
    """
    A capability exposed to an agent.

    A tool is a plain value: a name, a description, an argument schema and a
    callable. It holds no per-run state and may be shared by many agents and
    concurrent runs.
    """

    name: str
    description: str
    args_schema: type[BaseModel] | None = None
    # Turns an exception raised by the tool into a message for the model.
    # When unset, the exception terminates the run as ToolExecutionError.
    on_error: Callable[["RunContext", Exception], str] | None = None

    @property
    def params_json_schema(self) -> dict[str, Any]:
        if self.args_schema is None:
            return {"type": "object", "properties": {}, "additionalProperties": False}
        schema = self.args_schema.model_json_schema()
        schema.pop("title", None)
        return schema

    def validate_arguments(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """
        Validate raw model arguments against the declared schema.

        Raises:
            pydantic.ValidationError: If the arguments do not match
        """
        if self.args_schema is None:
            return dict(arguments)
        parsed = self.args_schema.model_validate(arguments)
        return {name: getattr(parsed, name) for name in self.args_schema.model_fields}

    @abstractmethod
    async def invoke(self, ctx: "RunContext", arguments: dict[str, Any]) -> Any:
        """Run the tool with already validated arguments."""
        pass

    def to_openai_schema(self) -> dict:
        """Convert to OpenAI function calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.params_json_schema,
            },
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


__all__ = ["Tool"]
