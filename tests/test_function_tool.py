"""
Tests for FunctionTool schema generation and docstring parsing.
"""

import pytest

from relay.exceptions import UserError
from relay.runtime.context import RunContext
from relay.tools import FunctionTool, function_tool, parse_docstring


def get_weather(city: str, unit: str = "celsius") -> str:
    """Get the current weather for a city.

    Args:
        city: Name of the city
        unit: Temperature unit, either celsius
            or fahrenheit
    """
    return f"{city}: 20 {unit}"


class TestParseDocstring:
    def test_summary_and_params(self):
        summary, params = parse_docstring(get_weather.__doc__)
        assert summary == "Get the current weather for a city."
        assert params["city"] == "Name of the city"
        assert params["unit"] == "Temperature unit, either celsius or fahrenheit"

    def test_empty(self):
        assert parse_docstring(None) == ("", {})

    def test_typed_params_and_other_sections(self):
        doc = """Do it.

        Args:
            count (int): How many
        Returns:
            Nothing useful
        """
        summary, params = parse_docstring(doc)
        assert summary == "Do it."
        assert params == {"count": "How many"}


class TestFunctionTool:
    def test_schema_from_signature(self):
        tool = function_tool(get_weather)
        schema = tool.to_openai_schema()

        assert schema["type"] == "function"
        fn = schema["function"]
        assert fn["name"] == "get_weather"
        assert fn["description"] == "Get the current weather for a city."

        params = fn["parameters"]
        assert params["required"] == ["city"]
        assert params["properties"]["city"]["type"] == "string"
        assert params["properties"]["city"]["description"] == "Name of the city"
        assert params["properties"]["unit"]["default"] == "celsius"
        assert params["additionalProperties"] is False
        assert "title" not in params

    def test_overrides(self):
        tool = function_tool(get_weather, name_override="weather", description_override="Weather lookup")
        assert tool.name == "weather"
        assert tool.description == "Weather lookup"

    def test_decorator_forms(self):
        @function_tool
        def ping() -> str:
            """Ping."""
            return "pong"

        @function_tool(name_override="pong")
        def other() -> str:
            return "ping"

        assert isinstance(ping, FunctionTool)
        assert ping.name == "ping"
        assert isinstance(other, FunctionTool)
        assert other.name == "pong"
        assert other.description == ""

    def test_context_parameter_is_hidden(self):
        def tagged(ctx: RunContext, tag: str) -> str:
            return tag

        tool = FunctionTool(tagged)
        assert tool.takes_context is True
        assert list(tool.params_json_schema["properties"]) == ["tag"]

    def test_context_must_be_first(self):
        def misplaced(tag: str, ctx: RunContext) -> str:
            return tag

        with pytest.raises(UserError):
            FunctionTool(misplaced)

    def test_var_args_rejected(self):
        def variadic(*args: int) -> int:
            return sum(args)

        with pytest.raises(UserError):
            FunctionTool(variadic)

    @pytest.mark.asyncio
    async def test_invoke_sync_and_async(self):
        async def double(x: int) -> int:
            return x * 2

        ctx = RunContext(context=None)
        assert await function_tool(get_weather).invoke(ctx, {"city": "Oslo", "unit": "celsius"}) == "Oslo: 20 celsius"
        assert await function_tool(double).invoke(ctx, {"x": 4}) == 8

    def test_tool_is_shareable_value(self):
        tool = function_tool(get_weather)
        assert tool.validate_arguments({"city": "Rome"}) == {"city": "Rome", "unit": "celsius"}
        assert tool.validate_arguments({"city": "Paris"}) == {"city": "Paris", "unit": "celsius"}
