"""Tests for the tool registry and tool definitions."""

import json

import pytest
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)

from codepilot.core.logger import Logger
from codepilot.tools import (
    DuplicateToolError,
    ToolDefinition,
    ToolExecutionError,
    ToolNotFoundError,
    ToolRegistry,
    ToolSchemaError,
)


class GreetInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Who to greet")
    shout: bool = Field(False, description="Upper-case the greeting")


def _greet(args: GreetInput, log: Logger) -> str:
    text = f"hello {args.name}"
    return text.upper() if args.shout else text


def _greet_tool() -> ToolDefinition:
    return ToolDefinition(name="greet", description="Say hello", input_model=GreetInput, function=_greet)


def test_register_and_get() -> None:
    reg = ToolRegistry()
    definition = _greet_tool()
    reg.register(definition)

    assert reg.get("greet") is definition
    assert "greet" in reg
    assert len(reg) == 1


def test_get_missing_returns_none() -> None:
    assert ToolRegistry().get("nope") is None


def test_duplicate_registration_fails() -> None:
    reg = ToolRegistry()
    reg.register(_greet_tool())
    with pytest.raises(DuplicateToolError):
        reg.register(_greet_tool())


def test_tool_config_shape() -> None:
    """Advertised config carries name, description and an object schema."""
    config = _greet_tool().tool_config()

    assert config["type"] == "function"
    function = config["function"]
    assert function["name"] == "greet"
    assert function["description"] == "Say hello"

    params = function["parameters"]
    assert params["type"] == "object"
    assert set(params["properties"]) == {"name", "shout"}
    assert params["required"] == ["name"]
    assert params["additionalProperties"] is False
    assert params["properties"]["name"]["description"] == "Who to greet"


def test_description_omitted_when_empty() -> None:
    definition = ToolDefinition(name="greet", description="", input_model=GreetInput, function=_greet)
    assert "description" not in definition.function_definition()


def test_list_tool_configs_covers_every_tool(registry: ToolRegistry) -> None:
    names = [config["function"]["name"] for config in registry.list_tool_configs()]
    assert sorted(names) == sorted(registry.names())
    assert names == sorted(names)


def test_schema_is_built_once() -> None:
    definition = _greet_tool()
    assert definition.tool_config()["function"]["parameters"] is definition.parameters


def test_empty_name_is_rejected() -> None:
    with pytest.raises(ToolSchemaError):
        ToolDefinition(name="", description="x", input_model=GreetInput, function=_greet)


def test_non_object_schema_is_rejected() -> None:
    class NotAModel:
        @staticmethod
        def model_json_schema() -> dict:
            return {"type": "string"}

    with pytest.raises(ToolSchemaError):
        ToolDefinition(name="bad", description="x", input_model=NotAModel, function=_greet)  # type: ignore[arg-type]


def test_execute_with_json_and_mapping_payloads() -> None:
    reg = ToolRegistry()
    reg.register(_greet_tool())

    assert reg.execute("greet", json.dumps({"name": "ada"})) == "hello ada"
    assert reg.execute("greet", {"name": "ada", "shout": True}) == "HELLO ADA"


def test_execute_missing_tool() -> None:
    try:
        ToolRegistry().execute("not_a_tool", "{}")
    except ToolNotFoundError as exc:
        assert "not_a_tool" in str(exc)
        assert "not found" in str(exc)
    else:  # pragma: no cover
        raise AssertionError("ToolNotFoundError was not raised")


def test_execute_invalid_payload() -> None:
    reg = ToolRegistry()
    reg.register(_greet_tool())

    with pytest.raises(ToolExecutionError, match="invalid input"):
        reg.execute("greet", "{}")
    with pytest.raises(ToolExecutionError, match="invalid input"):
        reg.execute("greet", '{"name": "ada", "extra": 1}')
    with pytest.raises(ToolExecutionError, match="invalid input"):
        reg.execute("greet", "not json")


def test_execute_wraps_unexpected_exceptions() -> None:
    reg = ToolRegistry()

    @reg.tool("explode", "Raises", GreetInput)
    def _explode(args: GreetInput, log: Logger) -> str:
        raise KeyError("kaboom")

    with pytest.raises(ToolExecutionError, match="explode"):
        reg.execute("explode", '{"name": "x"}')
