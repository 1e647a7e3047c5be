"""
Tool registry for codepilot.

A tool is a function plus a pydantic model describing its input.  Tools are registered once at
startup on a :class:`ToolRegistry`; the JSON schema advertised to the model is built from the input
model at that point and checked, so a malformed declaration fails before the first request.

Tools can be registered explicitly:
    registry.register(ToolDefinition(name="echo", description="...", input_model=EchoInput,
                                     function=echo))

or with the decorator:
    @registry.tool("echo", "Echo the input text back", EchoInput)
    def echo(args: EchoInput, log: Logger) -> str:
        return args.text
"""

import json
import threading
from dataclasses import (
    dataclass,
    field,
)
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Type,
)

from pydantic import (
    BaseModel,
    ValidationError,
)

from codepilot.core.logger import (
    Logger,
    NoopLogger,
)

ToolFunction = Callable[[Any, Logger], str]


class DuplicateToolError(RuntimeError):
    """Raised when a tool name is registered twice."""


class ToolNotFoundError(RuntimeError):
    """Raised when a requested tool is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"tool '{name}' not found")
        self.name = name


class ToolExecutionError(RuntimeError):
    """Raised when a tool cannot run or fails."""


class ToolSchemaError(ValueError):
    """Raised when a tool's input declaration does not produce a usable schema."""


def _build_schema(name: str, input_model: Type[BaseModel]) -> Dict[str, Any]:
    try:
        schema = input_model.model_json_schema()
    except Exception as exc:  # noqa: BLE001
        raise ToolSchemaError(f"Tool '{name}': cannot build schema: {exc}") from exc

    if schema.get("type") != "object":
        raise ToolSchemaError(f"Tool '{name}': input schema must describe an object")
    properties = schema.get("properties", {})
    missing = [req for req in schema.get("required", []) if req not in properties]
    if missing:
        raise ToolSchemaError(f"Tool '{name}': required fields {missing} are not declared")

    schema.pop("title", None)
    for prop in properties.values():
        prop.pop("title", None)
    schema.setdefault("properties", {})
    return schema


@dataclass(frozen=True)
class ToolDefinition:
    """
    An invocable tool.

    ``parameters`` is derived from ``input_model`` when the definition is created and never
    recomputed.
    """

    name: str
    description: str
    input_model: Type[BaseModel]
    function: ToolFunction
    parameters: Dict[str, Any] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.name:
            raise ToolSchemaError("Tool name must not be empty")
        object.__setattr__(self, "parameters", _build_schema(self.name, self.input_model))

    def function_definition(self) -> Dict[str, Any]:
        definition: Dict[str, Any] = {"name": self.name, "parameters": self.parameters}
        if self.description:
            definition["description"] = self.description
        return definition

    def tool_config(self) -> Dict[str, Any]:
        """The advertisement entry sent with every chat-completion request."""
        return {"type": "function", "function": self.function_definition()}

    def parse_input(self, payload: str | bytes | Mapping[str, Any] | None) -> BaseModel:
        """Validate a raw argument payload against ``input_model``."""
        try:
            if payload is None or (isinstance(payload, (str, bytes)) and not payload.strip()):
                return self.input_model.model_validate({})
            if isinstance(payload, (str, bytes)):
                return self.input_model.model_validate_json(payload)
            return self.input_model.model_validate(dict(payload))
        except ValidationError as exc:
            raise ToolExecutionError(f"invalid input: {_summarize(exc)}") from exc


def _summarize(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "payload"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


class ToolRegistry:
    """Name -> :class:`ToolDefinition` catalog, safe for concurrent lookup and execution."""

    def __init__(self) -> None:
        self._tools: Dict[str, ToolDefinition] = {}
        self._lock = threading.Lock()

    def register(self, definition: ToolDefinition) -> None:
        """
        Add *definition* to the registry.

        Raises
        ------
        DuplicateToolError
            If a tool with the same name is already registered.
        """
        with self._lock:
            if definition.name in self._tools:
                raise DuplicateToolError(f"tool '{definition.name}' already registered")
            self._tools[definition.name] = definition

    def tool(self, name: str, description: str, input_model: Type[BaseModel]) -> Callable:
        """Decorator form of :meth:`register`."""

        def wrapper(fn: ToolFunction) -> ToolFunction:
            self.register(
                ToolDefinition(name=name, description=description, input_model=input_model, function=fn)
            )
            return fn

        return wrapper

    def get(self, name: str) -> ToolDefinition | None:
        with self._lock:
            return self._tools.get(name)

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._tools)

    def list(self) -> List[ToolDefinition]:
        with self._lock:
            return [self._tools[name] for name in sorted(self._tools)]

    def list_tool_configs(self) -> List[Dict[str, Any]]:
        return [definition.tool_config() for definition in self.list()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._tools)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._tools

    def execute(
        self,
        name: str,
        payload: str | bytes | Mapping[str, Any] | None,
        logger: Logger | None = None,
    ) -> str:
        """
        Look up *name*, validate *payload* and invoke the tool.

        Returns
        -------
        str
            The tool's textual output.

        Raises
        ------
        ToolNotFoundError
            If the tool is not registered.
        ToolExecutionError
            If the payload does not validate or the tool fails.
        """
        log = logger or NoopLogger()
        definition = self.get(name)
        if definition is None:
            raise ToolNotFoundError(name)

        args = definition.parse_input(payload)
        try:
            result = definition.function(args, log)
        except ToolExecutionError:
            raise
        except Exception as exc:  # noqa: BLE001
            log.error("Unhandled error in tool '%s': %s", name, exc)
            raise ToolExecutionError(f"Tool '{name}' raised an error: {exc}") from exc

        if not isinstance(result, str):
            result = json.dumps(result)
        return result
