"""Shared fixtures: a scripted inference client, a recording output sink and a small registry."""

from types import SimpleNamespace
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Sequence,
)

import pytest
from pydantic import (
    BaseModel,
    ConfigDict,
)

from codepilot.core.logger import Logger
from codepilot.core.schema import (
    AssistantReply,
    Message,
)
from codepilot.tools import (
    ToolExecutionError,
    ToolRegistry,
)


class ScriptedClient:
    """Inference client that replays canned replies (or raises canned errors)."""

    def __init__(self, replies: Iterable[Any]) -> None:
        self.replies: List[Any] = list(replies)
        self.calls: List[SimpleNamespace] = []

    def chat_completion(
        self,
        context: Sequence[Message],
        model: str,
        max_tokens: int,
        tools: Sequence[Dict[str, Any]],
    ) -> AssistantReply:
        self.calls.append(
            SimpleNamespace(context=list(context), model=model, max_tokens=max_tokens, tools=list(tools))
        )
        if not self.replies:
            raise AssertionError("unexpected inference call")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(len(self.calls))
        return reply


class RecordingOutput:
    """Output sink that keeps everything it is shown."""

    def __init__(self) -> None:
        self.assistant: List[str] = []
        self.tool_calls: List[tuple] = []
        self.results: List[str] = []
        self.errors: List[str] = []

    def print_assistant_message(self, content: str) -> None:
        self.assistant.append(content)

    def print_tool_call(self, tool_name: str, arguments: str) -> None:
        self.tool_calls.append((tool_name, arguments))

    def print_tool_result(self, output: str) -> None:
        self.results.append(output)

    def print_tool_error(self, error: str) -> None:
        self.errors.append(error)


class EchoInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: str


class AddInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    a: int
    b: int


class FailInput(BaseModel):
    reason: str = "boom"


@pytest.fixture
def registry() -> ToolRegistry:
    """Registry with ``echo``, ``add`` and ``fail`` test tools."""
    reg = ToolRegistry()

    @reg.tool("echo", "Echo the input text back to the caller.", EchoInput)
    def _echo(args: EchoInput, log: Logger) -> str:
        return args.text

    @reg.tool("add", "Return the sum of two integers.", AddInput)
    def _add(args: AddInput, log: Logger) -> str:
        return str(args.a + args.b)

    @reg.tool("fail", "Always fails.", FailInput)
    def _fail(args: FailInput, log: Logger) -> str:
        raise ToolExecutionError(args.reason)

    return reg


@pytest.fixture
def scripted_client() -> Callable[..., ScriptedClient]:
    return lambda *replies: ScriptedClient(replies)


@pytest.fixture
def output() -> RecordingOutput:
    return RecordingOutput()
