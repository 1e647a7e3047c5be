"""
Schema definitions for inference client <-> agent <-> tool messages.

These data models serve as the contract between the inference client, the orchestration loop, and
individual tools.  We keep them separate from runtime logic so they can be imported anywhere without
side-effects.
"""

from __future__ import annotations

from typing import (
    Any,
    Dict,
    List,
    Literal,
    Mapping,
    Optional,
    Union,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)

Role = Literal["system", "user", "assistant", "tool"]


# ---------------------------------------------------------------------------
# Tool calls
# ---------------------------------------------------------------------------
class FunctionToolCall(BaseModel):
    """A function call the model wants the agent to execute."""

    model_config = ConfigDict(frozen=True)

    type: Literal["function"] = "function"
    id: str = Field(..., description="Call identifier, unique within one assistant turn")
    name: str = Field(..., description="Registered tool name")
    arguments: str = Field("{}", description="Raw JSON argument payload")

    def to_param(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


class CustomToolCall(BaseModel):
    """A free-form "custom" tool call.  Never backed by a registered function."""

    model_config = ConfigDict(frozen=True)

    type: Literal["custom"] = "custom"
    id: str
    name: str
    input: str = ""

    def to_param(self) -> Dict[str, Any]:
        return {"id": self.id, "type": "custom", "custom": {"name": self.name, "input": self.input}}


class UnknownToolCall(BaseModel):
    """Any tool call kind this client does not understand."""

    model_config = ConfigDict(frozen=True)

    type: str
    id: str
    raw: Dict[str, Any] = Field(default_factory=dict)

    def to_param(self) -> Dict[str, Any]:
        return dict(self.raw) or {"id": self.id, "type": self.type}


ToolCall = Union[FunctionToolCall, CustomToolCall, UnknownToolCall]


def parse_tool_call(data: Mapping[str, Any]) -> ToolCall:
    """
    Build the matching tool call variant from its chat-completions wire shape.

    Unrecognised ``type`` values degrade to :class:`UnknownToolCall` so they can still be answered
    with an error message instead of being dropped.
    """
    call_type = data.get("type") or "function"
    call_id = str(data.get("id") or "")

    if call_type == "function":
        function = data.get("function") or {}
        arguments = function.get("arguments")
        if arguments is None:
            arguments = "{}"
        return FunctionToolCall(id=call_id, name=function.get("name") or "", arguments=arguments)
    if call_type == "custom":
        custom = data.get("custom") or {}
        return CustomToolCall(id=call_id, name=custom.get("name") or "", input=custom.get("input") or "")
    return UnknownToolCall(type=str(call_type), id=call_id, raw=dict(data))


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------
class Message(BaseModel):
    """A role-tagged conversation entry."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: Optional[str] = None
    tool_calls: List[ToolCall] = Field(default_factory=list)
    tool_call_id: Optional[str] = None

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str | None = None, tool_calls: List[ToolCall] | None = None) -> "Message":
        return cls(role="assistant", content=content, tool_calls=list(tool_calls or []))

    @classmethod
    def tool(cls, content: str, tool_call_id: str) -> "Message":
        return cls(role="tool", content=content, tool_call_id=tool_call_id)

    def to_param(self) -> Dict[str, Any]:
        """Render the message as a chat-completions request entry."""
        param: Dict[str, Any] = {"role": self.role}
        if self.role == "assistant":
            param["content"] = self.content
            if self.tool_calls:
                param["tool_calls"] = [call.to_param() for call in self.tool_calls]
        else:
            param["content"] = self.content or ""
        if self.role == "tool":
            param["tool_call_id"] = self.tool_call_id
        return param


class AssistantReply(BaseModel):
    """What an inference client hands back for one chat-completion request."""

    content: Optional[str] = None
    tool_calls: List[ToolCall] = Field(default_factory=list)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def to_message(self) -> Message:
        return Message.assistant(self.content, self.tool_calls)


class ToolResult(BaseModel):
    """Outcome of one tool call, paired with the originating call id."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    call_id: str
    output: str = ""
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_message(self) -> Message:
        if self.error is not None:
            return Message.tool(f"Error: {self.error}", self.call_id)
        return Message.tool(self.output, self.call_id)
