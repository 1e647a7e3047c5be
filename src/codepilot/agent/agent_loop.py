"""Main orchestration loop for codepilot."""

from __future__ import annotations

import threading
from enum import Enum
from typing import (
    List,
    Optional,
    Protocol,
    Sequence,
)

from codepilot.agent.inference import InferenceClient
from codepilot.agent.memory import Memory
from codepilot.agent.reasoning import (
    ReasoningChain,
    ReasoningExceededStepsError,
)
from codepilot.agent.tool_executor import ToolExecutor
from codepilot.client.cli import NullOutput
from codepilot.config import AgentConfig
from codepilot.core.logger import (
    Logger,
    NoopLogger,
)
from codepilot.core.schema import (
    AssistantReply,
    CustomToolCall,
    FunctionToolCall,
    Message,
    ToolCall,
    ToolResult,
)
from codepilot.tools import ToolRegistry


class UserInputSource(Protocol):
    def get_user_message(self) -> Optional[str]:
        """Next user message, or ``None`` when the session should end."""


class OutputSink(Protocol):
    def print_assistant_message(self, content: str) -> None: ...

    def print_tool_call(self, tool_name: str, arguments: str) -> None: ...

    def print_tool_result(self, output: str) -> None: ...

    def print_tool_error(self, error: str) -> None: ...


class AgentState(str, Enum):
    IDLE = "idle"
    AWAITING_USER_INPUT = "awaiting_user_input"
    INFERRING = "inferring"
    EXECUTING_TOOLS = "executing_tools"
    RESPONDED = "responded"


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------
class Agent:
    """
    Drives the conversation: user message -> inference -> tool calls -> inference ... -> answer.

    The outer loop is strictly sequential; only the tool calls of one reply run in parallel (see
    :class:`ToolExecutor`).  Inference failures propagate to the caller of :meth:`run`; tool
    failures are fed back to the model as ``Error: ...`` tool messages.
    """

    def __init__(
        self,
        client: InferenceClient,
        registry: ToolRegistry,
        config: AgentConfig | None = None,
        input_source: UserInputSource | None = None,
        output: OutputSink | None = None,
        logger: Logger | None = None,
        executor: ToolExecutor | None = None,
    ) -> None:
        self.client = client
        self.registry = registry
        self.config = config or AgentConfig()
        self.input_source = input_source
        self.output: OutputSink = output or NullOutput()
        self.logger = logger or NoopLogger()
        self.executor = executor or ToolExecutor(
            registry, max_workers=self.config.max_concurrency, logger=self.logger
        )

        self.memory = Memory(self.config.memory_capacity)
        if self.config.system_message:
            self.memory.set_system_messages(Message.system(self.config.system_message))

        self.reasoning: ReasoningChain | None = None
        if self.config.reasoning_enabled:
            self.reasoning = ReasoningChain(self.config.reasoning_max_steps, logger=self.logger)

        self.state = AgentState.IDLE
        self.inference_calls = 0

    # ------------------------------------------------------------------ #
    # Session
    # ------------------------------------------------------------------ #
    def run(self, cancel: threading.Event | None = None) -> None:
        """
        Converse until the input source is exhausted.

        Raises
        ------
        InferenceError
            If the inference client fails; the session is aborted.
        """
        if self.input_source is None:
            raise ValueError("Agent.run() needs an input source")

        self.logger.info("Starting chat session (%d tools)", len(self.registry))
        self.memory.reset_history()

        try:
            while True:
                self.state = AgentState.AWAITING_USER_INPUT
                user_input = self.input_source.get_user_message()
                if user_input is None:
                    self.logger.debug("User input ended, breaking from chat loop")
                    break
                if not user_input.strip():
                    self.logger.debug("Skipping empty message")
                    continue

                self.logger.debug("User input received: %r", user_input)
                if self.reasoning is not None:
                    self._reason(self.reasoning, user_input, cancel)
                else:
                    self.ask(user_input, cancel)
        finally:
            self.state = AgentState.IDLE

        self.logger.info("Chat session ended")

    def ask(self, user_input: str, cancel: threading.Event | None = None) -> str:
        """Run one turn for *user_input* and return the final assistant text."""
        self.memory.append(Message.user(user_input))
        reply = self.run_inference()

        while reply.has_tool_calls:
            self.execute_tool_calls(reply.tool_calls, cancel)
            self.logger.debug("Sending tool results back to the model")
            reply = self.run_inference()

        self.state = AgentState.RESPONDED
        return reply.content or ""

    def _reason(
        self, chain: ReasoningChain, user_input: str, cancel: threading.Event | None
    ) -> None:
        try:
            chain.execute(self, user_input, cancel)
        except ReasoningExceededStepsError as exc:
            self.logger.warning("Reasoning stopped: %s", exc)
            self.output.print_assistant_message(f"[reasoning stopped] {exc}")
        self.state = AgentState.RESPONDED

    # ------------------------------------------------------------------ #
    # Building blocks (shared with the reasoning chain)
    # ------------------------------------------------------------------ #
    def run_inference(self) -> AssistantReply:
        """Send the current context to the model and record its reply."""
        self.state = AgentState.INFERRING
        context = self.memory.context()
        self.logger.debug("Sending %d messages to %s", len(context), self.config.model)

        try:
            reply = self.client.chat_completion(
                context,
                self.config.model,
                self.config.max_tokens,
                self.registry.list_tool_configs(),
            )
        except Exception as exc:
            self.logger.error("Error during inference: %s", exc)
            raise
        finally:
            self.inference_calls += 1

        self.memory.append(reply.to_message())
        if reply.content:
            self.output.print_assistant_message(reply.content)
        return reply

    def execute_tool_calls(
        self, tool_calls: Sequence[ToolCall], cancel: threading.Event | None = None
    ) -> List[Message]:
        """Announce, execute and record the tool calls of one reply."""
        self.state = AgentState.EXECUTING_TOOLS
        self.logger.info("Processing %d tool calls", len(tool_calls))

        for call in tool_calls:
            if isinstance(call, FunctionToolCall):
                self.output.print_tool_call(call.name, call.arguments)
            elif isinstance(call, CustomToolCall):
                self.output.print_tool_call(call.name, call.input)
            else:
                self.output.print_tool_call(f"<{call.type}>", "")

        messages = self.executor.execute_tool_calls(tool_calls, cancel, on_result=self._show_result)
        self.memory.append_many(messages)
        return messages

    def _show_result(self, call: ToolCall, result: ToolResult) -> None:
        if result.ok:
            self.output.print_tool_result(result.output)
        else:
            self.logger.error("Tool call %s failed: %s", call.id, result.error)
            self.output.print_tool_error(str(result.error))
