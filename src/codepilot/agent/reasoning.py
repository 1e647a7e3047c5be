"""
Bounded multi-step reasoning over the agent's primitives.

Instead of one inference round per user message, :class:`ReasoningChain` keeps calling the model
(executing any tool calls it asks for) until a reply looks like a final answer or the step budget is
spent.  "Looks like" is a lexical heuristic; the keyword lists and length threshold live on
:class:`ReasoningPolicy` so callers can tune them.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import (
    TYPE_CHECKING,
    List,
    Tuple,
)

from pydantic import (
    BaseModel,
    Field,
)

from codepilot.core.logger import (
    Logger,
    NoopLogger,
)
from codepilot.core.schema import (
    AssistantReply,
    Message,
    ToolCall,
)

if TYPE_CHECKING:  # pragma: no cover
    from codepilot.agent.agent_loop import Agent

DEFAULT_MAX_STEPS = 10


class ReasoningExceededStepsError(RuntimeError):
    """Raised when the chain runs out of steps without a final answer."""

    def __init__(self, max_steps: int) -> None:
        super().__init__(f"reasoning chain exceeded maximum steps ({max_steps})")
        self.max_steps = max_steps


class StepType(str, Enum):
    THOUGHT = "thought"
    ACTION = "action"
    OBSERVATION = "observation"
    FINAL = "final"


class ReasoningStep(BaseModel):
    """One inference round of the chain."""

    type: StepType
    content: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)
    results: List[str] = Field(default_factory=list)


class ReasoningPolicy(BaseModel):
    """Keyword heuristics used to classify replies and detect completion."""

    final_markers: Tuple[str, ...] = ("final answer", "answer:", "conclusion:")
    thought_markers: Tuple[str, ...] = ("thinking", "thought:", "reason:")
    action_words: Tuple[str, ...] = (
        "let me",
        "i'll",
        "i will",
        "next",
        "now",
        "then",
        "search",
        "read",
        "execute",
        "run",
        "check",
        "verify",
    )
    min_answer_length: int = 50

    def classify(self, reply: AssistantReply) -> StepType:
        if reply.has_tool_calls:
            return StepType.ACTION
        content = (reply.content or "").lower()
        if any(marker in content for marker in self.final_markers):
            return StepType.FINAL
        if any(marker in content for marker in self.thought_markers):
            return StepType.THOUGHT
        return StepType.OBSERVATION

    def is_final_answer(self, content: str) -> bool:
        lowered = content.lower()
        return any(marker in lowered for marker in self.final_markers)

    def is_complete_answer(self, content: str) -> bool:
        """A reply with no hint of further action that is longer than a short remark."""
        lowered = content.lower()
        if any(word in lowered for word in self.action_words):
            return False
        return len(content.strip()) > self.min_answer_length


class ReasoningChain:
    """Step-capped driver around :class:`~codepilot.agent.agent_loop.Agent`."""

    def __init__(
        self,
        max_steps: int = DEFAULT_MAX_STEPS,
        policy: ReasoningPolicy | None = None,
        logger: Logger | None = None,
    ) -> None:
        if max_steps <= 0:
            max_steps = DEFAULT_MAX_STEPS
        self.max_steps = max_steps
        self.policy = policy or ReasoningPolicy()
        self.logger = logger or NoopLogger()
        self._steps: List[ReasoningStep] = []

    @property
    def steps(self) -> List[ReasoningStep]:
        return list(self._steps)

    def reset(self) -> None:
        self._steps = []

    def execute(self, agent: "Agent", user_input: str, cancel: threading.Event | None = None) -> str:
        """
        Answer *user_input* in at most ``max_steps`` inference rounds.

        History is cleared first; the system prefix is kept.

        Raises
        ------
        ReasoningExceededStepsError
            If no qualifying answer arrives within the budget.
        InferenceError
            If the inference client fails.
        """
        self.logger.info("Starting reasoning chain for user input: %r", user_input)
        self.reset()
        agent.memory.reset_history()
        agent.memory.append(Message.user(user_input))

        for step in range(1, self.max_steps + 1):
            self.logger.debug("Reasoning step %d", step)
            reply = agent.run_inference()
            step_type = self.policy.classify(reply)
            current = ReasoningStep(
                type=step_type, content=reply.content or "", tool_calls=reply.tool_calls
            )
            self._steps.append(current)

            if reply.has_tool_calls:
                messages = agent.execute_tool_calls(reply.tool_calls, cancel)
                current.results = [message.content or "" for message in messages]
                continue

            content = reply.content or ""
            if (
                self.policy.is_final_answer(content)
                or step_type is StepType.FINAL
                or self.policy.is_complete_answer(content)
            ):
                self.logger.info("Reasoning chain completed after %d steps", step)
                return content

        self.logger.warning(
            "Reasoning chain reached maximum steps (%d) without completion", self.max_steps
        )
        raise ReasoningExceededStepsError(self.max_steps)
