"""Console collaborators for the agent loop: stdin input and coloured output."""

from __future__ import annotations

from typing import (
    Iterable,
    List,
    Optional,
)

from codepilot.common import (
    AnsiColors,
    colored_label,
    colored_print,
)


# ---------------------------------------------------------------------------
# Input sources
# ---------------------------------------------------------------------------
class StdinInput:
    """Read user messages from standard input, one line at a time."""

    def __init__(self, prompt: str = "You") -> None:
        self.prompt = prompt

    def get_user_message(self) -> Optional[str]:
        """
        Get a message from the user via standard input.

        Returns:
            The stripped line, or None once input is exhausted (EOF or Ctrl+C).
        """
        import signal  # pylint: disable=import-outside-toplevel

        # Ensure SIGINT breaks out of slow system calls such as read()
        if hasattr(signal, "siginterrupt"):
            signal.siginterrupt(signal.SIGINT, True)

        colored_print(f"{self.prompt}: ", AnsiColors.BLUE, end="", flush=True)
        try:
            return input().strip()
        except (EOFError, KeyboardInterrupt):
            return None


class ScriptedInput:
    """Replay a fixed list of messages, then signal end of input."""

    def __init__(self, messages: Iterable[str]) -> None:
        self._messages: List[str] = list(messages)

    def get_user_message(self) -> Optional[str]:
        if not self._messages:
            return None
        return self._messages.pop(0)


# ---------------------------------------------------------------------------
# Output sinks
# ---------------------------------------------------------------------------
class ConsoleOutput:
    """Coloured terminal output."""

    def __init__(self, name: str = "codepilot") -> None:
        self.name = name

    def print_assistant_message(self, content: str) -> None:
        colored_label(f"🤖 {self.name}", AnsiColors.YELLOW, content)

    def print_tool_call(self, tool_name: str, arguments: str) -> None:
        colored_label("🔧 Tool", AnsiColors.CYAN, f"{tool_name}({arguments})")

    def print_tool_result(self, output: str) -> None:
        colored_label("✅ Result", AnsiColors.GREEN, output)

    def print_tool_error(self, error: str) -> None:
        colored_label("❌ Error", AnsiColors.RED, error)


class NullOutput:
    """Discards all output."""

    def print_assistant_message(self, content: str) -> None:
        pass

    def print_tool_call(self, tool_name: str, arguments: str) -> None:
        pass

    def print_tool_result(self, output: str) -> None:
        pass

    def print_tool_error(self, error: str) -> None:
        pass
