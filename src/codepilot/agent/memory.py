"""Bounded conversation memory: a fixed system prefix plus a sliding window of history."""

import threading
from typing import (
    Iterable,
    List,
)

from codepilot.core.schema import Message

DEFAULT_MEMORY_CAPACITY = 40


class Memory:
    """
    Ordered conversation buffer.

    ``history`` never holds more than ``max_history`` messages; the oldest are dropped first, along
    with any tool replies left at the front without their assistant message.  A
    capacity of zero or less disables the bound.  :meth:`context` returns a fresh list on every call.
    """

    def __init__(self, max_history: int = DEFAULT_MEMORY_CAPACITY) -> None:
        self._lock = threading.Lock()
        self._system: List[Message] = []
        self._history: List[Message] = []
        self._max_history = max(max_history, 0)

    @property
    def max_history(self) -> int:
        return self._max_history

    def set_system_messages(self, *messages: Message) -> None:
        """Replace the system prefix wholesale.  Calling with no messages clears it."""
        with self._lock:
            self._system = list(messages)

    def append(self, message: Message) -> None:
        with self._lock:
            self._history.append(message)
            self._trim_locked()

    def append_many(self, messages: Iterable[Message]) -> None:
        batch = list(messages)
        if not batch:
            return
        with self._lock:
            self._history.extend(batch)
            self._trim_locked()

    def trim_to(self, max_history: int) -> None:
        """Change the capacity and apply it immediately."""
        with self._lock:
            self._max_history = max(max_history, 0)
            self._trim_locked()

    def reset_history(self) -> None:
        with self._lock:
            self._history = []

    def context(self) -> List[Message]:
        """System prefix followed by history, as a snapshot."""
        with self._lock:
            return [*self._system, *self._history]

    def history(self) -> List[Message]:
        with self._lock:
            return list(self._history)

    def message_count(self) -> int:
        with self._lock:
            return len(self._system) + len(self._history)

    def _trim_locked(self) -> None:
        if self._max_history <= 0:
            return
        overflow = len(self._history) - self._max_history
        if overflow > 0:
            del self._history[:overflow]
        # tool replies must not outlive the assistant message that requested them
        orphans = 0
        while orphans < len(self._history) and self._history[orphans].role == "tool":
            orphans += 1
        if orphans:
            del self._history[:orphans]
