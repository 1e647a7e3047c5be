"""Dispatches a batch of tool calls against a :class:`ToolRegistry` and wraps errors."""

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import (
    Callable,
    List,
    Optional,
    Sequence,
)

from codepilot.core.logger import (
    Logger,
    NoopLogger,
)
from codepilot.core.schema import (
    CustomToolCall,
    FunctionToolCall,
    Message,
    ToolCall,
    ToolResult,
    UnknownToolCall,
)
from codepilot.tools import ToolRegistry

DEFAULT_MAX_WORKERS = 5

ResultHook = Callable[[ToolCall, ToolResult], None]


class UnsupportedToolCallError(RuntimeError):
    """Raised (as a per-call result) for tool call kinds that cannot be executed."""


class ToolCancelledError(RuntimeError):
    """Recorded for a call whose unit observed cancellation before starting."""


class ToolExecutor:
    """
    Run the tool calls of one assistant turn with bounded parallelism.

    At most ``max_workers`` function calls run at a time; the rest wait behind a semaphore.  Every
    input call yields exactly one tool :class:`Message`, in input order, whether it ran, failed, was
    cancelled or was never dispatched.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        max_workers: int = DEFAULT_MAX_WORKERS,
        logger: Logger | None = None,
    ) -> None:
        if max_workers <= 0:
            max_workers = DEFAULT_MAX_WORKERS
        self.registry = registry
        self.max_workers = max_workers
        self.logger = logger or NoopLogger()

    def execute_tool_calls(
        self,
        tool_calls: Sequence[ToolCall],
        cancel: threading.Event | None = None,
        on_result: Optional[ResultHook] = None,
    ) -> List[Message]:
        """
        Execute *tool_calls* and return the corresponding tool messages.

        Parameters
        ----------
        tool_calls:
            The calls attached to one assistant message.
        cancel:
            Optional cancellation signal, checked by each unit before its tool body starts.
        on_result:
            Optional hook invoked once per call, in input order, after the batch has joined.

        Returns
        -------
        list of Message
            One ``tool`` message per call.  Failures are rendered as ``Error: <message>``.
        """
        if not tool_calls:
            return []

        results: List[Optional[ToolResult]] = [None] * len(tool_calls)
        gate = threading.BoundedSemaphore(self.max_workers)

        with ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(tool_calls)), thread_name_prefix="codepilot-tool"
        ) as pool:
            for index, call in enumerate(tool_calls):
                if isinstance(call, FunctionToolCall):
                    self.logger.debug("Executing tool: %s with args: %s", call.name, call.arguments)
                    pool.submit(self._run_unit, results, index, call, gate, cancel)
                elif isinstance(call, CustomToolCall):
                    self.logger.warning("Unsupported custom tool call: %s", call.name)
                    results[index] = ToolResult(
                        call_id=call.id,
                        output=f"unsupported custom tool call: {call.name}",
                        error=UnsupportedToolCallError(f"unsupported custom tool call: {call.name}"),
                    )
                elif isinstance(call, UnknownToolCall):
                    self.logger.warning("Unsupported tool call type: %s", call.type)
                    results[index] = ToolResult(
                        call_id=call.id,
                        output="unsupported tool call type",
                        error=UnsupportedToolCallError(f"unsupported tool call type: {call.type}"),
                    )
                else:
                    raise TypeError(f"not a tool call: {call!r}")

        messages: List[Message] = []
        for call, result in zip(tool_calls, results):
            if result is None:  # pragma: no cover
                result = ToolResult(call_id=call.id, error=RuntimeError("tool produced no result"))
            if on_result is not None:
                on_result(call, result)
            messages.append(result.to_message())
        return messages

    def _run_unit(
        self,
        results: List[Optional[ToolResult]],
        index: int,
        call: FunctionToolCall,
        gate: threading.BoundedSemaphore,
        cancel: threading.Event | None,
    ) -> None:
        with gate:
            if cancel is not None and cancel.is_set():
                results[index] = ToolResult(
                    call_id=call.id,
                    output="tool execution cancelled",
                    error=ToolCancelledError("tool execution cancelled"),
                )
                self.logger.info("Tool '%s' skipped: cancelled", call.name)
                return

            try:
                output = self.registry.execute(call.name, call.arguments, self.logger)
            except Exception as exc:  # noqa: BLE001
                results[index] = ToolResult(call_id=call.id, error=exc)
                self.logger.warning("Tool execution failed: %s, error: %s", call.name, exc)
                return

            results[index] = ToolResult(call_id=call.id, output=output)
            self.logger.debug(
                "Tool execution successful: %s, output length: %d", call.name, len(output)
            )
