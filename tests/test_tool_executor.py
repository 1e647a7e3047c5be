"""
Tests for the tool executor.

Run with:
$ pytest -q
"""

import json
import threading
import time
from typing import List

from pydantic import BaseModel

from codepilot.agent import tool_executor as tool_executor_module
from codepilot.agent.tool_executor import (
    DEFAULT_MAX_WORKERS,
    ToolExecutor,
)
from codepilot.core.logger import Logger
from codepilot.core.schema import (
    CustomToolCall,
    FunctionToolCall,
    ToolCall,
    UnknownToolCall,
)
from codepilot.tools import ToolRegistry


def _call(call_id: str, name: str, **args: object) -> FunctionToolCall:
    return FunctionToolCall(id=call_id, name=name, arguments=json.dumps(args))


def test_execute_tool_success(registry: ToolRegistry) -> None:
    """Executor should return the tool output for a valid call."""
    messages = ToolExecutor(registry).execute_tool_calls([_call("c1", "add", a=2, b=3)])

    assert len(messages) == 1
    assert messages[0].role == "tool"
    assert messages[0].tool_call_id == "c1"
    assert messages[0].content == "5"


def test_execute_tool_missing(registry: ToolRegistry) -> None:
    """An unknown tool becomes an error message instead of an exception."""
    messages = ToolExecutor(registry).execute_tool_calls([_call("c1", "not_a_tool")])

    assert messages[0].content.startswith("Error:")
    assert "not found" in messages[0].content
    assert "not_a_tool" in messages[0].content


def test_execute_tool_bad_args(registry: ToolRegistry) -> None:
    """Wrong arguments are reported back as an error message."""
    messages = ToolExecutor(registry).execute_tool_calls([_call("c1", "add", a=2)])

    assert messages[0].content.startswith("Error: invalid input")


def test_empty_batch(registry: ToolRegistry) -> None:
    assert ToolExecutor(registry).execute_tool_calls([]) == []


def test_results_follow_call_order_and_ids(registry: ToolRegistry) -> None:
    """Every call gets exactly one message, in input order, whatever happened to it."""
    calls: List[ToolCall] = [
        _call("a", "echo", text="first"),
        _call("b", "fail", reason="nope"),
        CustomToolCall(id="c", name="freeform", input="x"),
        _call("d", "missing"),
        UnknownToolCall(id="e", type="mystery"),
        _call("f", "add", a=1, b=1),
    ]

    messages = ToolExecutor(registry, max_workers=2).execute_tool_calls(calls)

    assert [m.tool_call_id for m in messages] == ["a", "b", "c", "d", "e", "f"]
    assert messages[0].content == "first"
    assert messages[1].content == "Error: nope"
    assert messages[2].content == "Error: unsupported custom tool call: freeform"
    assert messages[3].content == "Error: tool 'missing' not found"
    assert messages[4].content == "Error: unsupported tool call type: mystery"
    assert messages[5].content == "2"


def test_order_is_call_order_not_completion_order() -> None:
    reg = ToolRegistry()

    class SleepInput(BaseModel):
        seconds: float
        label: str

    @reg.tool("sleep", "Sleep then return the label", SleepInput)
    def _sleep(args: SleepInput, log: Logger) -> str:
        time.sleep(args.seconds)
        return args.label

    calls = [_call("slow", "sleep", seconds=0.2, label="slow"), _call("fast", "sleep", seconds=0, label="fast")]
    messages = ToolExecutor(reg).execute_tool_calls(calls)

    assert [m.content for m in messages] == ["slow", "fast"]


def test_worker_limit_bounds_concurrency() -> None:
    """No more than ``max_workers`` tool bodies run at the same time."""
    reg = ToolRegistry()
    lock = threading.Lock()
    running = 0
    peak = 0

    class TickInput(BaseModel):
        n: int

    @reg.tool("tick", "Instrumented tool", TickInput)
    def _tick(args: TickInput, log: Logger) -> str:
        nonlocal running, peak
        with lock:
            running += 1
            peak = max(peak, running)
        time.sleep(0.05)
        with lock:
            running -= 1
        return str(args.n)

    calls = [_call(f"c{i}", "tick", n=i) for i in range(10)]
    messages = ToolExecutor(reg, max_workers=3).execute_tool_calls(calls)

    assert [m.content for m in messages] == [str(i) for i in range(10)]
    assert 1 <= peak <= 3
    assert running == 0


def test_calls_run_in_parallel() -> None:
    """Two calls that must meet at a barrier only succeed if they overlap."""
    reg = ToolRegistry()
    barrier = threading.Barrier(2, timeout=5)

    class MeetInput(BaseModel):
        who: str

    @reg.tool("meet", "Wait for the other call", MeetInput)
    def _meet(args: MeetInput, log: Logger) -> str:
        barrier.wait()
        return args.who

    messages = ToolExecutor(reg, max_workers=2).execute_tool_calls(
        [_call("1", "meet", who="x"), _call("2", "meet", who="y")]
    )
    assert [m.content for m in messages] == ["x", "y"]


def test_cancelled_calls_still_produce_results(registry: ToolRegistry) -> None:
    """A unit that sees cancellation records a failure for its call id."""
    cancel = threading.Event()
    cancel.set()

    messages = ToolExecutor(registry).execute_tool_calls(
        [_call("c1", "echo", text="hi"), _call("c2", "add", a=1, b=2)], cancel=cancel
    )

    assert [m.tool_call_id for m in messages] == ["c1", "c2"]
    assert all(m.content == "Error: tool execution cancelled" for m in messages)


def test_result_hook_sees_each_call_once(registry: ToolRegistry) -> None:
    seen = []
    calls = [_call("c1", "echo", text="hi"), _call("c2", "fail")]

    ToolExecutor(registry).execute_tool_calls(
        calls, on_result=lambda call, result: seen.append((call.id, result.ok))
    )

    assert seen == [("c1", True), ("c2", False)]


def test_non_positive_worker_limit_uses_default(registry: ToolRegistry) -> None:
    assert ToolExecutor(registry, max_workers=0).max_workers == DEFAULT_MAX_WORKERS
    assert ToolExecutor(registry, max_workers=-3).max_workers == DEFAULT_MAX_WORKERS


def test_cancel_mid_batch_lets_running_call_finish() -> None:
    """Cancelling while a call runs keeps its result and cancels the calls still waiting."""
    reg = ToolRegistry()
    cancel = threading.Event()

    class StepInput(BaseModel):
        n: int

    @reg.tool("step", "Cancels the batch on the first call", StepInput)
    def _step(args: StepInput, log: Logger) -> str:
        cancel.set()
        return f"ran {args.n}"

    calls = [_call(f"c{i}", "step", n=i) for i in range(4)]
    messages = ToolExecutor(reg, max_workers=1).execute_tool_calls(calls, cancel=cancel)

    assert [m.tool_call_id for m in messages] == ["c0", "c1", "c2", "c3"]
    assert messages[0].content == "ran 0"
    assert [m.content for m in messages[1:]] == ["Error: tool execution cancelled"] * 3


def test_large_batch_uses_bounded_pool(monkeypatch, registry: ToolRegistry) -> None:
    """A batch larger than the worker limit does not start a thread per call."""
    sizes: List[int] = []
    real_pool = tool_executor_module.ThreadPoolExecutor

    def recording_pool(*args, **kwargs):
        sizes.append(kwargs["max_workers"])
        return real_pool(*args, **kwargs)

    monkeypatch.setattr(tool_executor_module, "ThreadPoolExecutor", recording_pool)
    calls = [_call(f"c{i}", "echo", text=str(i)) for i in range(20)]

    messages = ToolExecutor(registry, max_workers=3).execute_tool_calls(calls)
    ToolExecutor(registry, max_workers=3).execute_tool_calls(calls[:2])

    assert [m.content for m in messages] == [str(i) for i in range(20)]
    assert sizes == [3, 2]
