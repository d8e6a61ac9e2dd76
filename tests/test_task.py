import pytest

from durabletask.history import FailureDetails
from durabletask.task import (
    CompletableTask,
    TaskBlocked,
    TaskCanceledError,
    TaskFailedError,
)


class FakeContext:
    def __init__(self):
        self.steps = []
        self.calls = 0

    def process_next_event(self):
        self.calls += 1
        if not self.steps:
            return False
        self.steps.pop(0)()
        return True


def test_completed_task_returns_decoded_result():
    task = CompletableTask(FakeContext())
    task.complete('{"a":[1,2]}')
    assert task.result() == {"a": [1, 2]}


def test_completed_with_bytes_result():
    task = CompletableTask(FakeContext())
    task.complete(b'"hi"')
    assert task.result() == "hi"


def test_completed_without_result_returns_none():
    task = CompletableTask(FakeContext())
    task.complete(None)
    assert task.result() is None
    assert task.is_completed


def test_failed_task_raises_with_details():
    task = CompletableTask(FakeContext())
    details = FailureDetails(error_type="X", error_message="boom")
    task.fail(details)
    with pytest.raises(TaskFailedError, match="task failed with an error: boom") as info:
        task.result()
    assert info.value.failure_details is details


def test_failure_takes_precedence_over_cancel():
    task = CompletableTask(FakeContext())
    task.fail(FailureDetails(error_type="X", error_message="bad"))
    task.cancel()
    with pytest.raises(TaskFailedError):
        task.result()


def test_canceled_task_raises():
    task = CompletableTask(FakeContext())
    task.cancel()
    with pytest.raises(TaskCanceledError, match="the task was canceled"):
        task.result()
    assert task.is_canceled


def test_pending_task_blocks_when_history_exhausted():
    ctx = FakeContext()
    task = CompletableTask(ctx)
    with pytest.raises(TaskBlocked):
        task.result()
    assert ctx.calls == 1
    assert not task.is_completed


def test_result_replays_history_until_complete():
    ctx = FakeContext()
    task = CompletableTask(ctx)
    ctx.steps = [lambda: None, lambda: task.complete("42")]
    assert task.result() == 42
    assert ctx.calls == 2


def test_errors_from_event_processing_propagate():
    class Failing:
        def process_next_event(self):
            raise RuntimeError("bad event")

    task = CompletableTask(Failing())
    with pytest.raises(RuntimeError, match="bad event"):
        task.result()


def test_task_blocked_escapes_generic_exception_handlers():
    task = CompletableTask(FakeContext())

    def orchestrator():
        try:
            return task.result()
        except Exception:
            return "swallowed"

    with pytest.raises(TaskBlocked):
        orchestrator()


def test_invalid_result_raises_value_error():
    task = CompletableTask(FakeContext())
    task.complete("{not json")
    with pytest.raises(ValueError, match="failed to decode task result"):
        task.result()


@pytest.mark.parametrize("finish", ["complete", "fail", "cancel"])
def test_on_completed_callback_runs(finish):
    task = CompletableTask(FakeContext())
    seen = []
    task.on_completed(lambda: seen.append(task.is_completed))
    if finish == "complete":
        task.complete(None)
    elif finish == "fail":
        task.fail(FailureDetails(error_type="E", error_message="m"))
    else:
        task.cancel()
    assert seen == [True]


def test_task_execution_id():
    task = CompletableTask(FakeContext(), task_execution_id="exec-1")
    assert task.task_execution_id() == "exec-1"
    task.execution_id = "exec-2"
    assert task.task_execution_id() == "exec-2"
    assert CompletableTask(FakeContext()).task_execution_id() == ""