"""Durable tasks: future-like results that orchestrators wait on."""

from __future__ import annotations

import abc
from typing import Any, Callable, Protocol

from durabletask.codec import decode
from durabletask.history import FailureDetails


class TaskBlocked(BaseException):
    """Control-flow signal: the orchestrator has run as far as its history allows.

    It derives from BaseException so that ``except Exception`` blocks in
    orchestrator code do not swallow it; orchestrators must let it propagate.
    """

    def __init__(self) -> None:
        super().__init__("the current task is blocked")


class TaskCanceledError(Exception):
    """The task was canceled, for example because a timeout expired."""

    def __init__(self, message: str = "the task was canceled") -> None:
        super().__init__(message)


class TaskFailedError(Exception):
    """The task completed with a failure."""

    def __init__(self, failure_details: FailureDetails) -> None:
        super().__init__(f"task failed with an error: {failure_details.error_message}")
        self.failure_details = failure_details


class _EventSource(Protocol):
    def process_next_event(self) -> bool:
        """Apply the next history event; return False when history is exhausted."""
        ...


class Task(abc.ABC):
    """An asynchronous durable task, conceptually similar to a future."""

    @abc.abstractmethod
    def result(self) -> Any:
        """Block the orchestrator until the task is done and return its result."""

    @abc.abstractmethod
    def task_execution_id(self) -> str:
        """Return the execution id of the underlying task, if any."""


class CompletableTask(Task):
    """A task completed by the orchestration context as history is replayed."""

    def __init__(self, context: _EventSource, *, task_execution_id: str = "") -> None:
        self._context = context
        self.execution_id = task_execution_id
        self._completed = False
        self._canceled = False
        self._raw_result: str | bytes | None = None
        self._failure_details: FailureDetails | None = None
        self._callback: Callable[[], None] | None = None

    @property
    def is_completed(self) -> bool:
        return self._completed

    @property
    def is_canceled(self) -> bool:
        return self._canceled

    @property
    def failure_details(self) -> FailureDetails | None:
        return self._failure_details

    def result(self) -> Any:
        """Return the decoded result, replaying history until the task completes.

        Raises TaskFailedError if the task failed, TaskCanceledError if it was
        canceled, and TaskBlocked if history ran out before it completed.
        """
        while not self._completed:
            if not self._context.process_next_event():
                raise TaskBlocked()
        if self._failure_details is not None:
            raise TaskFailedError(self._failure_details)
        if self._canceled:
            raise TaskCanceledError()
        try:
            return decode(self._raw_result)
        except ValueError as exc:
            raise ValueError(f"failed to decode task result: {exc}") from exc

    def task_execution_id(self) -> str:
        return self.execution_id

    def on_completed(self, callback: Callable[[], None]) -> None:
        """Register a callback run when the task completes in any way."""
        self._callback = callback

    def complete(self, raw_result: str | bytes | None) -> None:
        """Complete the task with a serialized result."""
        self._raw_result = raw_result
        self._finish()

    def fail(self, failure_details: FailureDetails | None) -> None:
        """Complete the task with a failure."""
        self._failure_details = failure_details
        self._finish()

    def cancel(self) -> None:
        """Complete the task as canceled."""
        self._canceled = True
        self._finish()

    def _finish(self) -> None:
        self._completed = True
        if self._callback is not None:
            self._callback()