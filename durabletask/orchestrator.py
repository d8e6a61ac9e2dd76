"""Replays an orchestration's history and drives its orchestrator function."""

from __future__ import annotations

import uuid
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable

from durabletask.activity import RetryPolicy, compute_next_delay
from durabletask.codec import decode, encode
from durabletask.history import (
    CompleteOrchestrationAction,
    CreateSubOrchestrationAction,
    CreateTimerAction,
    EventRaised,
    ExecutionResumed,
    ExecutionStalled,
    ExecutionStarted,
    ExecutionSuspended,
    ExecutionTerminated,
    FailureDetails,
    HistoryEvent,
    OrchestrationStatus,
    OrchestratorAction,
    OrchestratorCompleted,
    OrchestratorStarted,
    ScheduleTaskAction,
    SubOrchestrationCompleted,
    SubOrchestrationCreated,
    SubOrchestrationFailed,
    TaskCompleted,
    TaskFailed,
    TaskScheduled,
    TimerCreated,
    TimerFired,
    VersionNotAvailableAction,
)
from durabletask.registry import TaskRegistry, task_function_name
from durabletask.task import CompletableTask, Task, TaskBlocked

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


class UnsupportedVersionError(Exception):
    """The orchestrator version recorded in history is not registered."""

    def __init__(self, message: str = "the requested orchestrator version is not supported") -> None:
        super().__init__(message)


class _RetryableTask(Task):
    """Wraps a scheduled task and reschedules it on failure per a retry policy."""

    def __init__(
        self,
        context: OrchestrationContext,
        name: str,
        initial_attempt: datetime,
        schedule: Callable[[str], Task],
        policy: RetryPolicy,
        retry_count: int,
        task_execution_id: str,
    ) -> None:
        self._context = context
        self._name = name
        self._initial_attempt = initial_attempt
        self._schedule = schedule
        self._policy = policy
        self._retry_count = retry_count
        self._delegate = schedule(task_execution_id)

    def result(self) -> Any:
        try:
            return self._delegate.result()
        except Exception as error:
            if self._retry_count + 1 >= self._policy.max_attempts:
                raise
            delay = compute_next_delay(
                self._context.current_time_utc,
                self._policy,
                self._retry_count,
                self._initial_attempt,
                error,
            )
            if delay == timedelta(0):
                raise
            try:
                self._context._create_timer_internal(self._name, delay).result()
            except Exception as timer_error:
                raise RuntimeError(f"{timer_error} {error}") from error
            retry = _RetryableTask(
                self._context,
                self._name,
                self._initial_attempt,
                self._schedule,
                self._policy,
                self._retry_count + 1,
                self._delegate.task_execution_id(),
            )
            return retry.result()

    def task_execution_id(self) -> str:
        return self._delegate.task_execution_id()


class OrchestrationContext:
    """State of one orchestration episode; the argument orchestrators receive."""

    def __init__(
        self,
        registry: TaskRegistry,
        instance_id: str,
        old_events: Iterable[HistoryEvent] = (),
        new_events: Iterable[HistoryEvent] = (),
    ) -> None:
        self.id = instance_id
        self.name = ""
        self.version_name: str | None = None
        self.is_replaying = False
        self.current_time_utc = _ZERO_TIME

        self._registry = registry
        self._raw_input: str | bytes | None = None
        self._old_events = list(old_events)
        self._new_events = list(new_events)
        self._suspended_events: list[HistoryEvent] = []
        self._is_suspended = False
        self._history_index = 0
        self._sequence_number = 0
        self._pending_actions: dict[int, OrchestratorAction] = {}
        self._pending_tasks: dict[int, CompletableTask] = {}
        self._continued_as_new = False
        self._continued_as_new_input: Any = None
        self._custom_status = ""
        self._save_buffered_events = False
        self._buffered_events: dict[str, deque[EventRaised]] = {}
        self._pending_event_tasks: dict[str, deque[CompletableTask]] = {}
        self._history_patches: set[str] = set()
        self._applied_patches: dict[str, bool] = {}
        self._encountered_patches: list[str] = []

    @property
    def custom_status(self) -> str:
        return self._custom_status

    @property
    def encountered_patches(self) -> list[str]:
        return list(self._encountered_patches)

    # --- driving the episode ---------------------------------------------

    def run(self) -> list[OrchestratorAction]:
        """Replay the whole history and return the actions still pending."""
        self._history_index = 0
        self._sequence_number = 0
        self._pending_actions = {}
        self._pending_tasks = {}
        try:
            while True:
                try:
                    if not self.process_next_event():
                        break
                except UnsupportedVersionError:
                    self._set_version_not_registered()
                    break
                except Exception as error:
                    self._set_failed(error)
                    break
        except TaskBlocked:
            pass
        return self._actions()

    def process_next_event(self) -> bool:
        """Apply the next history event; return False when history is exhausted."""
        event = self._next_history_event()
        if event is None:
            return False
        self._process_event(event)
        return True

    def _next_history_event(self) -> HistoryEvent | None:
        old_count = len(self._old_events)
        index = self._history_index
        if index >= old_count + len(self._new_events):
            return None
        self._history_index += 1
        if index < old_count:
            self.is_replaying = True
            return self._old_events[index]
        self.is_replaying = False
        return self._new_events[index - old_count]

    def _process_event(self, event: HistoryEvent) -> None:
        if self._is_suspended and not isinstance(event, (ExecutionResumed, ExecutionTerminated)):
            self._suspended_events.append(event)
            return

        match event:
            case OrchestratorStarted():
                self.current_time_utc = event.timestamp
                self._history_patches.update(event.patches)
                if event.version_name is not None:
                    self.version_name = event.version_name
            case ExecutionStarted():
                self._on_execution_started(event)
            case TaskScheduled():
                self._confirm_action(event.event_id, ScheduleTaskAction, (
                    f"a previous execution called CallActivity for '{event.name}' and sequence "
                    f"number {event.event_id} at this point in the orchestration logic, but the "
                    "current execution doesn't have this action with this sequence number"
                ))
            case TaskCompleted():
                task = self._pending_tasks.pop(event.task_scheduled_id, None)
                if task is not None:
                    task.complete(event.result)
            case TaskFailed():
                task = self._pending_tasks.pop(event.task_scheduled_id, None)
                if task is not None:
                    task.fail(event.failure_details)
                    task.execution_id = event.task_execution_id
            case SubOrchestrationCreated():
                self._confirm_action(event.event_id, CreateSubOrchestrationAction, (
                    f"a previous execution called CallSubOrchestrator for '{event.name}' and "
                    f"sequence number {event.event_id} at this point in the orchestration logic, "
                    "but the current execution doesn't have this action with this sequence number"
                ))
            case SubOrchestrationCompleted():
                task = self._pending_tasks.pop(event.task_scheduled_id, None)
                if task is not None:
                    task.complete(event.result)
            case SubOrchestrationFailed():
                task = self._pending_tasks.pop(event.task_scheduled_id, None)
                if task is not None:
                    task.fail(event.failure_details)
            case TimerCreated():
                self._confirm_action(event.event_id, CreateTimerAction, (
                    f"a previous execution called CreateTimer with sequence number "
                    f"{event.event_id}, but the current execution doesn't have this action "
                    "with this sequence number"
                ))
            case TimerFired():
                task = self._pending_tasks.pop(event.timer_id, None)
                if task is not None:
                    task.complete(None)
            case EventRaised():
                self._on_external_event_raised(event)
            case ExecutionSuspended():
                self._is_suspended = True
            case ExecutionResumed():
                self._on_execution_resumed()
            case ExecutionTerminated():
                self._set_complete_internal(event.input, OrchestrationStatus.TERMINATED)
            case ExecutionStalled() | OrchestratorCompleted():
                pass
            case _:
                raise ValueError(f"don't know how to handle event: {event!r}")

    def _confirm_action(self, action_id: int, kind: type, message: str) -> None:
        if not isinstance(self._pending_actions.get(action_id), kind):
            raise RuntimeError(message)
        del self._pending_actions[action_id]

    def _get_orchestrator(self, event: ExecutionStarted) -> Callable[[Any], Any]:
        orchestrator = self._registry.find_orchestrator(event.name)
        if orchestrator is not None:
            return orchestrator

        versions = self._registry.find_versioned_orchestrators(event.name)
        if versions is not None:
            version = self.version_name
            if version is None:
                version = self._registry.latest_version(event.name)
                if version is None:
                    raise LookupError(
                        f"versioned workflow '{event.name}' does not have a latest version registered"
                    )
            orchestrator = versions.get(version)
            if orchestrator is None:
                raise UnsupportedVersionError()
            self.version_name = version
            return orchestrator

        orchestrator = self._registry.find_orchestrator("*")
        if orchestrator is not None:
            return orchestrator
        raise LookupError(f"orchestrator named '{event.name}' is not registered")

    def _on_execution_started(self, event: ExecutionStarted) -> None:
        orchestrator = self._get_orchestrator(event)
        self.name = event.name
        if event.input is not None:
            self._raw_input = event.input

        try:
            output = orchestrator(self)
        except Exception as app_error:
            self._set_failed(app_error)
            return

        try:
            if self._continued_as_new:
                self._set_continued_as_new()
            else:
                self._set_complete(output)
        except (TypeError, ValueError) as error:
            self._set_failed(ValueError(f"failed to complete the orchestration: {error}"))

    def _on_external_event_raised(self, event: EventRaised) -> None:
        key = event.name.upper()
        waiting = self._pending_event_tasks.get(key)
        if waiting:
            task = waiting.popleft()
            if not waiting:
                del self._pending_event_tasks[key]
            task.complete(event.input)
        else:
            self._buffered_events.setdefault(key, deque()).append(event)

    def _on_execution_resumed(self) -> None:
        self._is_suspended = False
        held, self._suspended_events = self._suspended_events, []
        for event in held:
            self._process_event(event)

    # --- orchestrator API ------------------------------------------------

    def get_input(self) -> Any:
        """Return the deserialized orchestration input, or None."""
        return decode(self._raw_input)

    def set_custom_status(self, status: str) -> None:
        """Set the custom status reported for this orchestration."""
        self._custom_status = status

    def call_activity(
        self,
        activity: Any,
        *,
        input: Any = None,
        raw_input: str | None = None,
        retry_policy: RetryPolicy | None = None,
        app_id: str | None = None,
    ) -> Task:
        """Schedule an activity, named by string or by its function."""
        try:
            rendered = encode(input) if input is not None else raw_input
            if retry_policy is not None:
                retry_policy.validate()
        except (TypeError, ValueError) as error:
            return self._failed_task(error)

        name = task_function_name(activity)
        if retry_policy is not None:
            return _RetryableTask(
                self,
                f"{name}-retry",
                self.current_time_utc,
                lambda execution_id: self._schedule_activity(name, execution_id, rendered, app_id),
                retry_policy,
                0,
                str(uuid.uuid4()),
            )
        return self._schedule_activity(name, str(uuid.uuid4()), rendered, app_id)

    def _schedule_activity(
        self, name: str, task_execution_id: str, raw_input: str | None, app_id: str | None
    ) -> CompletableTask:
        action = ScheduleTaskAction(
            id=self._next_sequence_number(),
            name=name,
            input=raw_input,
            task_execution_id=task_execution_id,
            target_app_id=app_id,
        )
        return self._track(action)

    def call_sub_orchestrator(
        self,
        orchestrator: Any,
        *,
        input: Any = None,
        raw_input: str | None = None,
        instance_id: str = "",
        retry_policy: RetryPolicy | None = None,
        app_id: str | None = None,
    ) -> Task:
        """Start a sub-orchestration, named by string or by its function."""
        try:
            if input is not None:
                try:
                    rendered = encode(input)
                except (TypeError, ValueError) as error:
                    raise ValueError(f"failed to marshal input to JSON: {error}") from error
            else:
                rendered = raw_input
            if retry_policy is not None:
                retry_policy.validate()
        except ValueError as error:
            return self._failed_task(error)

        name = task_function_name(orchestrator)

        def schedule(_execution_id: str) -> CompletableTask:
            action = CreateSubOrchestrationAction(
                id=self._next_sequence_number(),
                name=name,
                input=rendered,
                instance_id=instance_id,
                target_app_id=app_id,
            )
            return self._track(action)

        if retry_policy is not None:
            return _RetryableTask(
                self,
                f"{name}-retry",
                self.current_time_utc,
                schedule,
                retry_policy,
                0,
                str(uuid.uuid4()),
            )
        return schedule("")

    def create_timer(self, delay: timedelta, *, name: str | None = None) -> Task:
        """Schedule a durable timer that fires after ``delay``."""
        return self._create_timer_internal(name, delay)

    def _create_timer_internal(self, name: str | None, delay: timedelta) -> CompletableTask:
        action = CreateTimerAction(
            id=self._next_sequence_number(),
            fire_at=self.current_time_utc + delay,
            name=name,
        )
        return self._track(action)

    def wait_for_single_event(self, event_name: str, timeout: timedelta | None = None) -> Task:
        """Return a task completed by the next event named ``event_name``.

        Names are case-insensitive. A zero timeout cancels the task unless the
        event is already buffered; None or a negative timeout waits forever.
        """
        task = CompletableTask(self)
        key = event_name.upper()
        buffered = self._buffered_events.get(key)
        if buffered:
            event = buffered.popleft()
            if not buffered:
                del self._buffered_events[key]
            task.complete(event.input)
        elif timeout is not None and timeout == timedelta(0):
            task.cancel()
        else:
            self._pending_event_tasks.setdefault(key, deque()).append(task)
            if timeout is not None and timeout > timedelta(0):
                timer = self._create_timer_internal(event_name, timeout)
                timer.on_completed(lambda: self._on_event_timeout(key, task))
        return task

    def _on_event_timeout(self, key: str, task: CompletableTask) -> None:
        if not task.is_completed:
            task.cancel()
        waiting = self._pending_event_tasks.get(key)
        if waiting is not None and task in waiting:
            waiting.remove(task)
            if not waiting:
                del self._pending_event_tasks[key]

    def continue_as_new(self, new_input: Any, *, keep_unprocessed_events: bool = False) -> None:
        """Restart the orchestration with a new input once this episode ends."""
        self._continued_as_new = True
        self._continued_as_new_input = new_input
        if keep_unprocessed_events:
            self._save_buffered_events = True

    def is_patched(self, patch_name: str) -> bool:
        """Return whether the code path guarded by ``patch_name`` should run."""
        patched = self._decide_patch(patch_name)
        if patched:
            self._encountered_patches.append(patch_name)
        return patched

    def _decide_patch(self, patch_name: str) -> bool:
        if patch_name in self._applied_patches:
            return self._applied_patches[patch_name]
        if patch_name in self._history_patches:
            self._applied_patches[patch_name] = True
            return True
        if self._history_index < len(self._old_events) + len(self._new_events):
            # Mid-history: the earlier run used the unpatched code.
            self._applied_patches[patch_name] = False
            return False
        self._applied_patches[patch_name] = True
        return True

    # --- completion ------------------------------------------------------

    def _failed_task(self, error: BaseException) -> CompletableTask:
        task = CompletableTask(self)
        task.fail(FailureDetails.from_exception(error))
        return task

    def _track(self, action: OrchestratorAction) -> CompletableTask:
        self._pending_actions[action.id] = action
        task = CompletableTask(self)
        self._pending_tasks[action.id] = task
        return task

    def _set_complete(self, output: Any) -> None:
        try:
            raw_output = encode(output)
        except (TypeError, ValueError) as error:
            raise ValueError(f"failed to marshal output to JSON: {error}") from error
        self._set_complete_internal(raw_output, OrchestrationStatus.COMPLETED)

    def _set_failed(self, error: BaseException) -> None:
        self._set_complete_internal(
            None, OrchestrationStatus.FAILED, FailureDetails.from_exception(error)
        )

    def _set_continued_as_new(self) -> None:
        try:
            raw_input = encode(self._continued_as_new_input)
        except (TypeError, ValueError) as error:
            raise ValueError(
                f"failed to marshal continue-as-new payload to JSON: {error}"
            ) from error
        self._set_complete_internal(raw_input, OrchestrationStatus.CONTINUED_AS_NEW)

    def _set_complete_internal(
        self,
        raw_result: str | None,
        status: OrchestrationStatus,
        failure_details: FailureDetails | None = None,
    ) -> None:
        action_id = self._next_sequence_number()
        self._pending_actions[action_id] = CompleteOrchestrationAction(
            id=action_id,
            status=status,
            result=raw_result,
            failure_details=failure_details,
        )

    def _set_version_not_registered(self) -> None:
        action_id = self._next_sequence_number()
        self._pending_actions[action_id] = VersionNotAvailableAction(id=action_id)

    def _next_sequence_number(self) -> int:
        current = self._sequence_number
        self._sequence_number += 1
        return current

    def _actions(self) -> list[OrchestratorAction]:
        if self._is_suspended:
            return []
        actions = list(self._pending_actions.values())
        if self._continued_as_new and self._save_buffered_events:
            carryover = [event for events in self._buffered_events.values() for event in events]
            for action in actions:
                if isinstance(action, CompleteOrchestrationAction):
                    action.carryover_events.extend(carryover)
        return actions