"""Workflow-flavoured facade over orchestrations, activities and their registry."""

from __future__ import annotations

import dataclasses
import enum
from datetime import datetime, timedelta
from typing import Any, Callable

from durabletask.activity import ActivityContext, RetryPolicy
from durabletask.history import OrchestrationStatus
from durabletask.orchestrator import OrchestrationContext
from durabletask.registry import TaskRegistry, task_function_name
from durabletask.task import Task

Workflow = Callable[["WorkflowContext"], Any]
Activity = Callable[[ActivityContext], Any]


class WorkflowStatus(enum.IntEnum):
    """Runtime status of a workflow instance."""

    RUNNING = OrchestrationStatus.RUNNING.value
    COMPLETED = OrchestrationStatus.COMPLETED.value
    CONTINUED_AS_NEW = OrchestrationStatus.CONTINUED_AS_NEW.value
    FAILED = OrchestrationStatus.FAILED.value
    CANCELED = OrchestrationStatus.CANCELED.value
    TERMINATED = OrchestrationStatus.TERMINATED.value
    PENDING = OrchestrationStatus.PENDING.value
    SUSPENDED = OrchestrationStatus.SUSPENDED.value
    STALLED = OrchestrationStatus.STALLED.value


def status_name(status: int) -> str:
    """Return the upper-case name of a runtime status, or "" if unknown."""
    try:
        return WorkflowStatus(status).name
    except ValueError:
        return ""


class WorkflowContext:
    """The argument workflow functions receive."""

    def __init__(self, context: OrchestrationContext) -> None:
        self._context = context

    @property
    def id(self) -> str:
        return self._context.id

    @property
    def name(self) -> str:
        return self._context.name

    @property
    def current_time_utc(self) -> datetime:
        return self._context.current_time_utc

    @property
    def is_replaying(self) -> bool:
        return self._context.is_replaying

    def get_input(self) -> Any:
        """Return the deserialized workflow input, or None."""
        return self._context.get_input()

    def set_custom_status(self, status: str) -> None:
        """Set the custom status reported for this workflow."""
        self._context.set_custom_status(status)

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
        return self._context.call_activity(
            activity, input=input, raw_input=raw_input, retry_policy=retry_policy, app_id=app_id
        )

    def call_child_workflow(
        self,
        workflow: Any,
        *,
        input: Any = None,
        raw_input: str | None = None,
        instance_id: str = "",
        retry_policy: RetryPolicy | None = None,
        app_id: str | None = None,
    ) -> Task:
        """Start a child workflow, named by string or by its function."""
        policy = dataclasses.replace(retry_policy) if retry_policy is not None else None
        return self._context.call_sub_orchestrator(
            workflow,
            input=input,
            raw_input=raw_input,
            instance_id=instance_id,
            retry_policy=policy,
            app_id=app_id,
        )

    def create_timer(self, delay: timedelta, *, name: str | None = None) -> Task:
        """Schedule a durable timer that fires after ``delay``."""
        return self._context.create_timer(delay, name=name)

    def wait_for_external_event(self, event_name: str, timeout: timedelta | None = None) -> Task:
        """Return a task completed by the next event named ``event_name``.

        Names are case-insensitive. A zero timeout cancels the task unless the
        event already arrived; None or a negative timeout waits forever.
        """
        return self._context.wait_for_single_event(event_name, timeout)

    def continue_as_new(self, new_input: Any, *, keep_unprocessed_events: bool = False) -> None:
        """Restart the workflow with a new input once this episode ends."""
        self._context.continue_as_new(new_input, keep_unprocessed_events=keep_unprocessed_events)

    def is_patched(self, patch_name: str) -> bool:
        """Return whether the code path guarded by ``patch_name`` should run."""
        return self._context.is_patched(patch_name)


def _adapt(workflow: Workflow) -> Callable[[OrchestrationContext], Any]:
    def orchestrator(context: OrchestrationContext) -> Any:
        return workflow(WorkflowContext(context))

    orchestrator.__name__ = task_function_name(workflow)
    return orchestrator


class WorkflowRegistry:
    """Maps names to workflow and activity functions."""

    def __init__(self) -> None:
        self.registry = TaskRegistry()

    def add_workflow(self, workflow: Workflow) -> None:
        """Register a workflow under its function name."""
        self.add_workflow_n(task_function_name(workflow), workflow)

    def add_workflow_n(self, name: str, workflow: Workflow) -> None:
        """Register a workflow under the given name."""
        self.registry.add_orchestrator_n(name, _adapt(workflow))

    def add_activity(self, activity: Activity) -> None:
        """Register an activity under its function name."""
        self.add_activity_n(task_function_name(activity), activity)

    def add_activity_n(self, name: str, activity: Activity) -> None:
        """Register an activity under the given name."""
        self.registry.add_activity_n(name, activity)

    def add_versioned_workflow(
        self, canonical_name: str, is_latest: bool, workflow: Workflow
    ) -> None:
        """Register a version of a workflow, named after its function."""
        self.add_versioned_workflow_n(
            canonical_name, task_function_name(workflow), is_latest, workflow
        )

    def add_versioned_workflow_n(
        self, canonical_name: str, name: str, is_latest: bool, workflow: Workflow
    ) -> None:
        """Register version ``name`` of the workflow ``canonical_name``."""
        self.registry.add_versioned_orchestrator_n(
            canonical_name, name, is_latest, _adapt(workflow)
        )