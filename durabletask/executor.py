"""Runs orchestrator and activity functions in-process against a registry."""

from __future__ import annotations

from typing import Iterable

from durabletask.activity import ActivityContext
from durabletask.codec import encode
from durabletask.history import (
    FailureDetails,
    HistoryEvent,
    OrchestratorResponse,
    TaskCompleted,
    TaskFailed,
    TaskScheduled,
)
from durabletask.orchestrator import OrchestrationContext
from durabletask.registry import TaskRegistry


class TaskExecutor:
    """Executes orchestrators and activities registered in a TaskRegistry."""

    def __init__(self, registry: TaskRegistry) -> None:
        self.registry = registry

    def execute_activity(self, instance_id: str, event: HistoryEvent) -> HistoryEvent:
        """Run the activity scheduled by ``event`` and return its outcome event.

        Raises TypeError if ``event`` is not a TaskScheduled event.
        """
        if not isinstance(event, TaskScheduled):
            raise TypeError(
                f"Unexpected event type for ExecuteActivity: {type(event).__name__}"
            )

        activity = self.registry.find_activity(event.name)
        if activity is None:
            activity = self.registry.find_activity("*")
        if activity is None:
            return TaskFailed(
                task_scheduled_id=event.event_id,
                task_execution_id=event.task_execution_id,
                failure_details=FailureDetails(
                    error_type="TaskActivityNotRegistered",
                    error_message=f"no task activity named '{event.name}' was registered",
                ),
            )

        context = ActivityContext(
            task_id=event.event_id,
            task_execution_id=event.task_execution_id,
            name=event.name,
            raw_input=event.input,
        )
        try:
            result = activity(context)
            raw_result = encode(result)
        except Exception as error:
            return TaskFailed(
                task_scheduled_id=event.event_id,
                task_execution_id=event.task_execution_id,
                failure_details=FailureDetails.from_exception(error),
            )

        return TaskCompleted(
            task_scheduled_id=event.event_id,
            task_execution_id=event.task_execution_id,
            result=raw_result or None,
        )

    def execute_orchestrator(
        self,
        instance_id: str,
        old_events: Iterable[HistoryEvent],
        new_events: Iterable[HistoryEvent],
    ) -> OrchestratorResponse:
        """Replay the history through the orchestrator and return its actions."""
        context = OrchestrationContext(self.registry, instance_id, old_events, new_events)
        actions = context.run()
        return OrchestratorResponse(
            instance_id=instance_id,
            actions=actions,
            custom_status=context.custom_status,
            version_name=context.version_name,
            patches=context.encountered_patches,
        )

    def shutdown(self) -> None:
        """Release resources; an in-process executor holds none."""