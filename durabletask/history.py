"""History events, orchestrator actions and responses exchanged with a backend."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrchestrationStatus(enum.IntEnum):
    """Runtime status of an orchestration instance."""

    RUNNING = 0
    COMPLETED = 1
    CONTINUED_AS_NEW = 2
    FAILED = 3
    CANCELED = 4
    TERMINATED = 5
    PENDING = 6
    SUSPENDED = 7
    STALLED = 8


@dataclass(kw_only=True)
class FailureDetails:
    """Describes why a task or orchestration failed."""

    error_type: str
    error_message: str
    stack_trace: str | None = None

    @classmethod
    def from_exception(cls, error: BaseException) -> FailureDetails:
        """Build failure details from a raised exception."""
        return cls(error_type=type(error).__qualname__, error_message=str(error))


# --- history events -------------------------------------------------------


@dataclass(kw_only=True)
class HistoryEvent:
    """Base class of every event in an orchestration's history."""

    event_id: int = -1
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass(kw_only=True)
class OrchestratorStarted(HistoryEvent):
    """Marks the start of an orchestrator episode; carries the current time."""

    version_name: str | None = None
    patches: list[str] = field(default_factory=list)


@dataclass(kw_only=True)
class OrchestratorCompleted(HistoryEvent):
    """Marks the end of an orchestrator episode."""


@dataclass(kw_only=True)
class ExecutionStarted(HistoryEvent):
    """The orchestration instance was started."""

    name: str
    input: str | None = None
    instance_id: str = ""


@dataclass(kw_only=True)
class ExecutionStalled(HistoryEvent):
    """The orchestration instance has stalled."""

    description: str | None = None


@dataclass(kw_only=True)
class ExecutionSuspended(HistoryEvent):
    """The orchestration instance was suspended."""

    reason: str | None = None


@dataclass(kw_only=True)
class ExecutionResumed(HistoryEvent):
    """The orchestration instance was resumed."""

    reason: str | None = None


@dataclass(kw_only=True)
class ExecutionTerminated(HistoryEvent):
    """The orchestration instance was terminated."""

    input: str | None = None
    recurse: bool = False


@dataclass(kw_only=True)
class TaskScheduled(HistoryEvent):
    """An activity was scheduled."""

    name: str
    input: str | None = None
    task_execution_id: str = ""


@dataclass(kw_only=True)
class TaskCompleted(HistoryEvent):
    """An activity completed successfully."""

    task_scheduled_id: int
    result: str | None = None
    task_execution_id: str = ""


@dataclass(kw_only=True)
class TaskFailed(HistoryEvent):
    """An activity failed."""

    task_scheduled_id: int
    failure_details: FailureDetails | None = None
    task_execution_id: str = ""


@dataclass(kw_only=True)
class SubOrchestrationCreated(HistoryEvent):
    """A sub-orchestration instance was created."""

    name: str
    input: str | None = None
    instance_id: str = ""


@dataclass(kw_only=True)
class SubOrchestrationCompleted(HistoryEvent):
    """A sub-orchestration completed successfully."""

    task_scheduled_id: int
    result: str | None = None


@dataclass(kw_only=True)
class SubOrchestrationFailed(HistoryEvent):
    """A sub-orchestration failed."""

    task_scheduled_id: int
    failure_details: FailureDetails | None = None


@dataclass(kw_only=True)
class TimerCreated(HistoryEvent):
    """A durable timer was created."""

    fire_at: datetime
    name: str | None = None


@dataclass(kw_only=True)
class TimerFired(HistoryEvent):
    """A durable timer fired."""

    timer_id: int
    fire_at: datetime = field(default_factory=_utcnow)


@dataclass(kw_only=True)
class EventRaised(HistoryEvent):
    """An external event was delivered to the orchestration."""

    name: str
    input: str | None = None


# --- orchestrator actions -------------------------------------------------


@dataclass(kw_only=True)
class OrchestratorAction:
    """Base class of the actions an orchestrator asks the runtime to take."""

    id: int
    target_app_id: str | None = None


@dataclass(kw_only=True)
class ScheduleTaskAction(OrchestratorAction):
    """Schedule an activity invocation."""

    name: str
    input: str | None = None
    task_execution_id: str = ""


@dataclass(kw_only=True)
class CreateSubOrchestrationAction(OrchestratorAction):
    """Start a sub-orchestration."""

    name: str
    input: str | None = None
    instance_id: str = ""


@dataclass(kw_only=True)
class CreateTimerAction(OrchestratorAction):
    """Create a durable timer."""

    fire_at: datetime
    name: str | None = None


@dataclass(kw_only=True)
class CompleteOrchestrationAction(OrchestratorAction):
    """Finish the orchestration with the given status."""

    status: OrchestrationStatus
    result: str | None = None
    failure_details: FailureDetails | None = None
    carryover_events: list[HistoryEvent] = field(default_factory=list)


@dataclass(kw_only=True)
class VersionNotAvailableAction(OrchestratorAction):
    """The requested orchestrator version is not registered here."""


@dataclass(kw_only=True)
class OrchestratorResponse:
    """Result of running one orchestrator episode."""

    instance_id: str
    actions: list[OrchestratorAction] = field(default_factory=list)
    custom_status: str | None = None
    version_name: str | None = None
    patches: list[str] = field(default_factory=list)