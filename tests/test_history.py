from datetime import datetime, timedelta, timezone

from durabletask.history import (
    CompleteOrchestrationAction,
    CreateTimerAction,
    EventRaised,
    ExecutionStarted,
    FailureDetails,
    OrchestrationStatus,
    OrchestratorResponse,
    OrchestratorStarted,
    ScheduleTaskAction,
    TaskCompleted,
    TaskFailed,
    TimerFired,
)


class _CustomError(Exception):
    pass


def test_failure_details_from_exception():
    fd = FailureDetails.from_exception(_CustomError("Kah-BOOOM!!"))
    assert fd.error_type == "_CustomError"
    assert fd.error_message == "Kah-BOOOM!!"
    assert fd.stack_trace is None


def test_failure_details_from_builtin_exception():
    fd = FailureDetails.from_exception(ValueError("bad value"))
    assert fd.error_type == "ValueError"
    assert fd.error_message == "bad value"


def test_event_defaults():
    before = datetime.now(timezone.utc)
    e = ExecutionStarted(name="testing")
    after = datetime.now(timezone.utc)
    assert e.event_id == -1
    assert e.input is None
    assert e.timestamp.tzinfo is not None
    assert before <= e.timestamp <= after


def test_event_fields_kept():
    e = TaskCompleted(event_id=3, task_scheduled_id=7, result="42", task_execution_id="x")
    assert (e.event_id, e.task_scheduled_id, e.result, e.task_execution_id) == (3, 7, "42", "x")


def test_task_failed_carries_details():
    fd = FailureDetails(error_type="MyError", error_message="boom")
    e = TaskFailed(task_scheduled_id=1, failure_details=fd)
    assert e.failure_details == fd


def test_orchestrator_started_patches_independent():
    a = OrchestratorStarted()
    b = OrchestratorStarted()
    a.patches.append("patch1")
    assert b.patches == []


def test_event_equality():
    ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert EventRaised(name="MyEvent", input="foo", timestamp=ts) == EventRaised(
        name="MyEvent", input="foo", timestamp=ts
    )
    assert EventRaised(name="MyEvent", timestamp=ts) != EventRaised(name="Other", timestamp=ts)


def test_timer_fired_keeps_fire_at():
    fire_at = datetime.now(timezone.utc) + timedelta(hours=72)
    e = TimerFired(timer_id=2, fire_at=fire_at)
    assert e.fire_at == fire_at
    assert e.timer_id == 2


def test_schedule_task_action():
    action = ScheduleTaskAction(id=7, name="MyActivity", input="Hello, activity!")
    assert action.id == 7
    assert action.target_app_id is None
    assert action.name == "MyActivity"


def test_create_timer_action_name():
    fire_at = datetime.now(timezone.utc)
    action = CreateTimerAction(id=1, fire_at=fire_at, name="foo")
    assert action.name == "foo"
    assert action.fire_at == fire_at


def test_complete_action_carryover_independent():
    a = CompleteOrchestrationAction(id=0, status=OrchestrationStatus.CONTINUED_AS_NEW)
    b = CompleteOrchestrationAction(id=1, status=OrchestrationStatus.COMPLETED)
    a.carryover_events.append(EventRaised(name="x"))
    assert len(a.carryover_events) == 1
    assert b.carryover_events == []


def test_status_enum_lookup_by_name():
    assert OrchestrationStatus["TERMINATED"] is OrchestrationStatus.TERMINATED
    assert OrchestrationStatus(OrchestrationStatus.FAILED.value) is OrchestrationStatus.FAILED
    assert len({s.value for s in OrchestrationStatus}) == len(OrchestrationStatus)


def test_orchestrator_response_defaults():
    r = OrchestratorResponse(instance_id="abc")
    assert r.instance_id == "abc"
    assert r.actions == []
    assert r.patches == []
    assert r.version_name is None