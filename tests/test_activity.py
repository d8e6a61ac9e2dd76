from datetime import datetime, timedelta, timezone

import pytest

from durabletask.activity import ActivityContext, RetryPolicy, compute_next_delay

TIME1 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
TIME2 = TIME1 + timedelta(minutes=1)


def _policy(backoff: float = 2, retry_timeout: timedelta = timedelta(minutes=2)) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=3,
        initial_retry_interval=timedelta(seconds=2),
        backoff_coefficient=backoff,
        max_retry_interval=timedelta(seconds=10),
        handle=lambda err: True,
        retry_timeout=retry_timeout,
    )


@pytest.mark.parametrize(
    "policy, attempt, expected",
    [
        (_policy(), 0, timedelta(seconds=2)),
        (_policy(), 1, timedelta(seconds=4)),
        (_policy(), 2, timedelta(seconds=8)),
        (_policy(), 3, timedelta(seconds=10)),
        (_policy(retry_timeout=timedelta(seconds=30)), 3, timedelta(0)),
        (_policy(backoff=1), 3, timedelta(seconds=2)),
    ],
    ids=[
        "first attempt",
        "second attempt",
        "third attempt",
        "fourth attempt",
        "expired",
        "fourth attempt backoff 1",
    ],
)
def test_compute_next_delay(policy, attempt, expected):
    assert compute_next_delay(TIME2, policy, attempt, TIME1, None) == expected


def test_compute_next_delay_handle_rejects_error():
    policy = _policy()
    policy.handle = lambda err: not isinstance(err, KeyError)
    assert compute_next_delay(TIME2, policy, 0, TIME1, KeyError("x")) == timedelta(0)
    assert compute_next_delay(TIME2, policy, 0, TIME1, ValueError("x")) == timedelta(seconds=2)


def test_compute_next_delay_unbounded_limits():
    policy = RetryPolicy(initial_retry_interval=timedelta(seconds=1))
    policy.validate()
    far_future = TIME1 + timedelta(days=365)
    assert compute_next_delay(far_future, policy, 5, TIME1, None) == timedelta(seconds=1)


def test_validate_rejects_non_positive_initial_interval():
    with pytest.raises(ValueError, match="InitialRetryInterval"):
        RetryPolicy(initial_retry_interval=timedelta(0)).validate()


def test_validate_keeps_explicit_values():
    policy = _policy()
    policy.validate()
    assert policy.max_attempts == 3
    assert policy.backoff_coefficient == 2
    assert policy.max_retry_interval == timedelta(seconds=10)
    assert policy.retry_timeout == timedelta(minutes=2)


def test_activity_context_get_input_decodes_json():
    ctx = ActivityContext(task_id=7, task_execution_id="exec-1", name="SayHello", raw_input='"世界"')
    assert ctx.get_input() == "世界"
    assert ctx.task_id == 7
    assert ctx.task_execution_id == "exec-1"


def test_activity_context_get_input_empty_is_none():
    assert ActivityContext(task_id=1, raw_input="").get_input() is None
    assert ActivityContext(task_id=1).get_input() is None


def test_activity_context_get_input_structured():
    ctx = ActivityContext(task_id=1, raw_input='{"Foo":5}')
    assert ctx.get_input() == {"Foo": 5}