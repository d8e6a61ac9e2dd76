# durabletask

`durabletask` runs durable orchestrations in memory. An orchestration is
an ordinary Python function that is replayed against its recorded
history. Each run returns the list of actions the orchestration wants
taken next: scheduling activities, starting sub-orchestrations, creating
timers, or completing.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `durabletask.history` – dataclasses for history events (`ExecutionStarted`,
  `TaskScheduled`, `TaskCompleted`, `TaskFailed`, `TimerCreated`,
  `TimerFired`, `EventRaised`, `ExecutionSuspended`, `ExecutionResumed`,
  `ExecutionTerminated`, …), for orchestrator actions (`ScheduleTaskAction`,
  `CreateSubOrchestrationAction`, `CreateTimerAction`,
  `CompleteOrchestrationAction`, `VersionNotAvailableAction`), for
  `OrchestratorResponse`, `FailureDetails` and the `OrchestrationStatus` enum.
- `durabletask.codec` – `encode(value)` turns a value into compact JSON
  (dataclasses are encoded as dicts; `None` stays `None`). `decode(raw)`
  reverses it, and turns missing or empty data into `None`.
- `durabletask.task` – `Task`, `CompletableTask` and the exceptions
  `TaskFailedError`, `TaskCanceledError` and `TaskBlocked`.
- `durabletask.registry` – `TaskRegistry` and `RegistrationError`.
- `durabletask.activity` – `ActivityContext`, `RetryPolicy` and
  `compute_next_delay`.
- `durabletask.orchestrator` – `OrchestrationContext` and
  `UnsupportedVersionError`.
- `durabletask.executor` – `TaskExecutor`.
- `durabletask.workflow` – a facade with workflow names over the same
  runtime.

## Concepts

- **Activities** are plain functions. They take an `ActivityContext` and
  return a JSON-serialisable value. `ctx.get_input()` returns the decoded
  input.
- **Orchestrators** take an `OrchestrationContext` and return the
  orchestration's output. Raising an exception fails the orchestration.
  An orchestrator must be deterministic, because it is replayed from
  history.
- **Tasks** are returned by `call_activity`, `call_sub_orchestrator`,
  `create_timer` and `wait_for_single_event`. Calling `task.result()` has
  one of three outcomes:
  - it returns the decoded value;
  - it raises `TaskFailedError` or `TaskCanceledError`;
  - it raises `TaskBlocked` when history holds no outcome yet.

  `TaskBlocked` derives from `BaseException` and ends the current episode.
  Orchestrator code must let it propagate.
- **Registry**: `TaskRegistry` maps names to orchestrators and activities.
  - It also holds versioned orchestrators under a canonical name.
  - The name `"*"` registers a wildcard fallback.
  - Registering a name twice raises `RegistrationError`.
- **Executor**: `TaskExecutor` handles one activity or one orchestrator
  episode.
  - `execute_activity(instance_id, event)` turns a `TaskScheduled` event
    into a `TaskCompleted` or `TaskFailed` event. An activity that is not
    registered, or one that raises, gives a `TaskFailed` event.
  - `execute_orchestrator(instance_id, old_events, new_events)` replays the
    history. It returns an `OrchestratorResponse` that holds the pending
    actions, the custom status, the version name and the patches that were
    encountered.

## Example

```python
from datetime import timedelta

from durabletask.activity import RetryPolicy
from durabletask.executor import TaskExecutor
from durabletask.history import ExecutionStarted, OrchestratorStarted, TaskScheduled
from durabletask.registry import TaskRegistry


def say_hello(ctx):
    return f"Hello, {ctx.get_input()}!"


def greeting(ctx):
    policy = RetryPolicy(max_attempts=3, initial_retry_interval=timedelta(seconds=1))
    reply = ctx.call_activity("say_hello", input=ctx.get_input(), retry_policy=policy).result()
    ctx.set_custom_status("greeted")
    return reply


registry = TaskRegistry()
registry.add_activity_n("say_hello", say_hello)
registry.add_orchestrator_n("greeting", greeting)
executor = TaskExecutor(registry)

# First episode: the orchestrator asks for the activity to be scheduled.
response = executor.execute_orchestrator(
    "instance-1",
    [],
    [OrchestratorStarted(), ExecutionStarted(name="greeting", input='"World"')],
)
action = response.actions[0]  # a ScheduleTaskAction named "say_hello"

# Running the activity yields a TaskCompleted event with result '"Hello, World!"'.
outcome = executor.execute_activity(
    "instance-1",
    TaskScheduled(event_id=action.id, name=action.name, input=action.input),
)
```

To go on, feed the recorded events plus `outcome` back to
`execute_orchestrator`. The next response holds a
`CompleteOrchestrationAction`.

### Waiting for events and timers

```python
from datetime import timedelta

from durabletask.task import TaskCanceledError


def approval(ctx):
    try:
        decision = ctx.wait_for_single_event("Approval", timedelta(hours=1)).result()
    except TaskCanceledError:
        return "timed out"
    ctx.create_timer(timedelta(minutes=5), name="cool-down").result()
    return decision
```

Timeout rules:

- Event names are case-insensitive.
- A zero timeout cancels the task at once, unless the event is already
  buffered.
- `None` or a negative timeout waits indefinitely.

### Retries

`RetryPolicy.validate()` checks a policy and fills in its defaults:

- `initial_retry_interval` must be positive; otherwise it raises
  `ValueError`.
- `max_attempts` defaults to 1.
- `backoff_coefficient` defaults to 1.
- A `max_retry_interval` or `retry_timeout` of `None` means no limit.

`compute_next_delay` returns the back-off before the next attempt. It
returns zero when `handle` refuses the error or the retry timeout has
passed. Each retry waits on a durable timer named `"<name>-retry"`.

### Versioning and patches

- `add_versioned_orchestrator_n(canonical_name, name, is_latest, fn)`
  registers several implementations under one canonical name.
  - A new instance runs the version marked latest.
  - An instance whose `OrchestratorStarted` event carries a version name
    runs that version.
  - If that version is not registered, the response holds a
    `VersionNotAvailableAction`.
- `ctx.is_patched("patch-name")` lets an orchestrator change behaviour
  without breaking instances already in flight. During replay of older
  history it returns `False`, unless the history records the patch.

### Continue-as-new

`ctx.continue_as_new(new_input, keep_unprocessed_events=True)` completes
the episode with status `CONTINUED_AS_NEW`. When `keep_unprocessed_events`
is set, external events that were buffered but not consumed are attached
to the completion action as carry-over events.

### Workflow facade

`durabletask.workflow` offers the same runtime under workflow names:

- `WorkflowRegistry`:
  - `add_workflow`, `add_workflow_n`
  - `add_activity`, `add_activity_n`
  - `add_versioned_workflow`, `add_versioned_workflow_n`
  - its `registry` attribute is the underlying `TaskRegistry`, ready for
    `TaskExecutor`.
- `WorkflowContext`:
  - `call_activity`
  - `call_child_workflow`
  - `wait_for_external_event`
  - `create_timer`
  - `continue_as_new`
  - `is_patched`
  - `get_input`
  - `set_custom_status`
- `WorkflowStatus` and `status_name(status)`, which gives readable names
  for runtime statuses, such as `"RUNNING"` or `"COMPLETED"`.

## What this package does not do

The package covers only the in-process part: replaying history and
running functions. It does not store history or instance state. It has no
work-item queue, no worker loop, no network client or server, and no
command-line tool. Whatever calls `TaskExecutor` must keep each
instance's history, deliver new events, and act on the returned actions
itself, for example by scheduling activities and firing timers.