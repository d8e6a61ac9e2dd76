"""Registry mapping names to orchestrator and activity functions."""

from __future__ import annotations

from typing import Any, Callable

Orchestrator = Callable[[Any], Any]
Activity = Callable[[Any], Any]


class RegistrationError(ValueError):
    """A function could not be registered, usually because the name is taken."""


def task_function_name(function: Any) -> str:
    """Return the name a task function is registered or called under."""
    if isinstance(function, str):
        return function
    name = getattr(function, "__name__", None)
    if not isinstance(name, str):
        raise TypeError(f"cannot determine a task name for {function!r}")
    return name


class TaskRegistry:
    """Maps names to orchestrator and activity functions."""

    def __init__(self) -> None:
        self._orchestrators: dict[str, Orchestrator] = {}
        self._versioned: dict[str, dict[str, Orchestrator]] = {}
        self._latest: dict[str, str] = {}
        self._activities: dict[str, Activity] = {}

    def add_orchestrator(self, orchestrator: Orchestrator) -> None:
        """Register an orchestrator under its function name."""
        self.add_orchestrator_n(task_function_name(orchestrator), orchestrator)

    def add_orchestrator_n(self, name: str, orchestrator: Orchestrator) -> None:
        """Register an orchestrator under the given name."""
        if name in self._orchestrators:
            raise RegistrationError(f"orchestrator named '{name}' is already registered")
        self._orchestrators[name] = orchestrator

    def add_versioned_orchestrator(
        self, canonical_name: str, is_latest: bool, orchestrator: Orchestrator
    ) -> None:
        """Register a version of an orchestrator, named after its function."""
        self.add_versioned_orchestrator_n(
            canonical_name, task_function_name(orchestrator), is_latest, orchestrator
        )

    def add_versioned_orchestrator_n(
        self, canonical_name: str, name: str, is_latest: bool, orchestrator: Orchestrator
    ) -> None:
        """Register version ``name`` of the orchestrator ``canonical_name``."""
        versions = self._versioned.setdefault(canonical_name, {})
        if name in versions:
            raise RegistrationError(
                f"versioned orchestrator named '{name}' is already registered"
            )
        versions[name] = orchestrator
        if is_latest:
            self._latest[canonical_name] = name

    def add_activity(self, activity: Activity) -> None:
        """Register an activity under its function name."""
        self.add_activity_n(task_function_name(activity), activity)

    def add_activity_n(self, name: str, activity: Activity) -> None:
        """Register an activity under the given name."""
        if name in self._activities:
            raise RegistrationError(f"activity named '{name}' is already registered")
        self._activities[name] = activity

    def find_orchestrator(self, name: str) -> Orchestrator | None:
        """Return the unversioned orchestrator registered as ``name``."""
        return self._orchestrators.get(name)

    def find_versioned_orchestrators(self, name: str) -> dict[str, Orchestrator] | None:
        """Return the versions registered for ``name``, keyed by version name."""
        versions = self._versioned.get(name)
        return dict(versions) if versions is not None else None

    def latest_version(self, name: str) -> str | None:
        """Return the version name marked latest for ``name``."""
        return self._latest.get(name)

    def find_activity(self, name: str) -> Activity | None:
        """Return the activity registered as ``name``."""
        return self._activities.get(name)