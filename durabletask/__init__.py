"""Replay-based durable orchestrations, activities and workflows executed in memory."""

__version__ = "0.1.0"

__all__ = [
    "activity",
    "codec",
    "executor",
    "history",
    "orchestrator",
    "registry",
    "task",
    "workflow",
]