"""JSON encoding of task inputs and outputs."""

from __future__ import annotations

import dataclasses
import json
from typing import Any


def _default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode(value: Any) -> str | None:
    """Serialize a value to compact JSON; None stays None.

    Raises TypeError for values that cannot be serialized and ValueError
    for non-finite floats.
    """
    if value is None:
        return None
    return json.dumps(
        value,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
        default=_default,
    )


def decode(raw: str | bytes | None) -> Any:
    """Deserialize JSON text; missing or empty data decodes to None."""
    if raw is None or len(raw) == 0:
        return None
    return json.loads(raw)