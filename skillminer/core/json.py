"""JSON helpers backed by orjson."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson

JSONDecodeError = orjson.JSONDecodeError


def _default(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    raise TypeError(f"Object of type {obj.__class__.__name__} is not JSON serializable")


def dumps(obj: Any, *, pretty: bool = False) -> str:
    """Dump object to a JSON string."""
    option = orjson.OPT_INDENT_2 if pretty else None
    return orjson.dumps(obj, default=_default, option=option).decode("utf-8")


def loads(obj: str | bytes) -> Any:
    """Load object from a JSON string or bytes."""
    return orjson.loads(obj)


__all__ = ["dumps", "loads", "JSONDecodeError"]
