"""Indented JSON rendering of objects for logs."""

from __future__ import annotations

import dataclasses
import json
import logging
from datetime import date, datetime
from typing import Any

from .resources import Quantity

LINE_PREFIX = ""
INDENT_SIZE = "    "

_log = logging.getLogger(__name__)

_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _jsonable(obj: Any) -> Any:
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, Quantity):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: _jsonable(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, dict):
        return {str(k): _jsonable(v) for k, v in sorted(obj.items(), key=lambda kv: str(kv[0]))}
    if isinstance(obj, (list, tuple, set, frozenset)):
        items = sorted(obj, key=str) if isinstance(obj, (set, frozenset)) else obj
        return [_jsonable(item) for item in items]
    raise TypeError(f"json: unsupported type: {type(obj).__name__}")


def pretty(obj: Any) -> str:
    """Render obj as indented JSON, or describe why it could not be rendered."""
    try:
        data = json.dumps(_jsonable(obj), indent=INDENT_SIZE, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError, RecursionError) as error:
        return f"failed to print pretty string for object, {error}"
    for char, escape in _ESCAPES.items():
        data = data.replace(char, escape)
    return "\n".join(LINE_PREFIX + line if i else line for i, line in enumerate(data.split("\n")))


def pretty_info(*args: Any) -> None:
    """Log the pretty renderings of args at info level."""
    _log.info("%s", "".join(pretty(arg) for arg in args))


def pretty_infof(formatter: str, *args: Any) -> None:
    """Log formatter, %-formatted with the pretty renderings of args."""
    _log.info(formatter, *(pretty(arg) for arg in args))