# schemamend/values.py
"""Generic JSON value trees.

Values are plain Python objects: ``None``, ``bool``, ``int``, :class:`JsonNumber`
(every non-integer number; a ``Decimal`` that also keeps its literal text), ``str``,
``list`` and ``dict`` (insertion ordered).  Trees are never mutated in place;
every transformation builds a new one.
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any

from .errors import ParseFailure


class JsonNumber(Decimal):
    """Exact decimal that remembers the JSON literal it was read from."""

    def __new__(cls, text: str) -> JsonNumber:
        number = super().__new__(cls, text)
        number.text = text
        return number


def _parse_int(text: str) -> int | JsonNumber:
    try:
        return int(text)
    except ValueError:
        # Longer than the interpreter's int conversion limit
        return JsonNumber(text)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def parse_value(text: str) -> Any:
    """Parse *text* as one JSON document, raising :class:`ParseFailure`."""
    try:
        return json.loads(
            text,
            parse_float=JsonNumber,
            parse_int=_parse_int,
            parse_constant=_reject_constant,
        )
    except (ValueError, TypeError) as exc:
        raise ParseFailure(f"not a JSON document: {exc}") from exc
    except RecursionError as exc:
        raise ParseFailure("JSON document nested too deeply") from exc


def try_parse_value(text: str) -> tuple[bool, Any]:
    """Like :func:`parse_value` but returns ``(ok, value)``."""
    try:
        return True, parse_value(text)
    except ParseFailure:
        return False, None


def dumps_value(value: Any) -> str:
    """Serialize a value tree as compact canonical JSON.

    Numbers are written with their own text, never through float.
    """
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, int):
        return str(int(value))
    if isinstance(value, JsonNumber):
        return value.text
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError(f"{value} cannot be written as JSON")
        return str(value)
    if isinstance(value, float):
        return json.dumps(value, allow_nan=False)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, dict):
        items = ",".join(f"{dumps_value(str(k))}:{dumps_value(v)}" for k, v in value.items())
        return "{" + items + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(dumps_value(v) for v in value) + "]"
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def kind_of(value: Any) -> str:
    """JSON kind name of a value tree node."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float, Decimal)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__
