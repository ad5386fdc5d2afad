# schemamend/coercer.py
"""Schema-guided repair of parsed model output.

Language models often get the shape right and the primitive types wrong:
numbers arrive as strings, arrays as CSV text or stringified JSON, nested
objects as escaped JSON strings, and some models echo the JSON Schema itself
with the data tucked into ``properties``.  :class:`SchemaCoercer` walks a
generic value tree alongside a :class:`~schemamend.schema.SchemaNode` tree
and rebuilds the value so the final strict decode has a chance to succeed.

Scalar mismatches never raise: an inapplicable conversion returns the input
unchanged and the final decoder decides.  Only an object or array target that
cannot be produced at all raises :class:`StructuralCoercionFailure`.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import CoercionDepthExceeded, ParseFailure, StructuralCoercionFailure
from .schema import JsonType, SchemaNode
from .values import JsonNumber, kind_of, parse_value

SCHEMA_MARKER = "$schema"
ECHOED_CONTENT_KEY = "content"

_TRUE_WORDS = frozenset({"true", "yes", "1"})
_FALSE_WORDS = frozenset({"false", "no", "0"})

_DECIMAL_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INTEGER_RE = re.compile(r"[+-]?\d+")
_JSON_NUMBER_RE = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?")


def parse_decimal_text(text: str) -> int | Decimal | None:
    """Parse decimal number text exactly; ``None`` when it is not a number.

    Integral text becomes ``int``; anything with a fraction or exponent stays
    a ``Decimal`` so no precision is lost.  Text that is already a JSON number
    literal keeps its spelling (``1e2`` is written back as ``1e2``).
    """
    probe = text.strip()
    if _INTEGER_RE.fullmatch(probe):
        try:
            return int(probe)
        except ValueError:
            # Longer than the interpreter's int conversion limit
            return _exact_decimal(probe)
    if not _DECIMAL_RE.fullmatch(probe):
        return None
    return _exact_decimal(probe)


def _exact_decimal(probe: str) -> Decimal | None:
    try:
        if _JSON_NUMBER_RE.fullmatch(probe):
            return JsonNumber(probe)
        return Decimal(probe)
    except InvalidOperation:
        return None


def parse_boolean_text(text: str) -> bool | None:
    """Map yes/no style text to a boolean; ``None`` when it is not one."""
    probe = text.lower()
    if probe in _TRUE_WORDS:
        return True
    if probe in _FALSE_WORDS:
        return False
    # Plain boolean literal with surrounding whitespace
    probe = probe.strip()
    if probe == "true":
        return True
    if probe == "false":
        return False
    return None


def _is_bracketed(text: str) -> bool:
    probe = text.strip()
    return probe.startswith("[") and probe.endswith("]")


class SchemaCoercer:
    """Recursively coerce generic values toward a schema tree.

    Parameters
    ----------
    max_depth:
        Ceiling on nested :meth:`coerce` calls.  Exceeding it raises
        :class:`CoercionDepthExceeded`, abandoning the current candidate.
    """

    def __init__(self, max_depth: int = 64) -> None:
        self.max_depth = max_depth

    def coerce(self, value: Any, node: SchemaNode, depth: int = 0) -> Any:
        """Return a corrected copy of *value* for *node*."""
        if depth > self.max_depth:
            raise CoercionDepthExceeded(f"coercion deeper than {self.max_depth} levels")

        if node.is_any:
            return value
        if value is None and node.declares(JsonType.NULL):
            return None

        if node.declares(JsonType.OBJECT):
            return self._to_object(value, node, depth)
        if node.declares(JsonType.ARRAY):
            return self._to_array(value, node, depth)
        return self._to_scalar(value, node)

    # -- objects ---------------------------------------------------------------

    def _to_object(self, value: Any, node: SchemaNode, depth: int) -> dict[str, Any]:
        if isinstance(value, str):
            try:
                value = parse_value(value)
            except ParseFailure as exc:
                raise StructuralCoercionFailure(f"expected an object, got unparseable text: {exc}") from exc

        if not isinstance(value, dict):
            raise StructuralCoercionFailure(f"expected an object, got {kind_of(value)}")

        fixed: dict[str, Any] = {}
        for key, child_value in value.items():
            matched = self._match(key, node)
            if matched is None:
                continue
            name, child = matched
            if child_value is None and not child.declares(JsonType.NULL):
                # Absent rather than invalid: the target's default applies
                continue
            fixed[name] = self.coerce(child_value, child, depth + 1)

        if SCHEMA_MARKER in value and isinstance(value.get("properties"), dict):
            fixed.update(self._from_echoed_schema(value["properties"], node, depth))

        return fixed

    @staticmethod
    def _match(key: str, node: SchemaNode) -> tuple[str, SchemaNode] | None:
        matched = node.property_for(key)
        if matched is not None:
            return matched
        if node.additional is not None:
            return key, node.additional
        return None

    def _from_echoed_schema(self, echoed: dict[str, Any], node: SchemaNode, depth: int) -> dict[str, Any]:
        """Pull data out of a JSON Schema document the model echoed back."""
        recovered: dict[str, Any] = {}
        for key, entry in echoed.items():
            matched = node.property_for(key)
            if matched is None:
                continue
            name, child = matched
            if isinstance(entry, dict):
                content = entry.get(ECHOED_CONTENT_KEY)
                if content is not None:
                    recovered[name] = self.coerce(content, child, depth + 1)
            elif entry is not None and not isinstance(entry, list):
                recovered[name] = self.coerce(entry, child, depth + 1)
        return recovered

    # -- arrays ----------------------------------------------------------------

    def _to_array(self, value: Any, node: SchemaNode, depth: int) -> list[Any]:
        if isinstance(value, str) and _is_bracketed(value):
            try:
                value = parse_value(value)
            except ParseFailure as exc:
                raise StructuralCoercionFailure(f"expected an array, got unparseable text: {exc}") from exc

        if not isinstance(value, list):
            value = self._synthesize_array(value)

        item = node.item or SchemaNode()
        return [self.coerce(element, item, depth + 1) for element in value if element is not None]

    @staticmethod
    def _synthesize_array(value: Any) -> list[Any]:
        if value is None:
            return []
        if isinstance(value, str) and "," in value and not _is_bracketed(value):
            return value.split(",")
        return [value]

    # -- scalars ---------------------------------------------------------------

    def _to_scalar(self, value: Any, node: SchemaNode) -> Any:
        if node.declares(JsonType.NUMBER, JsonType.INTEGER):
            return self._to_number(value)
        if node.declares(JsonType.BOOLEAN):
            return self._to_boolean(value)
        if node.declares(JsonType.STRING):
            return self._to_string(value)
        return value

    @staticmethod
    def _to_number(value: Any) -> Any:
        if isinstance(value, str):
            number = parse_decimal_text(value)
            if number is not None:
                return number
        return value

    @staticmethod
    def _to_boolean(value: Any) -> Any:
        if isinstance(value, str):
            flag = parse_boolean_text(value)
            if flag is not None:
                return flag
        return value

    @staticmethod
    def _to_string(value: Any) -> Any:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, JsonNumber):
            return value.text
        if isinstance(value, (int, float, Decimal)):
            return str(value)
        return value


def coerce(value: Any, node: SchemaNode, max_depth: int = 64) -> Any:
    """Coerce *value* toward *node* with a fresh :class:`SchemaCoercer`."""
    return SchemaCoercer(max_depth=max_depth).coerce(value, node)
