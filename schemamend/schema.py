# schemamend/schema.py
"""Schema nodes: the read-only description of a target shape.

A :class:`SchemaNode` tree is built once per target, either from a JSON
Schema document (:meth:`SchemaNode.from_json_schema`) or from any type
pydantic can describe (:func:`schema_for`).  ``$ref`` definitions are inlined
and ``anyOf``/``oneOf``/``allOf`` unions are folded into a single node whose
``declared_types`` lists every acceptable JSON type, e.g. a nullable string
becomes ``{string, null}``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from functools import lru_cache
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.errors import PydanticSchemaGenerationError, PydanticUserError

from .errors import SchemaDefinitionError

logger = logging.getLogger(__name__)


class JsonType(str, Enum):
    NULL = "null"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


_PYTHON_KINDS: tuple[tuple[type, JsonType], ...] = (
    (bool, JsonType.BOOLEAN),
    (int, JsonType.INTEGER),
    (float, JsonType.NUMBER),
    (str, JsonType.STRING),
    (list, JsonType.ARRAY),
    (dict, JsonType.OBJECT),
)

_UNION_KEYS = ("anyOf", "oneOf", "allOf")


class SchemaNode(BaseModel):
    """One position in a target shape."""

    model_config = ConfigDict(frozen=True)

    declared_types: frozenset[JsonType] = frozenset()
    properties: dict[str, SchemaNode] = Field(default_factory=dict)
    required: frozenset[str] = frozenset()
    item: Optional[SchemaNode] = None
    additional: Optional[SchemaNode] = None
    description: Optional[str] = None

    @property
    def is_any(self) -> bool:
        """True when the node accepts any value unchanged."""
        return not self.declared_types

    def declares(self, *types: JsonType) -> bool:
        return any(t in self.declared_types for t in types)

    def property_for(self, key: str) -> tuple[str, SchemaNode] | None:
        """Match *key* against ``properties`` ignoring case.

        Returns the canonical property name with its node, or ``None``.
        An exact match wins over a case-folded one.
        """
        if key in self.properties:
            return key, self.properties[key]
        folded = key.casefold()
        for name, child in self.properties.items():
            if name.casefold() == folded:
                return name, child
        return None

    @classmethod
    def from_json_schema(cls, document: Mapping[str, Any] | bool) -> SchemaNode:
        """Build a node tree from a JSON Schema document.

        ``$ref`` pointers resolve against the document itself, so both
        ``$defs`` and legacy ``definitions`` sections work.
        """
        if isinstance(document, Mapping):
            return _build(document, document, ())
        return cls()


# ---------------------------------------------------------------------------
# JSON Schema -> SchemaNode
# ---------------------------------------------------------------------------


def _resolve_ref(root: Mapping[str, Any], ref: str) -> Mapping[str, Any] | bool:
    if not ref.startswith("#"):
        raise SchemaDefinitionError(f"Only local $ref values are supported, got {ref!r}")
    target: Any = root
    for part in ref[1:].split("/"):
        if not part:
            continue
        part = part.replace("~1", "/").replace("~0", "~")
        if not isinstance(target, Mapping) or part not in target:
            raise SchemaDefinitionError(f"Unresolvable $ref {ref!r}")
        target = target[part]
    if not isinstance(target, (Mapping, bool)):
        raise SchemaDefinitionError(f"$ref {ref!r} does not point at a schema")
    return target


def _types_of_values(values: list[Any]) -> set[JsonType]:
    found: set[JsonType] = set()
    for value in values:
        if value is None:
            found.add(JsonType.NULL)
            continue
        for python_type, json_type in _PYTHON_KINDS:
            if isinstance(value, python_type):
                found.add(json_type)
                break
    return found


def _merge(nodes: list[SchemaNode], description: str | None) -> SchemaNode:
    types: set[JsonType] = set()
    properties: dict[str, SchemaNode] = {}
    required: set[str] = set()
    item = None
    additional = None
    for node in nodes:
        types.update(node.declared_types)
        for name, child in node.properties.items():
            properties.setdefault(name, child)
        required.update(node.required)
        item = item or node.item
        additional = additional or node.additional
    return SchemaNode(
        declared_types=frozenset(types),
        properties=properties,
        required=frozenset(required),
        item=item,
        additional=additional,
        description=description,
    )


def _build(doc: Mapping[str, Any] | bool, root: Mapping[str, Any], resolving: tuple[str, ...]) -> SchemaNode:
    if not isinstance(doc, Mapping):
        return SchemaNode()

    ref = doc.get("$ref")
    if isinstance(ref, str):
        if ref in resolving:
            raise SchemaDefinitionError(
                f"Recursive schema reference {ref!r}; recursive shapes are not supported"
            )
        target = _resolve_ref(root, ref)
        merged = dict(target) if isinstance(target, Mapping) else {}
        merged.update({k: v for k, v in doc.items() if k != "$ref"})
        return _build(merged, root, resolving + (ref,))

    description = doc.get("description")
    branches: list[SchemaNode] = []

    raw_type = doc.get("type")
    types: set[JsonType] = set()
    if isinstance(raw_type, str):
        raw_type = [raw_type]
    for name in raw_type or ():
        try:
            types.add(JsonType(name))
        except ValueError:
            raise SchemaDefinitionError(f"Unknown JSON Schema type {name!r}") from None

    if not types:
        if "enum" in doc:
            types = _types_of_values(list(doc["enum"]))
        elif "const" in doc:
            types = _types_of_values([doc["const"]])
        elif "properties" in doc:
            types = {JsonType.OBJECT}
        elif "items" in doc or "prefixItems" in doc:
            types = {JsonType.ARRAY}

    properties = {
        name: _build(sub, root, resolving)
        for name, sub in (doc.get("properties") or {}).items()
    }

    item = None
    if JsonType.ARRAY in types:
        items = doc.get("items")
        prefix = doc.get("prefixItems")
        if isinstance(items, list):
            prefix, items = items, None
        if isinstance(items, Mapping):
            item = _build(items, root, resolving)
        elif prefix:
            item = _merge([_build(sub, root, resolving) for sub in prefix], None)
        else:
            item = SchemaNode()

    additional = None
    extra = doc.get("additionalProperties")
    if isinstance(extra, Mapping):
        additional = _build(extra, root, resolving)

    node = SchemaNode(
        declared_types=frozenset(types),
        properties=properties,
        required=frozenset(doc.get("required") or ()),
        item=item,
        additional=additional,
        description=description,
    )

    for key in _UNION_KEYS:
        for sub in doc.get(key) or ():
            branches.append(_build(sub, root, resolving))

    if not branches:
        return node
    return _merge([node, *branches], description)


# ---------------------------------------------------------------------------
# Python types -> SchemaNode
# ---------------------------------------------------------------------------


def json_schema_of(target: Any) -> dict[str, Any]:
    """JSON Schema for any type pydantic's ``TypeAdapter`` understands."""
    try:
        return TypeAdapter(target).json_schema()
    except (PydanticSchemaGenerationError, PydanticUserError) as exc:
        raise SchemaDefinitionError(f"Cannot describe {target!r} as JSON Schema: {exc}") from exc


@lru_cache(maxsize=256)
def _cached_schema_for(target: Any) -> SchemaNode:
    return SchemaNode.from_json_schema(json_schema_of(target))


def schema_for(target: Any) -> SchemaNode:
    """Return the schema tree for *target*.

    *target* may be a :class:`SchemaNode` (returned as is), a JSON Schema
    mapping, or a Python type / pydantic model.
    """
    if isinstance(target, SchemaNode):
        return target
    if isinstance(target, Mapping):
        return SchemaNode.from_json_schema(target)
    try:
        return _cached_schema_for(target)
    except TypeError:
        # Unhashable targets (e.g. Annotated with mutable metadata) skip the cache.
        logger.debug("schema cache bypassed for unhashable target %r", target)
        return SchemaNode.from_json_schema(json_schema_of(target))
