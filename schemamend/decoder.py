# schemamend/decoder.py
"""Final strong-typed decoding of (corrected) JSON text.

The recovery loop treats the decoder as an oracle: it hands over canonical
JSON text and gets back either a typed value or a :class:`FinalDecodeFailure`.
:class:`PydanticDecoder` is the default and validates through a pydantic
``TypeAdapter``; any object with a compatible ``decode`` method can replace it.
"""

from __future__ import annotations

from typing import Any, Generic, Optional, Protocol, TypeVar

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from .config import SchemamendConfig, get_config
from .errors import FinalDecodeFailure, ParseFailure
from .schema import SchemaNode, schema_for
from .values import dumps_value, parse_value

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


class DecodeOptions(BaseModel):
    """Options for the final decode.

    ``case_insensitive`` folds object keys onto the schema's property names
    before validation.  ``strict`` disables pydantic's own lax conversions,
    so type repairs only ever come from the coercer.
    """

    model_config = ConfigDict(frozen=True)

    case_insensitive: bool = True
    strict: bool = True

    @classmethod
    def from_config(cls, config: Optional[SchemamendConfig] = None) -> DecodeOptions:
        cfg = config or get_config()
        return cls(case_insensitive=cfg.case_insensitive, strict=cfg.strict_decode)


class Decoder(Protocol[T_co]):
    def decode(self, json_text: str) -> T_co: ...


def fold_keys(value: Any, node: SchemaNode) -> Any:
    """Rename object keys to the schema's property names, ignoring case.

    Only keys change; values are left exactly as they are.  Keys with no
    matching property are kept under their original spelling.
    """
    if isinstance(value, dict):
        folded: dict[str, Any] = {}
        for key, child_value in value.items():
            matched = node.property_for(key)
            if matched is not None:
                name, child = matched
                folded[name] = fold_keys(child_value, child)
            elif node.additional is not None:
                folded[key] = fold_keys(child_value, node.additional)
            else:
                folded[key] = child_value
        return folded
    if isinstance(value, list) and node.item is not None:
        return [fold_keys(element, node.item) for element in value]
    return value


class PydanticDecoder(Generic[T]):
    """Validate JSON text into *target* with a pydantic ``TypeAdapter``."""

    def __init__(
        self,
        target: Any,
        *,
        schema: Optional[SchemaNode] = None,
        options: Optional[DecodeOptions] = None,
    ) -> None:
        self.target = target
        self.options = options or DecodeOptions.from_config()
        self._adapter: TypeAdapter[T] = TypeAdapter(target)
        self._schema = schema

    @property
    def schema(self) -> SchemaNode:
        if self._schema is None:
            self._schema = schema_for(self.target)
        return self._schema

    def decode(self, json_text: str) -> T:
        if self.options.case_insensitive:
            try:
                json_text = dumps_value(fold_keys(parse_value(json_text), self.schema))
            except ParseFailure as exc:
                raise FinalDecodeFailure(str(exc)) from exc

        try:
            return self._adapter.validate_json(json_text, strict=self.options.strict)
        except ValidationError as exc:
            raise FinalDecodeFailure(
                f"{exc.error_count()} validation error(s) for {_target_name(self.target)}: "
                f"{exc.errors(include_url=False)[0]['msg']}",
                errors=exc.errors(include_url=False, include_input=False),
            ) from exc


def _target_name(target: Any) -> str:
    return getattr(target, "__name__", None) or repr(target)
