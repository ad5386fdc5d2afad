# schemamend/arguments.py
"""Argument-level repair for tool calls.

When a model calls a tool it sends a flat mapping of already-deserialized
arguments, and the same type slips happen there: ``"yes"`` for a bool,
``"3"`` for an int, ``1234`` for a zip-code string.  :func:`coerce_arguments`
repairs each declared parameter independently through :func:`recover`;
:func:`with_argument_repair` wraps a callable so that happens on every call.
"""

from __future__ import annotations

import functools
import inspect
import logging
import typing
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from .config import SchemamendConfig
from .errors import SchemaDefinitionError
from .recovery import recover
from .schema import json_schema_of
from .values import dumps_value

logger = logging.getLogger(__name__)

_REPAIRED_FLAG = "__schemamend_repaired__"


@dataclass
class ArgumentCoercion:
    """Best-effort corrected arguments.

    ``ok`` is False when at least one argument could not be repaired and was
    passed through unchanged.
    """

    arguments: dict[str, Any] = field(default_factory=dict)
    ok: bool = True
    failed: list[str] = field(default_factory=list)


def _already_matches(value: Any, annotation: Any) -> bool:
    if annotation is Any:
        return True
    return isinstance(annotation, type) and type(value) is annotation


def coerce_arguments(
    arguments: Mapping[str, Any],
    parameters: Mapping[str, Any],
    *,
    config: Optional[SchemamendConfig] = None,
) -> ArgumentCoercion:
    """Coerce each declared parameter present in *arguments* to its type.

    *parameters* maps parameter name to target type.  Undeclared arguments
    are dropped; declared parameters missing from *arguments* are omitted.
    """
    result = ArgumentCoercion()

    for name, annotation in parameters.items():
        if name not in arguments:
            continue
        value = arguments[name]

        if value is None or _already_matches(value, annotation):
            result.arguments[name] = value
            continue

        try:
            recovered = recover(dumps_value(value), annotation, config=config)
        except (TypeError, ValueError) as exc:
            logger.debug("argument %r is not JSON serializable: %s", name, exc)
            recovered = None

        if recovered is not None and recovered.ok:
            result.arguments[name] = recovered.value
        else:
            logger.debug("argument %r kept unchanged; no %r could be recovered", name, annotation)
            result.arguments[name] = value
            result.ok = False
            result.failed.append(name)

    return result


def parameters_of(func: Callable[..., Any]) -> dict[str, Any]:
    """Data parameters of *func*: name to annotated type.

    Skips ``self``/``cls``, ``*args``/``**kwargs`` and parameters whose type
    has no JSON Schema form (events, locks and other call plumbing).
    """
    try:
        hints = typing.get_type_hints(func, include_extras=True)
    except (NameError, TypeError):
        hints = {}

    parameters: dict[str, Any] = {}
    for name, param in inspect.signature(func).parameters.items():
        if name in ("self", "cls"):
            continue
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        annotation = hints.get(name, param.annotation)
        if annotation is inspect.Parameter.empty:
            annotation = Any
        try:
            json_schema_of(annotation)
        except SchemaDefinitionError:
            logger.debug("parameter %r of %s is not data; skipped", name, func.__qualname__)
            continue
        parameters[name] = annotation
    return parameters


def parameters_json_schema(func: Callable[..., Any]) -> dict[str, Any]:
    """JSON Schema object describing the data parameters of *func*."""
    signature = inspect.signature(func)
    properties: dict[str, Any] = {}
    definitions: dict[str, Any] = {}
    required: list[str] = []

    for name, annotation in parameters_of(func).items():
        schema = json_schema_of(annotation)
        definitions.update(schema.pop("$defs", {}))
        properties[name] = schema
        if signature.parameters[name].default is inspect.Parameter.empty:
            required.append(name)

    document: dict[str, Any] = {"type": "object", "properties": properties, "required": required}
    if definitions:
        document["$defs"] = definitions
    return document


def with_argument_repair(func: Callable[..., Any]) -> Callable[..., Any]:
    """Wrap *func* so keyword arguments are repaired before each call.

    The repaired set is used only when every argument could be repaired;
    otherwise the call goes through with the arguments as given.  Wrapping
    an already wrapped function returns it unchanged.
    """
    if getattr(func, _REPAIRED_FLAG, False):
        return func

    parameters = parameters_of(func)

    def _repair(kwargs: dict[str, Any]) -> dict[str, Any]:
        repaired = coerce_arguments(kwargs, parameters)
        if not repaired.ok:
            logger.debug("calling %s with unrepaired arguments %s", func.__qualname__, repaired.failed)
            return kwargs
        return {**kwargs, **repaired.arguments}

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            return await func(*args, **_repair(kwargs))

        wrapper: Any = async_wrapper
    else:
        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            return func(*args, **_repair(kwargs))

        wrapper = sync_wrapper

    wrapper.parameters = parameters
    wrapper.json_schema = functools.partial(parameters_json_schema, func)
    setattr(wrapper, _REPAIRED_FLAG, True)
    return wrapper
