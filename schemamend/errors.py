# schemamend/errors.py
"""Exception taxonomy for the recovery engine.

Recovery-stage errors are expected outcomes: the orchestrator catches them
per candidate and moves on.  Only :class:`SchemaDefinitionError` escapes to
callers, because it signals a target type that cannot be described at all.
"""

from __future__ import annotations


class SchemamendError(Exception):
    """Base class for all schemamend errors."""


class SchemaDefinitionError(SchemamendError):
    """Raised when a target shape cannot be turned into a schema tree."""


class RecoveryError(SchemamendError):
    """A candidate could not be turned into a value of the target shape."""

    stage = "recovery"


class NoDocumentFound(RecoveryError):
    """The text holds no bracket-balanced region worth trying."""

    stage = "extract"


class ParseFailure(RecoveryError, ValueError):
    """Candidate text is not a valid JSON document."""

    stage = "parse"


class StructuralCoercionFailure(RecoveryError, ValueError):
    """An object or array target could not be produced from the value."""

    stage = "coerce"


class CoercionDepthExceeded(StructuralCoercionFailure):
    """Coercion recursed deeper than the configured ceiling."""


class FinalDecodeFailure(RecoveryError):
    """The corrected document still does not satisfy the target type."""

    stage = "decode"

    def __init__(self, message: str, *, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []
