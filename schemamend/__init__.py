"""
schemamend - recover well-typed structured data from free-form model output.

Main Components:
    - schemamend.extractor: bracket-balanced candidate extraction from text
    - schemamend.coercer: schema-guided repair of primitive type mismatches
    - schemamend.recovery: the orchestrator tying extraction, repair and decode
    - schemamend.arguments: the same repair applied to tool-call arguments
"""

from .arguments import ArgumentCoercion, coerce_arguments, parameters_of, with_argument_repair
from .coercer import SchemaCoercer, coerce
from .decoder import DecodeOptions, PydanticDecoder
from .errors import (
    CoercionDepthExceeded,
    FinalDecodeFailure,
    NoDocumentFound,
    ParseFailure,
    RecoveryError,
    SchemaDefinitionError,
    SchemamendError,
    StructuralCoercionFailure,
)
from .extractor import Candidate, extract_candidates, iter_candidates, next_candidate
from .recovery import CandidateAttempt, Recovery, RecoveryResult, recover, recover_value, try_recover
from .schema import JsonType, SchemaNode, schema_for

__version__ = "1.0.0"

__all__ = [
    "ArgumentCoercion",
    "Candidate",
    "CandidateAttempt",
    "CoercionDepthExceeded",
    "DecodeOptions",
    "FinalDecodeFailure",
    "JsonType",
    "NoDocumentFound",
    "ParseFailure",
    "PydanticDecoder",
    "Recovery",
    "RecoveryError",
    "RecoveryResult",
    "SchemaCoercer",
    "SchemaDefinitionError",
    "SchemaNode",
    "SchemamendError",
    "StructuralCoercionFailure",
    "coerce",
    "coerce_arguments",
    "extract_candidates",
    "iter_candidates",
    "next_candidate",
    "parameters_of",
    "recover",
    "recover_value",
    "schema_for",
    "try_recover",
    "with_argument_repair",
]
