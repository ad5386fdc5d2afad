# schemamend/recovery.py
"""Recover typed values from free-form model output.

Flow for :func:`recover`:

1. Decode the raw text directly.  Well-formed output is returned untouched.
2. Otherwise collect every bracket-balanced candidate from the text, then
   append the raw text itself as the lowest-priority candidate (bare scalar
   answers such as ``"1234"`` have no brackets at all).
3. Walk the candidates from the last one found to the first: models that
   think out loud restate earlier guesses before the final answer, so the
   rightmost region is the most authoritative.  Each candidate is parsed,
   coerced against the schema tree and decoded; any recovery-stage error
   just moves on to the next candidate.
4. When every candidate is exhausted the result has ``ok=False``.  "Could
   not recover" is a normal outcome, never an exception.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Generic, Literal, Optional, TypeVar

from .coercer import SchemaCoercer
from .config import SchemamendConfig, get_config
from .decoder import Decoder, DecodeOptions, PydanticDecoder
from .errors import NoDocumentFound, RecoveryError
from .extractor import extract_candidates
from .schema import SchemaNode, schema_for
from .utils.logging import log_candidate_attempt, log_recovery_complete, log_text_content
from .values import dumps_value, parse_value

logger = logging.getLogger(__name__)

T = TypeVar("T")

DIRECT = -1


@dataclass(frozen=True)
class CandidateAttempt:
    """Why one candidate (or the direct decode, ``index == -1``) was abandoned."""

    index: int
    stage: str
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"index": self.index, "stage": self.stage, "error": self.error}


@dataclass(frozen=True)
class RecoveryResult(Generic[T]):
    """Outcome of :func:`recover`."""

    ok: bool
    value: Optional[T] = None
    source: Optional[Literal["direct", "candidate"]] = None
    candidate: Optional[str] = None
    attempts: list[CandidateAttempt] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.ok


def gather_candidates(raw_text: str, limit: Optional[int] = None) -> list[str]:
    """Candidates in try-last-first order: extracted regions, then the raw text.

    The returned list is in discovery order; the raw text (stripped) is put
    first so that reverse iteration reaches it last.  Regions identical to
    the raw text are not repeated.
    """
    stripped = raw_text.strip()
    extracted = [span for span in extract_candidates(raw_text, limit=limit) if span != stripped]
    if not stripped:
        return extracted
    return [stripped, *extracted]


class Recovery(Generic[T]):
    """Reusable recovery pipeline for one target type.

    Builds the schema tree and decoder once; :meth:`run` is then a pure
    function of the raw text and safe to call from many threads.
    """

    def __init__(
        self,
        target: Any,
        *,
        schema: Any = None,
        options: Optional[DecodeOptions] = None,
        decoder: Optional[Decoder[T]] = None,
        config: Optional[SchemamendConfig] = None,
    ) -> None:
        self.config = config or get_config()
        self.target = target
        self.schema: SchemaNode = schema_for(target if schema is None else schema)
        self.options = options or DecodeOptions.from_config(self.config)
        self.decoder: Decoder[T] = decoder or PydanticDecoder(
            target, schema=self.schema, options=self.options
        )
        self.coercer = SchemaCoercer(max_depth=self.config.max_depth)

    @property
    def target_name(self) -> str:
        return getattr(self.target, "__name__", None) or repr(self.target)

    def run(self, raw_text: str) -> RecoveryResult[T]:
        attempts: list[CandidateAttempt] = []
        log_text_content(logger, "model output", raw_text)

        if len(raw_text) > self.config.max_input_chars:
            logger.warning(
                "Input of %d chars exceeds max_input_chars=%d; not scanning",
                len(raw_text),
                self.config.max_input_chars,
            )
            attempts.append(
                CandidateAttempt(DIRECT, NoDocumentFound.stage, "input exceeds max_input_chars")
            )
            return self._failed(attempts)

        try:
            value = self.decoder.decode(raw_text)
        except RecoveryError as exc:
            attempts.append(CandidateAttempt(DIRECT, exc.stage, str(exc)))
            log_candidate_attempt(logger, DIRECT, exc.stage, str(exc))
        else:
            log_recovery_complete(logger, self.target_name, True, source="direct")
            return RecoveryResult(ok=True, value=value, source="direct")

        candidates = gather_candidates(raw_text, limit=self.config.max_candidates)
        if not candidates:
            attempts.append(CandidateAttempt(DIRECT, NoDocumentFound.stage, "no candidate documents"))
            return self._failed(attempts)

        for index in reversed(range(len(candidates))):
            candidate = candidates[index]
            try:
                value = self._attempt(candidate)
            except RecoveryError as exc:
                attempts.append(CandidateAttempt(index, exc.stage, str(exc)))
                log_candidate_attempt(logger, index, exc.stage, str(exc))
                continue
            log_candidate_attempt(logger, index, "decode")
            log_recovery_complete(
                logger, self.target_name, True, source="candidate", attempts=len(attempts)
            )
            return RecoveryResult(
                ok=True, value=value, source="candidate", candidate=candidate, attempts=attempts
            )

        return self._failed(attempts)

    def _attempt(self, candidate: str) -> T:
        parsed = parse_value(candidate)
        fixed = self.coercer.coerce(parsed, self.schema)
        return self.decoder.decode(dumps_value(fixed))

    def _failed(self, attempts: list[CandidateAttempt]) -> RecoveryResult[T]:
        log_recovery_complete(logger, self.target_name, False, attempts=len(attempts))
        return RecoveryResult(ok=False, attempts=attempts)


def recover(
    raw_text: str,
    target: Any,
    *,
    schema: Any = None,
    options: Optional[DecodeOptions] = None,
    decoder: Optional[Decoder[Any]] = None,
    config: Optional[SchemamendConfig] = None,
) -> RecoveryResult[Any]:
    """Recover a value of *target* from free-form *raw_text*.

    Parameters
    ----------
    raw_text:
        Model output, possibly wrapped in prose, markdown or reasoning.
    target:
        Any type pydantic can validate (a ``BaseModel`` subclass, ``int``,
        ``list[str]``, ...).
    schema:
        Override for the schema tree: a :class:`SchemaNode` or a JSON Schema
        mapping.  Defaults to the schema generated from *target*.
    options:
        Decode options; defaults come from the configuration.
    decoder:
        Replacement final decoder.
    """
    recovery: Recovery[Any] = Recovery(
        target, schema=schema, options=options, decoder=decoder, config=config
    )
    return recovery.run(raw_text)


def try_recover(raw_text: str, target: Any, **kwargs: Any) -> tuple[bool, Any]:
    """``(ok, value)`` form of :func:`recover`."""
    result = recover(raw_text, target, **kwargs)
    return result.ok, result.value


def recover_value(raw_text: str, target: Any, **kwargs: Any) -> Any:
    """The recovered value, or ``None`` when nothing could be recovered."""
    return recover(raw_text, target, **kwargs).value
