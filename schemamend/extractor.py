# schemamend/extractor.py
"""Locate JSON-shaped regions inside free-form model output.

The scanner walks the text once per attempt, tracking an explicit stack of
expected closers plus a string/escape state so that brackets inside string
literals never affect nesting.  When an attempt cannot complete (a closer
that does not match the innermost opener, or end-of-text with brackets still
open) scanning restarts at the next opening bracket after the abandoned
start.  Stray brackets in prose therefore never hide a later, well-balanced
document.

Usage::

    from schemamend.extractor import iter_candidates, next_candidate

    for candidate in iter_candidates(text):
        print(candidate.start, candidate.span)

    first = next_candidate(text)
    second = next_candidate(first.remainder)
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass

OPENERS = {"{": "}", "[": "]"}
CLOSERS = frozenset(OPENERS.values())

_OPENER_RE = re.compile(r"[{\[]")


@dataclass(frozen=True)
class Candidate:
    """A bracket-balanced region of ``source`` (``source[start:end]``)."""

    source: str
    start: int
    end: int

    @property
    def span(self) -> str:
        return self.source[self.start:self.end]

    @property
    def remainder(self) -> str:
        return self.source[self.end:]

    def __len__(self) -> int:
        return self.end - self.start


def _find_opener(text: str, pos: int) -> int:
    """Index of the first ``{`` or ``[`` at or after *pos*, or -1."""
    match = _OPENER_RE.search(text, pos)
    return match.start() if match else -1


def _scan(text: str, start: int, known: dict[int, int | None]) -> int | None:
    """Scan from the opener at *start*; return the closing index or None.

    Outcomes for nested openers seen outside strings are written to *known*:
    a later restart at one of those positions would replay exactly the same
    characters with the same string state, so its result is already decided.
    """
    stack: list[tuple[str, int]] = []
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        c = text[i]

        if in_string:
            if escaped:
                escaped = False
            elif c == "\\":
                escaped = True
            elif c == '"':
                in_string = False
            continue

        if c == '"':
            in_string = True
        elif c in OPENERS:
            stack.append((OPENERS[c], i))
        elif c in CLOSERS:
            expected, opened_at = stack[-1]
            if c != expected:
                break
            stack.pop()
            if not stack:
                return i
            known[opened_at] = i

    for _, opened_at in stack:
        known[opened_at] = None
    return None


def next_candidate(
    text: str,
    start: int = 0,
    known: dict[int, int | None] | None = None,
) -> Candidate | None:
    """Return the first balanced region of *text* at or after *start*.

    Calling again with ``start=candidate.end`` (or on ``candidate.remainder``)
    yields the following region, so candidates never overlap and come back in
    left-to-right order.  Returns ``None`` when no balanced region remains.

    *known* maps opener positions to their closing index (or ``None``).  An
    outcome depends only on the text from that opener on, so one map can be
    shared across calls on the same text.
    """
    if known is None:
        known = {}
    pos = start

    while True:
        opener = _find_opener(text, pos)
        if opener == -1:
            return None

        if opener in known:
            close = known[opener]
        else:
            close = _scan(text, opener, known)

        if close is not None:
            return Candidate(source=text, start=opener, end=close + 1)
        pos = opener + 1


def iter_candidates(text: str) -> Iterator[Candidate]:
    """Yield every balanced region of *text*, left to right."""
    known: dict[int, int | None] = {}
    pos = 0
    while pos < len(text):
        candidate = next_candidate(text, pos, known)
        if candidate is None:
            return
        yield candidate
        pos = candidate.end


def extract_candidates(text: str, limit: int | None = None) -> list[str]:
    """Candidate substrings in discovery order.

    With *limit*, only the last *limit* candidates are kept.
    """
    spans = [candidate.span for candidate in iter_candidates(text)]
    if limit is not None and len(spans) > limit:
        spans = spans[-limit:]
    return spans
