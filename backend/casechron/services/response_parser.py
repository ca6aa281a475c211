"""
Recover the `entries` payload from a model reply.

The model is told to answer with JSON only but sometimes wraps the object in
prose, code fences, or runs out of tokens mid-array. Parsing is attempted in
order of increasing effort:

1. the first balanced ``{...}`` span in the text;
2. every other balanced span (outer-most first), which picks up valid inner
   JSON behind a malformed wrapper;
3. a truncated object closed off after its last complete element.

When nothing yields an ``entries`` array the caller gets an explicit failure
that still carries the raw reply for manual recovery.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from casechron.core.logger import logger

PARSE_FAILED = "parse failed"

_CLOSERS = {"{": "}", "[": "]"}


@dataclass
class ParseResult:
    entries: list[Any] = field(default_factory=list)
    raw_response: Optional[str] = None
    error: Optional[str] = None
    recovered: bool = False

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        if self.failed:
            return {"entries": [], "rawResponse": self.raw_response, "error": self.error}
        return {"entries": self.entries}


def _scan(text: str, start: int) -> tuple[Optional[int], list[str], Optional[int], list[str]]:
    """
    Walk from the opening brace at *start* honouring JSON string escapes.

    Returns (end, stack, safe_end, safe_stack): *end* is the index of the
    matching close brace or None when the text runs out first; *safe_end* is
    the index just past the last nested container that closed while the
    outer object was still open, with the stack at that point.
    """
    stack: list[str] = []
    in_string = False
    escaped = False
    safe_end: Optional[int] = None
    safe_stack: list[str] = []

    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in _CLOSERS:
            stack.append(char)
        elif char in ("}", "]"):
            if not stack or _CLOSERS[stack[-1]] != char:
                return None, stack, safe_end, safe_stack
            stack.pop()
            if not stack:
                return index, stack, safe_end, safe_stack
            safe_end = index + 1
            safe_stack = list(stack)

    return None, stack, safe_end, safe_stack


def _balanced_span(text: str, start: int) -> Optional[str]:
    end, _, _, _ = _scan(text, start)
    if end is None:
        return None
    return text[start:end + 1]


def _iter_spans(text: str) -> Iterator[str]:
    index = text.find("{")
    while index != -1:
        span = _balanced_span(text, index)
        if span is not None:
            yield span
        index = text.find("{", index + 1)


def _entries_of(candidate: Optional[str]) -> Optional[list[Any]]:
    if not candidate:
        return None
    try:
        parsed = json.loads(candidate)
    except (json.JSONDecodeError, ValueError):
        return None
    if isinstance(parsed, dict) and isinstance(parsed.get("entries"), list):
        return parsed["entries"]
    return None


def _close_truncated(text: str) -> Optional[str]:
    start = text.find("{")
    if start == -1:
        return None
    end, _, safe_end, safe_stack = _scan(text, start)
    if end is not None or safe_end is None:
        return None
    closers = "".join(_CLOSERS[opener] for opener in reversed(safe_stack))
    return text[start:safe_end] + closers


def parse_response(raw: Optional[str]) -> ParseResult:
    text = raw or ""

    # Pass 1: first balanced object
    first = text.find("{")
    if first != -1:
        entries = _entries_of(_balanced_span(text, first))
        if entries is not None:
            logger.info("Parsed %d candidate entries from model response", len(entries))
            return ParseResult(entries=entries)

    # Pass 2: any other balanced object, then the widest first-to-last brace slice
    last = text.rfind("}")
    widest = text[first:last + 1] if first != -1 and last > first else None
    for candidate in [*_iter_spans(text), widest]:
        entries = _entries_of(candidate)
        if entries is not None:
            logger.warning(
                "Recovered %d entries from a non-conforming model response", len(entries)
            )
            return ParseResult(entries=entries, recovered=True)

    # Pass 3: truncated output
    entries = _entries_of(_close_truncated(text))
    if entries is not None:
        logger.warning("Recovered %d entries from a truncated model response", len(entries))
        return ParseResult(entries=entries, recovered=True)

    logger.warning("Could not parse model response: %s", text[:500])
    return ParseResult(entries=[], raw_response=text, error=PARSE_FAILED)
