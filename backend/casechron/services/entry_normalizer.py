"""
Validate candidate entries against the chronology schema.

Candidates arrive as untyped dicts (model output or API payloads) and leave
as either a NormalizedEntry ready for persistence or a RejectedEntry that
names the offending fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional, Union

from casechron.core.logger import logger
from casechron.db.models import EntryCategory
from casechron.utils.validators import normalize_clock_time, parse_entry_date

# Wire key -> attribute name
_FIELD_KEYS = {
    "legalSignificance": "legal_significance",
    "relatedEntries": "related_entries",
    "sourceInfo": "source_info",
}


@dataclass
class NormalizedEntry:
    date: date
    title: str
    summary: str
    time: str = ""
    parties: str = ""
    source: str = ""
    category: Optional[str] = None
    legal_significance: str = ""
    related_entries: str = ""
    source_info: str = ""
    questions: list[str] = field(default_factory=list)

    @property
    def category_conforming(self) -> bool:
        return self.category is None or self.category in EntryCategory.values()

    @property
    def needs_clarification(self) -> bool:
        return bool(self.questions)

    def column_values(self) -> dict[str, Any]:
        """Values for the ChronologyEntry columns."""
        return {
            "date": self.date,
            "time": self.time,
            "parties": self.parties,
            "title": self.title,
            "summary": self.summary,
            "source": self.source,
            "category": self.category,
            "legal_significance": self.legal_significance,
            "related_entries": self.related_entries,
        }

    def to_wire(self) -> dict[str, Any]:
        """Entry in the camelCase shape the analysis contract promises."""
        return {
            "date": self.date.isoformat(),
            "time": self.time,
            "parties": self.parties,
            "title": self.title,
            "summary": self.summary,
            "category": self.category or "",
            "legalSignificance": self.legal_significance,
            "source": self.source,
            "questions": list(self.questions),
            "relatedEntries": self.related_entries,
            "sourceInfo": self.source_info,
        }


@dataclass
class RejectedEntry:
    errors: dict[str, str]
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def reason(self) -> str:
        return "; ".join(f"{key}: {message}" for key, message in self.errors.items())


NormalizationResult = Union[NormalizedEntry, RejectedEntry]


class EntryValidationError(ValueError):
    """Raised when a single entry must be stored but fails validation."""

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(f"{key}: {message}" for key, message in errors.items()))


def _lookup(raw: dict[str, Any], key: str) -> Any:
    """Accept both camelCase wire keys and snake_case attribute names."""
    if key in raw:
        return raw[key]
    snake = _FIELD_KEYS.get(key)
    if snake and snake in raw:
        return raw[snake]
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item).strip() for item in value if str(item).strip())
    return str(value).strip()


def _questions(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [str(q).strip() for q in value if str(q).strip()]


def normalize_entry(raw: Any) -> NormalizationResult:
    if not isinstance(raw, dict):
        return RejectedEntry(errors={"entry": "must be an object"})

    errors: dict[str, str] = {}

    raw_date = _lookup(raw, "date")
    entry_date = parse_entry_date(raw_date)
    if raw_date in (None, ""):
        errors["date"] = "is required"
    elif entry_date is None:
        errors["date"] = f"'{raw_date}' is not a valid YYYY-MM-DD calendar date"

    title = _text(_lookup(raw, "title"))
    if not title:
        errors["title"] = "is required"

    summary = _text(_lookup(raw, "summary"))
    if not summary:
        errors["summary"] = "is required"

    if errors:
        logger.warning("Rejected candidate entry: %s", errors)
        return RejectedEntry(errors=errors, raw=raw)

    category = _text(_lookup(raw, "category")) or None
    entry = NormalizedEntry(
        date=entry_date,
        title=title,
        summary=summary,
        time=normalize_clock_time(_lookup(raw, "time")),
        parties=_text(_lookup(raw, "parties")),
        source=_text(_lookup(raw, "source")),
        category=category,
        legal_significance=_text(_lookup(raw, "legalSignificance")),
        related_entries=_text(_lookup(raw, "relatedEntries")),
        source_info=_text(_lookup(raw, "sourceInfo")),
        questions=_questions(_lookup(raw, "questions")),
    )
    if not entry.category_conforming:
        logger.info("Entry '%s' has non-conforming category '%s'", title[:80], category)
    return entry


def normalize_entries(candidates: list[Any]) -> tuple[list[NormalizedEntry], list[tuple[int, RejectedEntry]]]:
    """Validate each candidate independently; one bad entry never drops the others."""
    accepted: list[NormalizedEntry] = []
    rejected: list[tuple[int, RejectedEntry]] = []
    for index, candidate in enumerate(candidates):
        result = normalize_entry(candidate)
        if isinstance(result, RejectedEntry):
            rejected.append((index, result))
        else:
            accepted.append(result)
    return accepted, rejected


def require_valid_entry(raw: Any) -> NormalizedEntry:
    result = normalize_entry(raw)
    if isinstance(result, RejectedEntry):
        raise EntryValidationError(result.errors)
    return result
