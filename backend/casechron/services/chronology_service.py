"""
Chronology merge and ordering.

Entries are never ranked explicitly: display order is derived at read time
from (date, time, created_at), so editing a date or time moves an entry
without any re-ranking pass.

Default-chronology changes take a row lock on the owning case so that two
concurrent writers for the same case are serialized. The partial unique
index on chronologies(case_id) WHERE is_default backs this at the
database level.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from casechron.core.logger import logger
from casechron.db.models import Case, Chronology, ChronologyEntry, Document, User
from casechron.services.entry_normalizer import (
    NormalizedEntry,
    RejectedEntry,
    normalize_entries,
    require_valid_entry,
)
from casechron.utils.exceptions import ChronologyNotFoundError

DEFAULT_CHRONOLOGY_NAME = "Main Chronology"
DEFAULT_CHRONOLOGY_TYPE = "general"


class ChronologyError(ValueError):
    """A chronology operation would break the single-default rule."""


@dataclass
class StoredEntry:
    entry: ChronologyEntry
    normalized: NormalizedEntry

    @property
    def questions(self) -> list[str]:
        return self.normalized.questions

    @property
    def needs_clarification(self) -> bool:
        return self.normalized.needs_clarification


# ============================================================================
# Chronologies
# ============================================================================

def _lock_case(db: Session, case_id: UUID) -> Case:
    return db.query(Case).filter(Case.id == case_id).with_for_update().one()


def get_chronology(db: Session, case_id: UUID, chronology_id: UUID) -> Chronology:
    chronology = (
        db.query(Chronology)
        .filter(Chronology.id == chronology_id, Chronology.case_id == case_id)
        .first()
    )
    if not chronology:
        raise ChronologyNotFoundError(str(chronology_id))
    return chronology


def get_default_chronology(db: Session, case_id: UUID) -> Optional[Chronology]:
    return (
        db.query(Chronology)
        .filter(Chronology.case_id == case_id, Chronology.is_default.is_(True))
        .first()
    )


def list_chronologies(db: Session, case_id: UUID) -> list[tuple[Chronology, int]]:
    """Default first, then creation order, each with its entry count."""
    rows = (
        db.query(Chronology, func.count(ChronologyEntry.id))
        .outerjoin(ChronologyEntry, ChronologyEntry.chronology_id == Chronology.id)
        .filter(Chronology.case_id == case_id)
        .group_by(Chronology.id)
        .order_by(Chronology.is_default.desc(), Chronology.created_at.asc())
        .all()
    )
    return [(chronology, count) for chronology, count in rows]


def create_chronology(
    db: Session,
    case_id: UUID,
    user_id: Optional[UUID],
    name: str,
    description: Optional[str] = None,
    type: Optional[str] = None,
) -> Chronology:
    """The first chronology of a case becomes its default."""
    try:
        _lock_case(db, case_id)
        has_default = get_default_chronology(db, case_id) is not None
        chronology = Chronology(
            case_id=case_id,
            user_id=user_id,
            name=name,
            description=description,
            type=type,
            is_default=not has_default,
        )
        db.add(chronology)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(chronology)
    logger.info(
        "Created chronology %s for case %s (default=%s)", chronology.id, case_id, chronology.is_default
    )
    return chronology


def set_default_chronology(db: Session, case_id: UUID, chronology_id: UUID) -> Chronology:
    """
    Clear the flag on every sibling, then set it on the target, in one
    transaction under the case lock.
    """
    try:
        _lock_case(db, case_id)
        target = get_chronology(db, case_id, chronology_id)
        (
            db.query(Chronology)
            .filter(Chronology.case_id == case_id, Chronology.id != target.id)
            .update({Chronology.is_default: False}, synchronize_session="fetch")
        )
        db.flush()
        target.is_default = True
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(target)
    logger.info("Chronology %s is now the default for case %s", chronology_id, case_id)
    return target


def delete_chronology(db: Session, case_id: UUID, chronology_id: UUID) -> None:
    """Entries of a deleted chronology become unassigned, not deleted."""
    chronology = get_chronology(db, case_id, chronology_id)
    if chronology.is_default:
        raise ChronologyError("The default chronology cannot be deleted")
    try:
        (
            db.query(ChronologyEntry)
            .filter(ChronologyEntry.chronology_id == chronology.id)
            .update({ChronologyEntry.chronology_id: None}, synchronize_session="fetch")
        )
        db.delete(chronology)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Deleted chronology %s from case %s", chronology_id, case_id)


def ensure_default_chronology(
    db: Session,
    case_id: UUID,
    user_id: Optional[UUID],
    description: Optional[str] = None,
) -> tuple[Chronology, bool]:
    """Return the case's default chronology and whether it had to be created."""
    existing = get_default_chronology(db, case_id)
    if existing:
        return existing, False
    chronology = create_chronology(
        db,
        case_id,
        user_id,
        name=DEFAULT_CHRONOLOGY_NAME,
        description=description,
        type=DEFAULT_CHRONOLOGY_TYPE,
    )
    return chronology, True


# ============================================================================
# Entries
# ============================================================================

def list_entries(
    db: Session,
    case_id: UUID,
    chronology_id: Optional[UUID] = None,
    descending: bool = False,
) -> list[ChronologyEntry]:
    query = (
        db.query(ChronologyEntry)
        .options(selectinload(ChronologyEntry.documents))
        .filter(ChronologyEntry.case_id == case_id)
    )
    if chronology_id is not None:
        query = query.filter(ChronologyEntry.chronology_id == chronology_id)

    columns = (ChronologyEntry.date, ChronologyEntry.time, ChronologyEntry.created_at)
    if descending:
        query = query.order_by(*(column.desc() for column in columns))
    else:
        query = query.order_by(*(column.asc() for column in columns))
    return query.all()


def get_entry(db: Session, case_id: UUID, entry_id: UUID) -> Optional[ChronologyEntry]:
    return (
        db.query(ChronologyEntry)
        .options(selectinload(ChronologyEntry.documents))
        .filter(ChronologyEntry.id == entry_id, ChronologyEntry.case_id == case_id)
        .first()
    )


def _resolve_chronology_id(db: Session, case_id: UUID, chronology_id: Optional[UUID]) -> Optional[UUID]:
    """Explicit chronology must belong to the case; otherwise use the default, if any."""
    if chronology_id is not None:
        return get_chronology(db, case_id, chronology_id).id
    default = get_default_chronology(db, case_id)
    return default.id if default else None


def link_documents(
    db: Session,
    case_id: UUID,
    entry_id: UUID,
    document_ids: Optional[Sequence[UUID]],
) -> int:
    """
    Point each document of *case_id* listed in *document_ids* at the entry.
    Documents of other cases are skipped without error. Does not commit.
    """
    ids = list(dict.fromkeys(document_ids or []))
    if not ids:
        return 0
    linked = (
        db.query(Document)
        .filter(Document.id.in_(ids), Document.case_id == case_id)
        .update({Document.entry_id: entry_id}, synchronize_session="fetch")
    )
    if linked < len(ids):
        logger.warning(
            "Skipped %d document(s) outside case %s when linking entry %s",
            len(ids) - linked,
            case_id,
            entry_id,
        )
    logger.info("Linked %d document(s) to entry %s", linked, entry_id)
    return linked


def _new_entry(
    case_id: UUID,
    chronology_id: Optional[UUID],
    user_id: Optional[UUID],
    normalized: NormalizedEntry,
) -> ChronologyEntry:
    return ChronologyEntry(
        case_id=case_id,
        chronology_id=chronology_id,
        user_id=user_id,
        **normalized.column_values(),
    )


def create_entry(
    db: Session,
    case_id: UUID,
    fields: dict[str, Any],
    chronology_id: Optional[UUID] = None,
    document_ids: Optional[Sequence[UUID]] = None,
    user: Optional[User] = None,
) -> StoredEntry:
    """
    Validate *fields* and store one entry. Raises EntryValidationError when
    the candidate is rejected; nothing is written in that case.
    """
    normalized = require_valid_entry(fields)
    target_chronology = _resolve_chronology_id(db, case_id, chronology_id)
    try:
        entry = _new_entry(case_id, target_chronology, user.id if user else None, normalized)
        db.add(entry)
        db.flush()
        link_documents(db, case_id, entry.id, document_ids)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(entry)
    logger.info("Created entry %s in case %s (chronology=%s)", entry.id, case_id, target_chronology)
    return StoredEntry(entry=entry, normalized=normalized)


def create_entries(
    db: Session,
    case_id: UUID,
    candidates: list[Any],
    chronology_id: Optional[UUID] = None,
    user: Optional[User] = None,
) -> tuple[list[StoredEntry], list[tuple[int, RejectedEntry]]]:
    """Store every valid candidate; invalid ones are returned with their index."""
    accepted, rejected = normalize_entries(candidates)
    target_chronology = _resolve_chronology_id(db, case_id, chronology_id)
    stored: list[StoredEntry] = []
    try:
        for normalized in accepted:
            entry = _new_entry(case_id, target_chronology, user.id if user else None, normalized)
            db.add(entry)
            stored.append(StoredEntry(entry=entry, normalized=normalized))
        db.commit()
    except Exception:
        db.rollback()
        raise
    for item in stored:
        db.refresh(item.entry)
    logger.info(
        "Bulk insert into case %s: %d created, %d rejected", case_id, len(stored), len(rejected)
    )
    return stored, rejected


def _entry_as_fields(entry: ChronologyEntry) -> dict[str, Any]:
    return {
        "date": entry.date,
        "time": entry.time,
        "parties": entry.parties,
        "title": entry.title,
        "summary": entry.summary,
        "source": entry.source,
        "category": entry.category,
        "legalSignificance": entry.legal_significance,
        "relatedEntries": entry.related_entries,
    }


def update_entry(
    db: Session,
    entry: ChronologyEntry,
    changes: dict[str, Any],
    chronology_id: Optional[UUID] = None,
    document_ids: Optional[Sequence[UUID]] = None,
) -> StoredEntry:
    """Merge *changes* over the stored values and re-validate the result."""
    merged = _entry_as_fields(entry)
    merged.update(changes)
    normalized = require_valid_entry(merged)
    try:
        for column, value in normalized.column_values().items():
            setattr(entry, column, value)
        if chronology_id is not None:
            entry.chronology_id = get_chronology(db, entry.case_id, chronology_id).id
        link_documents(db, entry.case_id, entry.id, document_ids)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(entry)
    return StoredEntry(entry=entry, normalized=normalized)


def delete_entry(db: Session, entry: ChronologyEntry) -> None:
    entry_id = entry.id
    try:
        db.delete(entry)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Deleted entry %s", entry_id)


def attach_unassigned_entries(db: Session, case_id: UUID, chronology_id: UUID) -> int:
    try:
        moved = (
            db.query(ChronologyEntry)
            .filter(ChronologyEntry.case_id == case_id, ChronologyEntry.chronology_id.is_(None))
            .update({ChronologyEntry.chronology_id: chronology_id}, synchronize_session="fetch")
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return moved
