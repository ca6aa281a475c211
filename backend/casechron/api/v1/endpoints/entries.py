"""
Chronology entry endpoints.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from casechron.api.v1.deps import get_current_user
from casechron.db.database import get_db
from casechron.db.models import User
from casechron.db.schemas import (
    EntryBulkCreate,
    EntryBulkResponse,
    EntryCreate,
    EntryCreateResponse,
    EntryResponse,
    RejectedEntryResponse,
)
from casechron.services import chronology_service
from casechron.services.case_service import get_accessible_case
from casechron.services.chronology_service import StoredEntry
from casechron.services.entry_normalizer import EntryValidationError
from casechron.utils.exceptions import EntryNotFoundError

router = APIRouter()

_LINK_FIELDS = {"chronology_id", "document_ids"}


def _stored_response(stored: StoredEntry) -> EntryCreateResponse:
    return EntryCreateResponse.model_validate(stored.entry).model_copy(
        update={
            "questions": stored.questions,
            "needs_clarification": stored.needs_clarification,
        }
    )


def _validation_failed(e: EntryValidationError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"message": "Entry validation failed", "errors": e.errors},
    )


@router.get("/{case_id}/entries", response_model=List[EntryResponse])
def list_entries(
    case_id: UUID,
    chronology_id: Optional[UUID] = Query(None, alias="chronologyId"),
    order: str = Query("asc", pattern="^(asc|desc)$"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Ordered by date, then time, then creation."""
    get_accessible_case(db, case_id, current_user)
    if chronology_id is not None:
        chronology_service.get_chronology(db, case_id, chronology_id)
    return chronology_service.list_entries(
        db, case_id, chronology_id=chronology_id, descending=order == "desc"
    )


@router.post("/{case_id}/entries", response_model=EntryCreateResponse, status_code=status.HTTP_201_CREATED)
def create_entry(
    case_id: UUID,
    payload: EntryCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_accessible_case(db, case_id, current_user, write=True)
    fields = payload.model_dump(by_alias=True, exclude=_LINK_FIELDS, exclude_none=True)
    try:
        stored = chronology_service.create_entry(
            db,
            case_id,
            fields,
            chronology_id=payload.chronology_id,
            document_ids=payload.document_ids,
            user=current_user,
        )
    except EntryValidationError as e:
        raise _validation_failed(e)
    return _stored_response(stored)


@router.post("/{case_id}/entries/bulk", response_model=EntryBulkResponse, status_code=status.HTTP_201_CREATED)
def create_entries_bulk(
    case_id: UUID,
    payload: EntryBulkCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Each candidate is validated on its own; bad ones come back in `rejected`."""
    get_accessible_case(db, case_id, current_user, write=True)
    stored, rejected = chronology_service.create_entries(
        db,
        case_id,
        payload.entries,
        chronology_id=payload.chronology_id,
        user=current_user,
    )
    return EntryBulkResponse(
        created=[_stored_response(item) for item in stored],
        rejected=[
            RejectedEntryResponse(index=index, errors=item.errors, entry=item.raw)
            for index, item in rejected
        ],
    )


@router.get("/{case_id}/entries/{entry_id}", response_model=EntryResponse)
def get_entry(
    case_id: UUID,
    entry_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_accessible_case(db, case_id, current_user)
    entry = chronology_service.get_entry(db, case_id, entry_id)
    if not entry:
        raise EntryNotFoundError(str(entry_id))
    return entry


@router.patch("/{case_id}/entries/{entry_id}", response_model=EntryCreateResponse)
def update_entry(
    case_id: UUID,
    entry_id: UUID,
    payload: EntryCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_accessible_case(db, case_id, current_user, write=True)
    entry = chronology_service.get_entry(db, case_id, entry_id)
    if not entry:
        raise EntryNotFoundError(str(entry_id))

    changes = payload.model_dump(by_alias=True, exclude=_LINK_FIELDS, exclude_unset=True)
    try:
        stored = chronology_service.update_entry(
            db,
            entry,
            changes,
            chronology_id=payload.chronology_id,
            document_ids=payload.document_ids,
        )
    except EntryValidationError as e:
        raise _validation_failed(e)
    return _stored_response(stored)


@router.delete("/{case_id}/entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_entry(
    case_id: UUID,
    entry_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_accessible_case(db, case_id, current_user, write=True)
    entry = chronology_service.get_entry(db, case_id, entry_id)
    if not entry:
        raise EntryNotFoundError(str(entry_id))
    chronology_service.delete_entry(db, entry)
    return None
