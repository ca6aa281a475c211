"""
Chronology (timeline) endpoints.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from casechron.api.v1.deps import get_current_user
from casechron.db.database import get_db
from casechron.db.models import Chronology, ChronologyEntry, User
from casechron.db.schemas import ChronologyCreate, ChronologyResponse, ChronologyUpdate
from casechron.services import chronology_service
from casechron.services.case_service import get_accessible_case
from casechron.services.chronology_service import ChronologyError

router = APIRouter()


def _to_response(db: Session, chronology: Chronology, count: Optional[int] = None) -> ChronologyResponse:
    if count is None:
        count = (
            db.query(func.count(ChronologyEntry.id))
            .filter(ChronologyEntry.chronology_id == chronology.id)
            .scalar()
        )
    return ChronologyResponse.model_validate(chronology).model_copy(update={"entries_count": count})


@router.get("/{case_id}/chronologies", response_model=List[ChronologyResponse])
def list_chronologies(
    case_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Default chronology first, then creation order."""
    get_accessible_case(db, case_id, current_user)
    return [
        _to_response(db, chronology, count)
        for chronology, count in chronology_service.list_chronologies(db, case_id)
    ]


@router.post("/{case_id}/chronologies", response_model=ChronologyResponse, status_code=status.HTTP_201_CREATED)
def create_chronology(
    case_id: UUID,
    payload: ChronologyCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_accessible_case(db, case_id, current_user, write=True)
    chronology = chronology_service.create_chronology(
        db,
        case_id,
        current_user.id,
        name=payload.name,
        description=payload.description,
        type=payload.type,
    )
    return _to_response(db, chronology, 0)


@router.get("/{case_id}/chronologies/{chronology_id}", response_model=ChronologyResponse)
def get_chronology(
    case_id: UUID,
    chronology_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_accessible_case(db, case_id, current_user)
    return _to_response(db, chronology_service.get_chronology(db, case_id, chronology_id))


@router.patch("/{case_id}/chronologies/{chronology_id}", response_model=ChronologyResponse)
def update_chronology(
    case_id: UUID,
    chronology_id: UUID,
    payload: ChronologyUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_accessible_case(db, case_id, current_user, write=True)
    chronology = chronology_service.get_chronology(db, case_id, chronology_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if field == "name" and value is None:
            continue
        setattr(chronology, field, value)
    db.commit()
    db.refresh(chronology)
    return _to_response(db, chronology)


@router.post("/{case_id}/chronologies/{chronology_id}/default", response_model=ChronologyResponse)
def set_default_chronology(
    case_id: UUID,
    chronology_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_accessible_case(db, case_id, current_user, write=True)
    chronology = chronology_service.set_default_chronology(db, case_id, chronology_id)
    return _to_response(db, chronology)


@router.delete("/{case_id}/chronologies/{chronology_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_chronology(
    case_id: UUID,
    chronology_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_accessible_case(db, case_id, current_user, write=True)
    try:
        chronology_service.delete_chronology(db, case_id, chronology_id)
    except ChronologyError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return None
