"""
Structured case participants.
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from casechron.api.v1.deps import get_current_user
from casechron.db.database import get_db
from casechron.db.models import Party, User
from casechron.db.schemas import PartyCreate, PartyResponse, PartyUpdate
from casechron.services.case_service import get_accessible_case
from casechron.utils.exceptions import PartyNotFoundError

router = APIRouter()


def _get_party(db: Session, case_id: UUID, party_id: UUID) -> Party:
    party = db.query(Party).filter(Party.id == party_id, Party.case_id == case_id).first()
    if not party:
        raise PartyNotFoundError(str(party_id))
    return party


@router.get("/{case_id}/parties", response_model=List[PartyResponse])
def list_parties(
    case_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_accessible_case(db, case_id, current_user)
    return (
        db.query(Party)
        .filter(Party.case_id == case_id)
        .order_by(Party.role.asc(), Party.name.asc())
        .all()
    )


@router.post("/{case_id}/parties", response_model=PartyResponse, status_code=status.HTTP_201_CREATED)
def create_party(
    case_id: UUID,
    payload: PartyCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_accessible_case(db, case_id, current_user, write=True)
    party = Party(
        case_id=case_id,
        name=payload.name,
        role=payload.role.value,
        description=payload.description,
    )
    db.add(party)
    db.commit()
    db.refresh(party)
    return party


@router.patch("/{case_id}/parties/{party_id}", response_model=PartyResponse)
def update_party(
    case_id: UUID,
    party_id: UUID,
    payload: PartyUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_accessible_case(db, case_id, current_user, write=True)
    party = _get_party(db, case_id, party_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field in ("name", "role"):
            continue
        if field == "role":
            value = value.value
        setattr(party, field, value)
    db.commit()
    db.refresh(party)
    return party


@router.delete("/{case_id}/parties/{party_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_party(
    case_id: UUID,
    party_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_accessible_case(db, case_id, current_user, write=True)
    party = _get_party(db, case_id, party_id)
    db.delete(party)
    db.commit()
    return None
