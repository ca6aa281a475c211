"""
Case endpoints: CRUD, prompt context and sharing.
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from casechron.api.v1.deps import get_current_user
from casechron.core.logger import logger
from casechron.db.database import get_db
from casechron.db.models import Case, CaseShare, User
from casechron.db.schemas import (
    CaseCreate,
    CaseResponse,
    CaseShareCreate,
    CaseShareResponse,
    CaseUpdate,
)
from casechron.services.case_service import (
    get_accessible_case,
    get_owned_case,
    list_accessible_cases,
)

router = APIRouter()


@router.get("", response_model=List[CaseResponse])
def list_cases(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Cases the user owns or has been granted."""
    return list_accessible_cases(db, current_user)


@router.post("", response_model=CaseResponse, status_code=status.HTTP_201_CREATED)
def create_case(
    payload: CaseCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    case = Case(user_id=current_user.id, **payload.model_dump())
    db.add(case)
    db.commit()
    db.refresh(case)
    logger.info("Case %s created by %s", case.id, current_user.id)
    return case


@router.get("/{case_id}", response_model=CaseResponse)
def get_case(
    case_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_accessible_case(db, case_id, current_user)


@router.patch("/{case_id}", response_model=CaseResponse)
def update_case(
    case_id: UUID,
    payload: CaseUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Partial merge: only fields present in the body are written, so repeating
    the same save is harmless.
    """
    case = get_accessible_case(db, case_id, current_user, write=True)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if field == "name" and value is None:
            continue
        setattr(case, field, value)
    db.commit()
    db.refresh(case)
    return case


@router.delete("/{case_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_case(
    case_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    case = get_owned_case(db, case_id, current_user)
    db.delete(case)
    db.commit()
    logger.info("Case %s deleted by %s", case_id, current_user.id)
    return None


# ============================================================================
# Sharing
# ============================================================================

@router.get("/{case_id}/shares", response_model=List[CaseShareResponse])
def list_shares(
    case_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    case = get_owned_case(db, case_id, current_user)
    return case.shares


@router.post("/{case_id}/shares", response_model=CaseShareResponse, status_code=status.HTTP_201_CREATED)
def share_case(
    case_id: UUID,
    payload: CaseShareCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_owned_case(db, case_id, current_user)
    if payload.user_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot share a case with its owner")
    if not db.query(User).filter(User.id == payload.user_id).first():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    share = (
        db.query(CaseShare)
        .filter(CaseShare.case_id == case_id, CaseShare.user_id == payload.user_id)
        .first()
    )
    if share:
        share.permission = payload.permission.value
    else:
        share = CaseShare(case_id=case_id, user_id=payload.user_id, permission=payload.permission.value)
        db.add(share)
    db.commit()
    db.refresh(share)
    return share


@router.delete("/{case_id}/shares/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_share(
    case_id: UUID,
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_owned_case(db, case_id, current_user)
    share = (
        db.query(CaseShare)
        .filter(CaseShare.case_id == case_id, CaseShare.user_id == user_id)
        .first()
    )
    if not share:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Share not found")
    db.delete(share)
    db.commit()
    return None
