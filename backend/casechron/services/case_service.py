"""
Case-scoped access checks.

Every case-level operation resolves its case through here first. A missing
case and a case the caller may not see are indistinguishable: both raise
CaseNotFoundError.
"""
from typing import List
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from casechron.db.models import Case, CaseShare, SharePermission, User
from casechron.utils.exceptions import CaseNotFoundError


def accessible_cases_query(db: Session, user: User):
    shared_ids = db.query(CaseShare.case_id).filter(CaseShare.user_id == user.id)
    return db.query(Case).filter(or_(Case.user_id == user.id, Case.id.in_(shared_ids)))


def list_accessible_cases(db: Session, user: User) -> List[Case]:
    return accessible_cases_query(db, user).order_by(Case.updated_at.desc()).all()


def get_accessible_case(db: Session, case_id: UUID, user: User, write: bool = False) -> Case:
    """
    Resolve *case_id* for *user*. Owners always pass; shared users need a
    write grant when *write* is set.
    """
    case = db.query(Case).filter(Case.id == case_id).first()
    if not case:
        raise CaseNotFoundError(str(case_id))
    if case.user_id == user.id:
        return case

    share = (
        db.query(CaseShare)
        .filter(CaseShare.case_id == case_id, CaseShare.user_id == user.id)
        .first()
    )
    if not share:
        raise CaseNotFoundError(str(case_id))
    if write and share.permission != SharePermission.write.value:
        raise CaseNotFoundError(str(case_id))
    return case


def get_owned_case(db: Session, case_id: UUID, user: User) -> Case:
    case = db.query(Case).filter(Case.id == case_id, Case.user_id == user.id).first()
    if not case:
        raise CaseNotFoundError(str(case_id))
    return case
