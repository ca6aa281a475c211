"""
Chronology analysis endpoints.

`/analysis/analyze` is the stateless form used by the chronology UI: the
client sends the document text plus whatever context it has. The case-bound
form reads the context, the current timeline and stored document text from
the database instead.
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from casechron.api.v1.deps import get_current_user
from casechron.core.logger import logger
from casechron.db.database import get_db
from casechron.db.models import Document, User
from casechron.db.schemas import (
    AnalyzeRequest,
    AnalyzeResponse,
    CaseAnalyzeRequest,
    RejectedEntryResponse,
)
from casechron.services import chronology_service
from casechron.services.analysis_service import AnalysisResult, analysis_service
from casechron.services.case_service import get_accessible_case
from casechron.services.inference_client import InferenceError
from casechron.services.prompt_builder import AnalysisInput
from casechron.utils.exceptions import AIServiceError

router = APIRouter()


def _run(data: AnalysisInput) -> AnalyzeResponse:
    try:
        result: AnalysisResult = analysis_service.analyze(data)
    except InferenceError as e:
        logger.error("Analysis failed: %s", e)
        raise AIServiceError(str(e))

    return AnalyzeResponse(
        entries=result.entries,
        rawResponse=result.raw_response,
        error=result.error,
        rejected=[
            RejectedEntryResponse(index=index, errors=item.errors, entry=item.raw)
            for index, item in result.rejected
        ],
        needsClarification=result.needs_clarification,
    )


@router.post("/analysis/analyze", response_model=AnalyzeResponse)
def analyze_document(
    payload: AnalyzeRequest,
    current_user: User = Depends(get_current_user),
):
    if not payload.content or not payload.content.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No content provided")

    return _run(
        AnalysisInput(
            document_text=payload.content,
            filename=payload.filename,
            case_context=payload.caseContext,
            key_parties=payload.keyParties,
            instructions=payload.instructions,
            user_context=payload.userContext,
            existing_entries=[entry.model_dump() for entry in payload.existingEntries],
        )
    )


def _documents_text(documents: List[Document]) -> str:
    if len(documents) == 1:
        return documents[0].content or ""
    return "\n\n".join(
        f"--- {document.filename} ---\n{document.content or ''}" for document in documents
    )


@router.post("/cases/{case_id}/analyze", response_model=AnalyzeResponse)
def analyze_for_case(
    case_id: UUID,
    payload: CaseAnalyzeRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    case = get_accessible_case(db, case_id, current_user)

    content = payload.content or ""
    filename = payload.filename
    if not content.strip() and payload.document_ids:
        documents = (
            db.query(Document)
            .filter(Document.id.in_(payload.document_ids), Document.case_id == case_id)
            .order_by(Document.created_at.asc())
            .all()
        )
        content = _documents_text(documents)
        if not filename and documents:
            filename = ", ".join(document.filename for document in documents)

    if not content.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No content provided")

    if payload.chronology_id is not None:
        chronology_service.get_chronology(db, case_id, payload.chronology_id)
    existing = chronology_service.list_entries(db, case_id, chronology_id=payload.chronology_id)

    return _run(
        AnalysisInput(
            document_text=content,
            filename=filename,
            case_context=case.context,
            key_parties=case.key_parties,
            instructions=case.instructions,
            user_context=payload.user_context,
            existing_entries=[
                {
                    "date": entry.date.isoformat(),
                    "time": entry.time,
                    "title": entry.title,
                    "summary": entry.summary,
                }
                for entry in existing
            ],
        )
    )
