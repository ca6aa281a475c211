"""
Document upload, extraction and retrieval.

Files in one upload are processed one at a time, each in a worker thread so
extraction and inference never block the event loop. A failure on one file is
reported in its own result and never aborts the rest of the batch.
"""
import asyncio
from typing import List, Optional
from uuid import UUID

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from casechron.api.v1.deps import get_current_user
from casechron.core.config import settings
from casechron.core.logger import logger
from casechron.db.database import get_db
from casechron.db.models import ChronologyEntry, Document, User
from casechron.db.schemas import DocumentResponse, DocumentUploadResponse, UploadedFileResult
from casechron.services.case_service import get_accessible_case
from casechron.services.content_extractor import content_extractor
from casechron.services.s3_service import s3_service
from casechron.utils.exceptions import (
    CaseNotFoundError,
    DocumentNotFoundError,
    EntryNotFoundError,
    UploadFailedError,
)
from casechron.utils.helpers import utc_now_iso

router = APIRouter()


def _get_document(db: Session, document_id: UUID, user: User, write: bool = False) -> Document:
    document = db.query(Document).filter(Document.id == document_id).first()
    if not document:
        raise DocumentNotFoundError(str(document_id))
    try:
        get_accessible_case(db, document.case_id, user, write=write)
    except CaseNotFoundError:
        raise DocumentNotFoundError(str(document_id))
    return document


def _build_metadata(filename: str, s3_key: str, exif: Optional[dict]) -> dict:
    metadata = {"originalName": filename, "uploadedAt": utc_now_iso()}
    public_url = s3_service.public_url(s3_key)
    if public_url:
        metadata["publicUrl"] = public_url
    if exif:
        metadata["exif"] = exif
    return metadata


def _process_file(
    db: Session,
    case_id: UUID,
    user: User,
    filename: str,
    content_type: str,
    data: bytes,
    entry_id: Optional[UUID],
) -> UploadedFileResult:
    result = UploadedFileResult(name=filename, file_size=len(data), file_type=content_type)

    if len(data) > settings.MAX_UPLOAD_BYTES:
        result.error = f"File exceeds the {settings.MAX_UPLOAD_BYTES} byte upload limit"
        return result

    extracted = content_extractor.extract(data, filename, content_type)
    result.content = extracted.text

    s3_key = s3_service.build_document_key(case_id, filename)
    try:
        s3_service.put_object(
            s3_key,
            data,
            content_type=content_type,
            metadata={"case_id": str(case_id), "uploaded_by": str(user.id)},
        )
    except (ClientError, BotoCoreError) as e:
        result.error = UploadFailedError(str(e)).detail
        return result

    document = Document(
        case_id=case_id,
        entry_id=entry_id,
        user_id=user.id,
        filename=filename,
        file_type=content_type,
        file_size=len(data),
        s3_key=s3_key,
        s3_bucket=s3_service.bucket,
        content=extracted.text,
        doc_metadata=_build_metadata(filename, s3_key, extracted.exif),
    )
    try:
        db.add(document)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(document)
    result.document_id = document.id
    return result


@router.post(
    "/cases/{case_id}/documents",
    response_model=DocumentUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_documents(
    case_id: UUID,
    files: List[UploadFile] = File(...),
    entry_id: Optional[UUID] = Form(None, alias="entryId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_accessible_case(db, case_id, current_user, write=True)
    if not files:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No files uploaded")

    if entry_id is not None:
        entry = (
            db.query(ChronologyEntry)
            .filter(ChronologyEntry.id == entry_id, ChronologyEntry.case_id == case_id)
            .first()
        )
        if not entry:
            raise EntryNotFoundError(str(entry_id))

    results: List[UploadedFileResult] = []
    for upload in files:
        filename = upload.filename or "upload"
        content_type = upload.content_type or "application/octet-stream"
        data = await upload.read()
        try:
            result = await asyncio.to_thread(
                _process_file, db, case_id, current_user, filename, content_type, data, entry_id
            )
        except Exception as e:
            logger.exception("Unexpected failure processing %s", filename)
            result = UploadedFileResult(
                name=filename, file_size=len(data), file_type=content_type, error=str(e)
            )
        if result.error:
            logger.warning("Upload of %s to case %s failed: %s", filename, case_id, result.error)
        results.append(result)

    logger.info(
        "Processed %d file(s) for case %s (%d failed)",
        len(results),
        case_id,
        sum(1 for r in results if r.error),
    )
    return DocumentUploadResponse(success=True, files=results)


@router.get("/cases/{case_id}/documents", response_model=List[DocumentResponse])
def list_documents(
    case_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_accessible_case(db, case_id, current_user)
    return (
        db.query(Document)
        .filter(Document.case_id == case_id)
        .order_by(Document.created_at.desc())
        .all()
    )


@router.get("/documents/{document_id}", response_model=DocumentResponse)
def get_document(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _get_document(db, document_id, current_user)


@router.get("/documents/{document_id}/view-url")
def get_document_view_url(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    document = _get_document(db, document_id, current_user)
    try:
        url = s3_service.generate_download_url(document.s3_key, bucket=document.s3_bucket)
    except ClientError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Could not sign URL: {e}")
    return {"url": url, "expiresIn": settings.DOWNLOAD_URL_EXPIRES_SECONDS}


@router.delete("/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    document = _get_document(db, document_id, current_user, write=True)
    try:
        s3_service.delete_object(document.s3_key, bucket=document.s3_bucket)
    except ClientError:
        logger.warning("Stored object %s could not be deleted; removing record anyway", document.s3_key)
    db.delete(document)
    db.commit()
    return None
