"""
Custom exception classes
"""
from fastapi import HTTPException


class CaseNotFoundError(HTTPException):
    """Raised when a case doesn't exist or the user has no access to it"""
    def __init__(self, case_id: str):
        super().__init__(
            status_code=404,
            detail=f"Case {case_id} not found"
        )


class ChronologyNotFoundError(HTTPException):
    """Raised when a chronology doesn't exist within the case"""
    def __init__(self, chronology_id: str):
        super().__init__(
            status_code=404,
            detail=f"Chronology {chronology_id} not found"
        )


class EntryNotFoundError(HTTPException):
    """Raised when a chronology entry doesn't exist within the case"""
    def __init__(self, entry_id: str):
        super().__init__(
            status_code=404,
            detail=f"Entry {entry_id} not found"
        )


class PartyNotFoundError(HTTPException):
    """Raised when a party doesn't exist within the case"""
    def __init__(self, party_id: str):
        super().__init__(
            status_code=404,
            detail=f"Party {party_id} not found"
        )


class DocumentNotFoundError(HTTPException):
    """Raised when document doesn't exist"""
    def __init__(self, document_id: str):
        super().__init__(
            status_code=404,
            detail=f"Document {document_id} not found"
        )


class UploadFailedError(HTTPException):
    """Raised when S3 upload fails"""
    def __init__(self, reason: str = "Unknown error"):
        super().__init__(
            status_code=500,
            detail=f"Upload failed: {reason}"
        )


class AIServiceError(HTTPException):
    """Raised when AI service fails"""
    def __init__(self, reason: str = "AI service unavailable"):
        super().__init__(
            status_code=503,
            detail=f"AI service error: {reason}"
        )
