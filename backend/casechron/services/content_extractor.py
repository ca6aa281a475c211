"""
Turn uploaded file bytes into text for the chronology prompt.

Dispatch is by extension first, then declared MIME type:

    .docx / .doc      -> python-docx paragraphs
    .txt / .eml       -> UTF-8 text, unparsed
    .pdf              -> pypdf or AWS Textract (PDF_PARSER)
    images            -> EXIF metadata + vision description
    anything else     -> unsupported placeholder

Extraction never raises. Failures come back as bracketed placeholder text
so one bad file cannot block the rest of an upload batch.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Any, Optional

import boto3
from docx import Document as DocxDocument
from pypdf import PdfReader

from casechron.core.config import settings
from casechron.core.logger import logger
from casechron.services.metadata_extractor import extract_image_metadata
from casechron.services.vision_service import VisionService, image_placeholder, vision_service
from casechron.utils.helpers import file_extension

OFFICE_EXTENSIONS = {".doc", ".docx"}
TEXT_EXTENSIONS = {".txt", ".eml"}
PDF_EXTENSIONS = {".pdf"}
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp", ".tif", ".tiff"}

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def processing_placeholder(filename: str) -> str:
    return f"[Processing Error] Unable to process file: {filename}"


def pdf_placeholder(filename: str) -> str:
    return (
        f"[PDF Processing Error] Unable to process PDF: {filename}. "
        "Please copy and paste the content manually."
    )


def unsupported_placeholder(filename: str) -> str:
    return f"[Unsupported File Type] Unable to process file: {filename}"


@dataclass
class ExtractedContent:
    text: str
    kind: str
    exif: Optional[dict[str, Any]] = None
    failed: bool = False


def detect_kind(filename: str, mime_type: Optional[str]) -> str:
    ext = file_extension(filename)
    if ext in OFFICE_EXTENSIONS:
        return "office"
    if ext in TEXT_EXTENSIONS:
        return "text"
    if ext in PDF_EXTENSIONS:
        return "pdf"
    if ext in IMAGE_EXTENSIONS:
        return "image"

    mime = (mime_type or "").lower()
    if mime in (DOCX_MIME, "application/msword"):
        return "office"
    if mime in ("text/plain", "message/rfc822"):
        return "text"
    if mime == "application/pdf":
        return "pdf"
    if mime.startswith("image/"):
        return "image"
    return "unsupported"


def _extract_docx(data: bytes) -> str:
    doc = DocxDocument(io.BytesIO(data))
    paragraphs = [p.text for p in doc.paragraphs if p.text.strip()]
    for table in doc.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                paragraphs.append(" | ".join(cells))
    return "\n\n".join(paragraphs)


def _extract_pdf_pypdf(data: bytes) -> str:
    reader = PdfReader(io.BytesIO(data))
    pages = [(page.extract_text() or "").strip() for page in reader.pages]
    return "\n\n".join(page for page in pages if page)


class TextractParser:
    """Synchronous Textract text detection for PDFs sent inline."""

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "textract",
                region_name=settings.AWS_REGION,
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
            )
        return self._client

    def extract(self, data: bytes) -> str:
        response = self.client.detect_document_text(Document={"Bytes": data})
        lines = [
            block.get("Text", "")
            for block in response.get("Blocks", [])
            if block.get("BlockType") == "LINE"
        ]
        return "\n".join(line for line in lines if line)


class ContentExtractor:
    def __init__(
        self,
        vision: Optional[VisionService] = None,
        textract: Optional[TextractParser] = None,
    ):
        self.vision = vision or vision_service
        self.textract = textract or TextractParser()

    def extract(self, data: bytes, filename: str, mime_type: Optional[str] = None) -> ExtractedContent:
        kind = detect_kind(filename, mime_type)
        logger.info("Extracting %s (%s, %d bytes) as %s", filename, mime_type, len(data), kind)

        if kind == "office":
            return self._office(data, filename)
        if kind == "text":
            return ExtractedContent(text=data.decode("utf-8", errors="replace"), kind=kind)
        if kind == "pdf":
            return self._pdf(data, filename)
        if kind == "image":
            return self._image(data, filename, mime_type)

        logger.warning("Unsupported file type for %s", filename)
        return ExtractedContent(text=unsupported_placeholder(filename), kind=kind, failed=True)

    def _office(self, data: bytes, filename: str) -> ExtractedContent:
        try:
            text = _extract_docx(data)
        except Exception as exc:
            logger.warning("Office extraction failed for %s: %s", filename, exc)
            return ExtractedContent(text=processing_placeholder(filename), kind="office", failed=True)
        return ExtractedContent(text=text, kind="office")

    def _pdf(self, data: bytes, filename: str) -> ExtractedContent:
        parser = settings.pdf_parser
        try:
            if parser == "pypdf":
                text = _extract_pdf_pypdf(data)
            elif parser == "textract":
                text = self.textract.extract(data)
            else:
                logger.warning("No PDF parser configured; returning placeholder for %s", filename)
                text = ""
        except Exception as exc:
            logger.warning("PDF extraction failed for %s: %s", filename, exc)
            text = ""

        if not text.strip():
            return ExtractedContent(text=pdf_placeholder(filename), kind="pdf", failed=True)
        return ExtractedContent(text=text, kind="pdf")

    def _image(self, data: bytes, filename: str, mime_type: Optional[str]) -> ExtractedContent:
        exif = extract_image_metadata(data)
        text = self.vision.describe(data, filename, mime_type, exif)
        return ExtractedContent(
            text=text,
            kind="image",
            exif=exif,
            failed=text == image_placeholder(filename),
        )


content_extractor = ContentExtractor()
