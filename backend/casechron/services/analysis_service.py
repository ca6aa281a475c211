"""
Document-to-chronology analysis: prompt -> inference -> parse -> normalize.

Stateless and request-scoped. InferenceError propagates to the caller; a
malformed reply degrades to an empty result that still carries the raw text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from casechron.core.logger import logger
from casechron.services.entry_normalizer import RejectedEntry, normalize_entries
from casechron.services.inference_client import InferenceClient
from casechron.services.prompt_builder import AnalysisInput, build_analysis_request
from casechron.services.response_parser import parse_response


@dataclass
class AnalysisResult:
    entries: list[dict[str, Any]] = field(default_factory=list)
    raw_response: Optional[str] = None
    error: Optional[str] = None
    rejected: list[tuple[int, RejectedEntry]] = field(default_factory=list)

    @property
    def needs_clarification(self) -> bool:
        return any(entry.get("questions") for entry in self.entries)

    def to_dict(self) -> dict[str, Any]:
        if self.error:
            return {"entries": [], "rawResponse": self.raw_response, "error": self.error}
        return {"entries": self.entries}


class AnalysisService:
    def __init__(self, client: Optional[InferenceClient] = None):
        self._client = client

    @property
    def client(self) -> InferenceClient:
        if self._client is None:
            self._client = InferenceClient()
        return self._client

    def analyze(self, data: AnalysisInput) -> AnalysisResult:
        logger.info(
            "Analyzing %s: content_chars=%d existing_entries=%d",
            data.filename or "<pasted text>",
            len(data.document_text or ""),
            len(data.existing_entries),
        )
        raw = self.client.complete(build_analysis_request(data))

        parsed = parse_response(raw)
        if parsed.failed:
            return AnalysisResult(raw_response=parsed.raw_response, error=parsed.error)

        accepted, rejected = normalize_entries(parsed.entries)
        logger.info(
            "Analysis produced %d entries (%d rejected, recovered=%s)",
            len(accepted),
            len(rejected),
            parsed.recovered,
        )
        return AnalysisResult(
            entries=[entry.to_wire() for entry in accepted],
            rejected=rejected,
        )


def analyze(
    document_text: str,
    filename: Optional[str] = None,
    case_context: Optional[str] = None,
    key_parties: Optional[str] = None,
    instructions: Optional[str] = None,
    user_context: Optional[str] = None,
    existing_entries: Optional[list[dict[str, Any]]] = None,
    client: Optional[InferenceClient] = None,
) -> dict[str, Any]:
    result = AnalysisService(client).analyze(
        AnalysisInput(
            document_text=document_text,
            filename=filename,
            case_context=case_context,
            key_parties=key_parties,
            instructions=instructions,
            user_context=user_context,
            existing_entries=existing_entries or [],
        )
    )
    return result.to_dict()


analysis_service = AnalysisService()
