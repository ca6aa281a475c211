"""
Prompt assembly for chronology extraction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from casechron.core.config import settings
from casechron.db.models import EntryCategory
from casechron.services.inference_client import InferenceRequest

ENTRY_FIELDS = (
    "date",
    "time",
    "parties",
    "title",
    "summary",
    "category",
    "legalSignificance",
    "source",
    "questions",
    "relatedEntries",
    "sourceInfo",
)


@dataclass
class AnalysisInput:
    document_text: str
    filename: Optional[str] = None
    case_context: Optional[str] = None
    key_parties: Optional[str] = None
    instructions: Optional[str] = None
    user_context: Optional[str] = None
    existing_entries: list[dict[str, Any]] = field(default_factory=list)


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def build_case_context_block(
    case_context: Optional[str],
    key_parties: Optional[str],
    instructions: Optional[str],
) -> str:
    lines = []
    if _clean(case_context):
        lines.append(f"Case Overview: {_clean(case_context)}")
    if _clean(key_parties):
        lines.append(f"Key Parties: {_clean(key_parties)}")
    if _clean(instructions):
        lines.append(f"Special Instructions: {_clean(instructions)}")
    if not lines:
        return ""
    return "CASE CONTEXT:\n" + "\n".join(lines)


def build_existing_entries_block(
    existing_entries: list[dict[str, Any]],
    summary_chars: Optional[int] = None,
) -> str:
    """
    Compact view of the current timeline. Only date, time, title and a
    summary prefix are echoed back.
    """
    if not existing_entries:
        return ""
    limit = summary_chars if summary_chars is not None else settings.EXISTING_ENTRY_SUMMARY_CHARS
    lines = []
    for entry in existing_entries:
        when = " ".join(
            part for part in (str(entry.get("date") or "").strip(), _clean(entry.get("time"))) if part
        )
        summary = _clean(entry.get("summary"))
        prefix = summary[:limit]
        if len(summary) > limit:
            prefix += "..."
        lines.append(f"{when} - {_clean(entry.get('title'))}: {prefix}")
    return "EXISTING CHRONOLOGY CONTEXT:\n" + "\n".join(lines)


def build_output_contract() -> str:
    categories = ", ".join(EntryCategory.values())
    return (
        "Please provide a JSON response with the following structure:\n"
        "{\n"
        '  "entries": [\n'
        "    {\n"
        '      "date": "YYYY-MM-DD format",\n'
        '      "time": "HH:MM format if available, otherwise empty string",\n'
        '      "parties": "comma-separated list of parties involved",\n'
        '      "title": "Event title in format: [Document Type] from [Party] to [Party] re: [Subject] or similar",\n'
        '      "summary": "Factual summary of what occurred - be precise and objective",\n'
        f'      "category": "Choose from: {categories}",\n'
        '      "legalSignificance": "Analysis of potential legal significance in context of litigation",\n'
        '      "source": "Document name or reference",\n'
        '      "questions": ["Array of clarifying questions if context is unclear or if you need more information"],\n'
        '      "relatedEntries": "Suggested connections to existing chronology entries if applicable",\n'
        '      "sourceInfo": "Details about the document source, file type, and any metadata"\n'
        "    }\n"
        "  ]\n"
        "}\n"
        f"Each entry must contain exactly these keys: {', '.join(ENTRY_FIELDS)}."
    )


def build_analysis_prompt(data: AnalysisInput) -> str:
    sections = [
        "You are assisting with litigation chronology development. Please analyze the "
        "following document/information and create chronology entries."
    ]

    context_block = build_case_context_block(data.case_context, data.key_parties, data.instructions)
    if context_block:
        sections.append(context_block)

    sections.append(f"DOCUMENT/INFORMATION TO ANALYZE:\n{data.document_text}")

    if _clean(data.filename):
        sections.append(f"FILENAME: {_clean(data.filename)}")
    if _clean(data.user_context):
        sections.append(f"USER CONTEXT: {_clean(data.user_context)}")

    existing_block = build_existing_entries_block(data.existing_entries)
    if existing_block:
        sections.append(existing_block)

    sections.append(
        "INSTRUCTIONS:\n"
        "- Use the case context above to better understand the legal significance of events\n"
        "- Consider how this document/event relates to the key legal issues and parties mentioned\n"
        "- For emails, extract sender, recipient, date, subject, and body content\n"
        "- Text in square brackets starting with an error label means the file could not be "
        "processed; ask for the missing details instead of guessing\n"
        "- For image descriptions, rely on the metadata and visual analysis provided\n"
        "- Create separate entries for distinct events, or one entry if they describe a single event\n"
        "- Pay attention to timestamps, metadata, and document headers\n"
        "- Consider the document source (email, legal filing, public record, etc.) in your analysis\n"
        "- Follow any special instructions provided in the case context"
    )
    sections.append(build_output_contract())
    sections.append(
        "IMPORTANT:\n"
        "- If you are unsure about dates, parties, context, or relevance, do not guess: "
        'include specific questions in the "questions" array\n'
        "- Be thorough but concise in your analysis\n"
        "- Respond ONLY with valid JSON. Do not include any text outside the JSON structure"
    )
    return "\n\n".join(sections)


def build_analysis_request(data: AnalysisInput) -> InferenceRequest:
    return InferenceRequest(
        prompt=build_analysis_prompt(data),
        max_tokens=settings.ANALYSIS_MAX_TOKENS,
        temperature=settings.ANALYSIS_TEMPERATURE,
    )
