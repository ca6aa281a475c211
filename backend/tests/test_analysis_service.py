"""
Unit tests for the analysis pipeline with a mocked inference client.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import NoRegionError

from casechron.services.analysis_service import AnalysisService, analyze
from casechron.services.inference_client import InferenceError
from casechron.services.prompt_builder import AnalysisInput


def reply(*entries) -> str:
    return json.dumps({"entries": list(entries)})


GOOD = {
    "date": "2024-02-01",
    "time": "14:00",
    "parties": "Smith, Jones",
    "title": "Notice of default from Smith to Jones",
    "summary": "Smith served a notice of default.",
    "category": "Legal Filing",
    "legalSignificance": "Starts the cure period",
    "source": "notice.pdf",
    "questions": [],
    "relatedEntries": "",
    "sourceInfo": "PDF",
}


class TestAnalysisService:
    @pytest.fixture
    def client(self):
        return MagicMock()

    @pytest.fixture
    def service(self, client):
        return AnalysisService(client=client)

    def test_valid_reply_returns_entries(self, service, client):
        client.complete.return_value = reply(GOOD)
        result = service.analyze(AnalysisInput(document_text="Notice text"))
        assert result.error is None
        assert result.entries == [GOOD]
        assert result.to_dict() == {"entries": [GOOD]}
        client.complete.assert_called_once()

    def test_invalid_candidates_are_rejected_individually(self, service, client):
        client.complete.return_value = reply(GOOD, dict(GOOD, date="sometime in March"))
        result = service.analyze(AnalysisInput(document_text="text"))
        assert len(result.entries) == 1
        assert [index for index, _ in result.rejected] == [1]

    def test_questions_raise_clarification_signal(self, service, client):
        client.complete.return_value = reply(dict(GOOD, questions=["Was the notice mailed or hand delivered?"]))
        result = service.analyze(AnalysisInput(document_text="text"))
        assert result.needs_clarification is True
        assert result.entries[0]["questions"] == ["Was the notice mailed or hand delivered?"]

    def test_parse_failure_keeps_raw_text(self, service, client):
        client.complete.return_value = "I cannot process this."
        result = service.analyze(AnalysisInput(document_text="text"))
        assert result.to_dict() == {
            "entries": [],
            "rawResponse": "I cannot process this.",
            "error": "parse failed",
        }

    def test_inference_failure_propagates(self, service, client):
        client.complete.side_effect = InferenceError("AccessDenied")
        with pytest.raises(InferenceError):
            service.analyze(AnalysisInput(document_text="text"))

    def test_prompt_carries_existing_entries(self, service, client):
        client.complete.return_value = reply()
        service.analyze(
            AnalysisInput(
                document_text="text",
                existing_entries=[{"date": "2024-01-01", "title": "Lease", "summary": "Signed"}],
            )
        )
        request = client.complete.call_args.args[0]
        assert "2024-01-01 - Lease: Signed" in request.prompt


class TestAnalyzeFunction:
    def test_module_level_analyze(self):
        client = MagicMock()
        client.complete.return_value = "Sure!\n" + reply(GOOD) + "\nLet me know."
        result = analyze("Notice text", filename="notice.pdf", case_context="Lease", client=client)
        assert result == {"entries": [GOOD]}

    def test_client_setup_failure_is_an_inference_failure(self):
        with patch(
            "casechron.services.inference_client.boto3.client",
            side_effect=NoRegionError(),
        ):
            with pytest.raises(InferenceError):
                AnalysisService().analyze(AnalysisInput(document_text="text"))
