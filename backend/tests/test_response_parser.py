"""
Unit tests for model reply parsing and recovery.
"""

import json

from casechron.services.response_parser import PARSE_FAILED, parse_response

VALID_ENTRY = {
    "date": "2024-01-15",
    "time": "09:30",
    "parties": "Smith, Jones",
    "title": "Email from Smith to Jones re: Rent",
    "summary": "Smith demanded the January rent.",
    "category": "Communication",
    "legalSignificance": "Notice of default",
    "source": "email.eml",
    "questions": [],
    "relatedEntries": "",
    "sourceInfo": "Plain-text email",
}


class TestParseResponse:
    """Tests for parse_response."""

    def test_exact_json_returns_entries_unchanged(self):
        payload = {"entries": [VALID_ENTRY, dict(VALID_ENTRY, title="Second")]}
        result = parse_response(json.dumps(payload))
        assert not result.failed
        assert result.entries == payload["entries"]
        assert result.recovered is False

    def test_prose_wrapped_json_is_extracted(self):
        raw = "Here you go:\n" + json.dumps({"entries": [VALID_ENTRY]}) + "\nHope that helps!"
        result = parse_response(raw)
        assert result.entries == [VALID_ENTRY]
        assert result.to_dict() == {"entries": [VALID_ENTRY]}

    def test_code_fenced_json_is_extracted(self):
        raw = "```json\n" + json.dumps({"entries": [VALID_ENTRY]}) + "\n```"
        assert parse_response(raw).entries == [VALID_ENTRY]

    def test_no_json_is_terminal_failure(self):
        result = parse_response("I cannot process this.")
        assert result.failed
        assert result.to_dict() == {
            "entries": [],
            "rawResponse": "I cannot process this.",
            "error": PARSE_FAILED,
        }

    def test_none_and_empty_fail_with_raw_text_kept(self):
        assert parse_response(None).to_dict()["rawResponse"] == ""
        assert parse_response("").error == "parse failed"

    def test_braces_inside_strings_do_not_break_scan(self):
        entry = dict(VALID_ENTRY, summary="Tenant wrote {sic} and \"}\" in the margin")
        raw = "Result: " + json.dumps({"entries": [entry]})
        assert parse_response(raw).entries == [entry]

    def test_malformed_wrapper_falls_back_to_inner_object(self):
        inner = json.dumps({"entries": [VALID_ENTRY]})
        raw = '{"note": oops, "payload": ' + inner + "}"
        result = parse_response(raw)
        assert result.entries == [VALID_ENTRY]
        assert result.recovered is True

    def test_object_without_entries_then_valid_object(self):
        raw = '{"status": "ok"} and then ' + json.dumps({"entries": [VALID_ENTRY]})
        result = parse_response(raw)
        assert result.entries == [VALID_ENTRY]

    def test_truncated_reply_keeps_complete_entries(self):
        complete = json.dumps({"entries": [VALID_ENTRY, dict(VALID_ENTRY, title="Cut")]})
        cut_at = complete.rindex('"title": "Cut"')
        result = parse_response(complete[:cut_at])
        assert result.recovered is True
        assert result.entries == [VALID_ENTRY]

    def test_entries_not_a_list_is_failure(self):
        result = parse_response('{"entries": "none"}')
        assert result.failed
        assert result.raw_response == '{"entries": "none"}'
