"""
Unit tests for candidate entry validation.
"""

import random
from datetime import date

import pytest

from casechron.services.entry_normalizer import (
    EntryValidationError,
    NormalizedEntry,
    RejectedEntry,
    normalize_entries,
    normalize_entry,
    require_valid_entry,
)


def candidate(**overrides):
    entry = {
        "date": "2024-03-01",
        "title": "Lease signed",
        "summary": "Smith and Jones executed the lease.",
    }
    entry.update(overrides)
    return entry


class TestNormalizeEntry:
    """Tests for normalize_entry."""

    def test_minimal_entry_gets_empty_string_defaults(self):
        result = normalize_entry(candidate())
        assert isinstance(result, NormalizedEntry)
        assert result.date == date(2024, 3, 1)
        assert result.time == ""
        assert result.source == ""
        assert result.legal_significance == ""
        assert result.related_entries == ""
        assert result.category is None
        assert result.category_conforming is True

    @pytest.mark.parametrize(
        "bad_date",
        ["2024-02-30", "03/01/2024", "March 1, 2024", "2024-3-1", "2024-13-01", "unknown", 20240301],
    )
    def test_unparsable_date_is_rejected(self, bad_date):
        result = normalize_entry(candidate(date=bad_date))
        assert isinstance(result, RejectedEntry)
        assert "date" in result.errors

    def test_missing_required_fields_are_all_reported(self):
        result = normalize_entry({"time": "10:00"})
        assert isinstance(result, RejectedEntry)
        assert set(result.errors) == {"date", "title", "summary"}

    def test_blank_title_is_rejected(self):
        result = normalize_entry(candidate(title="   "))
        assert isinstance(result, RejectedEntry)
        assert result.errors == {"title": "is required"}

    def test_non_object_candidate_is_rejected(self):
        assert isinstance(normalize_entry(["not", "a", "dict"]), RejectedEntry)

    def test_unknown_category_is_kept_but_flagged(self):
        result = normalize_entry(candidate(category="Correspondence"))
        assert isinstance(result, NormalizedEntry)
        assert result.category == "Correspondence"
        assert result.category_conforming is False

    def test_known_category_conforms(self):
        result = normalize_entry(candidate(category="Meeting/Conference"))
        assert result.category_conforming is True

    def test_parties_list_is_joined_verbatim(self):
        result = normalize_entry(candidate(parties=["Smith", "Jones LLC"]))
        assert result.parties == "Smith, Jones LLC"

    def test_parties_string_is_not_resolved(self):
        result = normalize_entry(candidate(parties="Smith; Jones"))
        assert result.parties == "Smith; Jones"

    def test_questions_signal_clarification(self):
        result = normalize_entry(candidate(questions=["Which lease version?", " "]))
        assert result.questions == ["Which lease version?"]
        assert result.needs_clarification is True
        assert "Which lease version?" not in result.summary

    def test_no_questions_no_clarification(self):
        assert normalize_entry(candidate(questions=[])).needs_clarification is False

    def test_clock_time_is_zero_padded(self):
        assert normalize_entry(candidate(time="8:05")).time == "08:05"

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("9:00 AM", "09:00"),
            ("12:15 am", "00:15"),
            ("12:00 PM", "12:00"),
            ("1:30pm", "13:30"),
            ("9 a.m.", "09:00"),
        ],
    )
    def test_twelve_hour_time_becomes_24_hour(self, raw, expected):
        assert normalize_entry(candidate(time=raw)).time == expected

    def test_out_of_range_twelve_hour_time_is_kept(self):
        assert normalize_entry(candidate(time="13:00 PM")).time == "13:00 PM"

    def test_free_form_time_is_kept(self):
        assert normalize_entry(candidate(time="morning")).time == "morning"

    def test_snake_case_keys_are_accepted(self):
        result = normalize_entry(candidate(legal_significance="Notice", related_entries="Entry 3"))
        assert result.legal_significance == "Notice"
        assert result.related_entries == "Entry 3"

    def test_wire_shape_has_contract_fields(self):
        wire = normalize_entry(candidate(legalSignificance="Notice")).to_wire()
        assert set(wire) == {
            "date", "time", "parties", "title", "summary", "category",
            "legalSignificance", "source", "questions", "relatedEntries", "sourceInfo",
        }
        assert wire["date"] == "2024-03-01"

    def test_unparsable_dates_never_normalize(self):
        rng = random.Random(1234)
        alphabet = "0123456789-/ abcXYZ"
        for _ in range(300):
            raw = "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 12)))
            try:
                valid = date.fromisoformat(raw) and len(raw) == 10
            except ValueError:
                valid = False
            result = normalize_entry(candidate(date=raw))
            if not valid:
                assert isinstance(result, RejectedEntry), raw


class TestNormalizeEntries:
    """Tests for batch normalization."""

    def test_one_bad_entry_does_not_discard_others(self):
        accepted, rejected = normalize_entries(
            [candidate(), candidate(date="someday"), candidate(title="Second")]
        )
        assert [entry.title for entry in accepted] == ["Lease signed", "Second"]
        assert [index for index, _ in rejected] == [1]

    def test_require_valid_entry_raises_with_field_errors(self):
        with pytest.raises(EntryValidationError) as excinfo:
            require_valid_entry(candidate(summary=""))
        assert excinfo.value.errors == {"summary": "is required"}
