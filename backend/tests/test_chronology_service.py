"""
Tests for chronology ordering, the single-default rule and entry storage.
"""

import random
from datetime import date, datetime

import pytest

from casechron.db.models import Chronology, Document
from casechron.services import chronology_service as svc
from casechron.services.entry_normalizer import EntryValidationError
from casechron.utils.exceptions import ChronologyNotFoundError
from tests.conftest import make_case, make_document


def entry(day: str, title: str, time: str = "", **extra) -> dict:
    return dict({"date": day, "time": time, "title": title, "summary": f"{title} happened"}, **extra)


def defaults(db, case) -> list:
    return db.query(Chronology).filter(Chronology.case_id == case.id, Chronology.is_default.is_(True)).all()


class TestOrdering:
    def titles(self, db, case, descending=False) -> list:
        return [e.title for e in svc.list_entries(db, case.id, descending=descending)]

    def test_date_then_time(self, db, case):
        svc.create_entry(db, case.id, entry("2024-01-05", "Jan 5"))
        svc.create_entry(db, case.id, entry("2024-01-01", "Jan 1 nine", time="09:00"))
        svc.create_entry(db, case.id, entry("2024-01-01", "Jan 1 eight", time="08:00"))
        assert self.titles(db, case) == ["Jan 1 eight", "Jan 1 nine", "Jan 5"]

    def test_blank_time_sorts_first_within_a_day(self, db, case):
        svc.create_entry(db, case.id, entry("2024-01-01", "Timed", time="07:30"))
        svc.create_entry(db, case.id, entry("2024-01-01", "Untimed"))
        assert self.titles(db, case) == ["Untimed", "Timed"]

    def test_meridiem_times_sort_as_clock_times(self, db, case):
        svc.create_entry(db, case.id, entry("2024-01-01", "Ten", time="10:00"))
        svc.create_entry(db, case.id, entry("2024-01-01", "Nine", time="9:00 AM"))
        svc.create_entry(db, case.id, entry("2024-01-01", "Afternoon", time="1:30 pm"))
        assert self.titles(db, case) == ["Nine", "Ten", "Afternoon"]

    def test_creation_order_breaks_ties(self, db, case):
        later = svc.create_entry(db, case.id, entry("2024-01-01", "Later"))
        earlier = svc.create_entry(db, case.id, entry("2024-01-01", "Earlier"))
        later.entry.created_at = datetime(2024, 3, 1, 10, 0, 2)
        earlier.entry.created_at = datetime(2024, 3, 1, 10, 0, 1)
        db.commit()
        assert self.titles(db, case) == ["Earlier", "Later"]

    def test_descending(self, db, case):
        svc.create_entry(db, case.id, entry("2023-01-01", "Old"))
        svc.create_entry(db, case.id, entry("2024-01-01", "New"))
        assert self.titles(db, case, descending=True) == ["New", "Old"]


class TestChronologies:
    def test_first_chronology_is_default(self, db, case, owner):
        first = svc.create_chronology(db, case.id, owner.id, "Main")
        second = svc.create_chronology(db, case.id, owner.id, "Witness timeline")
        assert first.is_default is True
        assert second.is_default is False

    def test_set_default_moves_the_flag(self, db, case, owner):
        a = svc.create_chronology(db, case.id, owner.id, "A")
        b = svc.create_chronology(db, case.id, owner.id, "B")

        svc.set_default_chronology(db, case.id, b.id)
        db.refresh(a)
        assert (a.is_default, b.is_default) == (False, True)
        assert [c.id for c in defaults(db, case)] == [b.id]

    def test_single_default_under_random_switching(self, db, case, owner):
        chronologies = [svc.create_chronology(db, case.id, owner.id, f"C{i}") for i in range(4)]
        rng = random.Random(1234)
        for _ in range(25):
            target = rng.choice(chronologies)
            svc.set_default_chronology(db, case.id, target.id)
            current = defaults(db, case)
            assert [c.id for c in current] == [target.id]

    def test_set_default_in_other_case_is_not_found(self, db, case, owner):
        other = make_case(db, owner, name="Other matter")
        foreign = svc.create_chronology(db, other.id, owner.id, "Foreign")
        svc.create_chronology(db, case.id, owner.id, "Main")
        with pytest.raises(ChronologyNotFoundError):
            svc.set_default_chronology(db, case.id, foreign.id)

    def test_list_orders_default_first_with_counts(self, db, case, owner):
        main = svc.create_chronology(db, case.id, owner.id, "Main")
        side = svc.create_chronology(db, case.id, owner.id, "Side")
        svc.set_default_chronology(db, case.id, side.id)
        svc.create_entry(db, case.id, entry("2024-01-01", "Lease signed"), chronology_id=main.id)
        svc.create_entry(db, case.id, entry("2024-02-01", "Rent missed"), chronology_id=main.id)

        listed = svc.list_chronologies(db, case.id)
        assert [(c.name, count) for c, count in listed] == [("Side", 0), ("Main", 2)]

    def test_default_cannot_be_deleted(self, db, case, owner):
        main = svc.create_chronology(db, case.id, owner.id, "Main")
        with pytest.raises(svc.ChronologyError):
            svc.delete_chronology(db, case.id, main.id)

    def test_deleting_unassigns_entries(self, db, case, owner):
        svc.create_chronology(db, case.id, owner.id, "Main")
        side = svc.create_chronology(db, case.id, owner.id, "Side")
        stored = svc.create_entry(db, case.id, entry("2024-01-01", "Lease signed"), chronology_id=side.id)

        svc.delete_chronology(db, case.id, side.id)
        db.refresh(stored.entry)
        assert stored.entry.chronology_id is None

    def test_ensure_default_is_idempotent(self, db, case, owner):
        first, created = svc.ensure_default_chronology(db, case.id, owner.id, description="Migrated")
        again, created_again = svc.ensure_default_chronology(db, case.id, owner.id)
        assert (created, created_again) == (True, False)
        assert first.id == again.id
        assert first.name == svc.DEFAULT_CHRONOLOGY_NAME
        assert first.description == "Migrated"


class TestEntries:
    def test_new_entry_goes_to_default_chronology(self, db, case, owner):
        main = svc.create_chronology(db, case.id, owner.id, "Main")
        stored = svc.create_entry(db, case.id, entry("2024-01-01", "Lease signed"), user=owner)
        assert stored.entry.chronology_id == main.id
        assert stored.entry.user_id == owner.id

    def test_entry_without_any_chronology_is_unassigned(self, db, case):
        stored = svc.create_entry(db, case.id, entry("2024-01-01", "Lease signed"))
        assert stored.entry.chronology_id is None

    def test_invalid_entry_is_not_written(self, db, case):
        with pytest.raises(EntryValidationError) as exc_info:
            svc.create_entry(db, case.id, entry("01/02/2024", "Lease signed"))
        assert "date" in exc_info.value.errors
        assert svc.list_entries(db, case.id) == []

    def test_questions_are_returned_not_stored(self, db, case):
        stored = svc.create_entry(
            db, case.id, entry("2024-01-01", "Call", questions=["Who placed the call?"])
        )
        assert stored.needs_clarification is True
        assert stored.questions == ["Who placed the call?"]

    def test_documents_from_other_cases_are_not_linked(self, db, case, owner):
        other = make_case(db, owner, name="Other matter")
        mine = make_document(db, case, "mine.txt")
        theirs = make_document(db, other, "theirs.txt")

        stored = svc.create_entry(
            db, case.id, entry("2024-01-01", "Email sent"), document_ids=[mine.id, theirs.id]
        )
        db.expire_all()
        assert db.get(Document, mine.id).entry_id == stored.entry.id
        assert db.get(Document, theirs.id).entry_id is None

    def test_update_moves_entry_without_reranking(self, db, case):
        early = svc.create_entry(db, case.id, entry("2024-01-01", "Early"))
        svc.create_entry(db, case.id, entry("2024-06-01", "Later"))

        svc.update_entry(db, early.entry, {"date": "2024-12-31"})
        assert [e.title for e in svc.list_entries(db, case.id)] == ["Later", "Early"]
        assert early.entry.date == date(2024, 12, 31)

    def test_update_revalidates(self, db, case):
        stored = svc.create_entry(db, case.id, entry("2024-01-01", "Lease signed"))
        with pytest.raises(EntryValidationError):
            svc.update_entry(db, stored.entry, {"date": "2024-02-30"})
        db.refresh(stored.entry)
        assert stored.entry.date == date(2024, 1, 1)

    def test_bulk_create_keeps_valid_entries(self, db, case, owner):
        svc.create_chronology(db, case.id, owner.id, "Main")
        stored, rejected = svc.create_entries(
            db,
            case.id,
            [entry("2024-01-01", "Lease signed"), {"title": "No date"}, entry("2024-03-01", "Notice")],
        )
        assert [s.entry.title for s in stored] == ["Lease signed", "Notice"]
        assert [index for index, _ in rejected] == [1]
        assert "date" in rejected[0][1].errors

    def test_attach_unassigned_entries(self, db, case, owner):
        svc.create_entry(db, case.id, entry("2024-01-01", "Orphan"))
        main = svc.create_chronology(db, case.id, owner.id, "Main")
        assert svc.attach_unassigned_entries(db, case.id, main.id) == 1
        assert [e.title for e in svc.list_entries(db, case.id, chronology_id=main.id)] == ["Orphan"]
