"""
Tests for the default-chronology backfill job.
"""

from datetime import date

from casechron.db.models import Chronology, ChronologyEntry
from casechron.services import chronology_service
from jobs.backfill_default_chronologies import MIGRATED_DESCRIPTION, backfill_default_chronologies
from tests.conftest import make_case


def add_unassigned(db, case, title, day=date(2024, 1, 1)):
    db.add(ChronologyEntry(case_id=case.id, date=day, title=title, summary=title))
    db.commit()


def test_creates_default_and_attaches_entries(db, case):
    add_unassigned(db, case, "Lease signed")
    add_unassigned(db, case, "Rent missed", date(2024, 2, 1))

    summary = backfill_default_chronologies(db)

    assert summary == {
        "cases_processed": 1,
        "chronologies_created": 1,
        "entries_attached": 2,
        "entries_unassigned": 0,
    }
    default = chronology_service.get_default_chronology(db, case.id)
    assert default.name == chronology_service.DEFAULT_CHRONOLOGY_NAME
    assert default.description == MIGRATED_DESCRIPTION
    assert len(chronology_service.list_entries(db, case.id, chronology_id=default.id)) == 2


def test_reuses_existing_default(db, case, owner):
    existing = chronology_service.create_chronology(db, case.id, owner.id, "Trial timeline")
    add_unassigned(db, case, "Orphan")

    summary = backfill_default_chronologies(db)

    assert summary["chronologies_created"] == 0
    assert summary["entries_attached"] == 1
    assert db.query(Chronology).filter(Chronology.case_id == case.id).count() == 1
    assert chronology_service.list_entries(db, case.id)[0].chronology_id == existing.id


def test_dry_run_writes_nothing(db, case, owner):
    other = make_case(db, owner, name="Second matter")
    add_unassigned(db, case, "First")
    add_unassigned(db, other, "Second")

    summary = backfill_default_chronologies(db, dry_run=True)

    assert summary["cases_processed"] == 2
    assert summary["entries_attached"] == 0
    assert summary["entries_unassigned"] == 2
    assert db.query(Chronology).count() == 0


def test_second_run_is_a_no_op(db, case):
    add_unassigned(db, case, "Lease signed")
    backfill_default_chronologies(db)

    summary = backfill_default_chronologies(db)
    assert summary == {
        "cases_processed": 0,
        "chronologies_created": 0,
        "entries_attached": 0,
        "entries_unassigned": 0,
    }
