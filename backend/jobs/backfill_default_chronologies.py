from __future__ import annotations

import argparse

from sqlalchemy.orm import Session

from casechron.core.logger import logger
from casechron.db.database import SessionLocal
from casechron.db.models import Case, ChronologyEntry
from casechron.services import chronology_service

MIGRATED_DESCRIPTION = "Default chronology migrated from existing entries"


def backfill_default_chronologies(db: Session, dry_run: bool = False) -> dict:
    """
    Give every case with unassigned entries a default chronology and move
    those entries into it.
    """
    case_ids = [
        row[0]
        for row in db.query(ChronologyEntry.case_id)
        .filter(ChronologyEntry.chronology_id.is_(None))
        .distinct()
        .all()
    ]
    logger.info("Found %d case(s) with unassigned entries", len(case_ids))

    created = 0
    moved = 0
    for case_id in case_ids:
        case = db.query(Case).filter(Case.id == case_id).first()
        if case is None:
            continue

        if dry_run:
            exists = chronology_service.get_default_chronology(db, case_id) is not None
            logger.info("[dry-run] case %s: default chronology %s", case_id, "exists" if exists else "missing")
            continue

        default, was_created = chronology_service.ensure_default_chronology(
            db, case_id, case.user_id, description=MIGRATED_DESCRIPTION
        )
        if was_created:
            created += 1

        count = chronology_service.attach_unassigned_entries(db, case_id, default.id)
        moved += count
        logger.info("Case %s (%s): attached %d entries to %s", case.name, case_id, count, default.id)

    remaining = (
        db.query(ChronologyEntry)
        .filter(ChronologyEntry.chronology_id.is_(None))
        .count()
    )
    if remaining:
        logger.warning("%d entries still have no chronology", remaining)

    summary = {
        "cases_processed": len(case_ids),
        "chronologies_created": created,
        "entries_attached": moved,
        "entries_unassigned": remaining,
    }
    logger.info("Default chronology backfill completed: %s", summary)
    return summary


def run_backfill(dry_run: bool = False) -> dict:
    db = SessionLocal()
    try:
        return backfill_default_chronologies(db, dry_run=dry_run)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Attach unassigned entries to a default chronology per case")
    parser.add_argument("--dry-run", action="store_true", help="Report without writing")
    args = parser.parse_args()

    summary = run_backfill(dry_run=args.dry_run)
    print(summary)


if __name__ == "__main__":
    main()
