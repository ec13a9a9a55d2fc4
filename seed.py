"""Populate a development database with sample payees, entries and expenses.

    python seed.py            # create tables and insert sample rows
    python seed.py --reset    # drop every table first

Exit status is 0 on success and 1 on failure.
"""
import argparse
import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from config import settings
from database import Base, SessionLocal, engine
from models import Entry, Expense, Participant, Payee
import models  # noqa: F401  register tables on Base.metadata

logger = logging.getLogger("seed")

SAMPLE_PAYEES = [
    ("Anna", "Vocals"),
    ("Bence", "Guitar"),
    ("Csilla", "Bass"),
    ("Dani", "Drums"),
]

SAMPLE_ENTRIES = [
    ("Spring gig", "2026-03-14T20:00", "Club night", 120000),
    ("Rehearsal room", "2026-03-02T18:00", "Monthly rent", 30000),
    ("Summer festival", "2026-07-05T16:30", "", 250000),
]

SAMPLE_EXPENSES = [
    ("Guitar strings", "2026-02-20", "Two sets", 8000),
    ("Van fuel", "2026-07-05", "Festival trip", 22000),
]


def seed(reset: bool = False) -> int:
    if reset:
        Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        if db.query(Payee).count() or db.query(Entry).count():
            logger.info("seed: database already has data, nothing to do")
            return 0
        payees = [Payee(name=name, description=description) for name, description in SAMPLE_PAYEES]
        entries = [
            Entry(title=title, time=time, description=description, amount=amount)
            for title, time, description, amount in SAMPLE_ENTRIES
        ]
        expenses = [
            Expense(title=title, date=date, description=description, amount=amount)
            for title, date, description, amount in SAMPLE_EXPENSES
        ]
        db.add_all(payees + entries + expenses)
        db.flush()
        # Split the first gig evenly between the band members
        share = entries[0].amount // len(payees)
        db.add_all(Participant(entry_id=entries[0].id, payee_id=p.id, amount=share) for p in payees)
        db.commit()
        logger.info(
            "seed: inserted %d payees, %d entries and %d expenses", len(payees), len(entries), len(expenses)
        )
        return 0
    finally:
        db.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Seed the bandcash database with sample data")
    parser.add_argument("--reset", action="store_true", help="drop all tables before seeding")
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.INFO), format="%(levelname)s %(name)s: %(message)s")
    try:
        return seed(reset=args.reset)
    except SQLAlchemyError as exc:
        logger.error("seed: failed: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
