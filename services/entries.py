"""Entries domain service: queries and mutations behind the /entry pages.

Functions:
- list_entries(db, query) -> List[Entry] (filtered, sorted, one page)
- count_entries(db, query) -> int (same filter, no paging)
- get_entry(db, entry_id) -> Entry (raises EntryNotFound)
- create_entry / update_entry / delete_entry
- index_data(db, query) -> dict ready for the index template (page clamped to the result)
- show_data(db, entry_id) -> dict with participants, distributed total and leftover
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from errors import NotFound
from models.entry import Entry
from models.participant import Participant
from models.payee import Payee
from table_query import (
    TableQuery,
    build_pagination,
    clamp_page,
    standard_table_query_spec,
)

logger = logging.getLogger(__name__)

ENTRY_TABLE_SPEC = standard_table_query_spec("time", "asc", "time", "title", "amount")

_SORT_COLUMNS = {
    "time": Entry.time,
    "title": Entry.title,
    "amount": Entry.amount,
}


class EntryNotFound(NotFound):
    def __init__(self, entry_id: int):
        super().__init__(f"Entry {entry_id} not found")
        self.entry_id = entry_id


def _filtered(db: Session, query: TableQuery):
    q = db.query(Entry)
    if query.search:
        pattern = f"%{query.search}%"
        q = q.filter(or_(Entry.title.ilike(pattern), Entry.description.ilike(pattern)))
    return q


def count_entries(db: Session, query: TableQuery) -> int:
    return _filtered(db, query).count()


def list_entries(db: Session, query: TableQuery) -> List[Entry]:
    column = _SORT_COLUMNS.get(query.sort, Entry.time)
    order = column.desc() if query.dir == "desc" else column.asc()
    return (
        _filtered(db, query)
        .order_by(order, Entry.id.asc())
        .offset(query.offset)
        .limit(query.page_size)
        .all()
    )


def get_entry(db: Session, entry_id: int) -> Entry:
    entry = db.query(Entry).filter(Entry.id == entry_id).first()
    if entry is None:
        raise EntryNotFound(entry_id)
    return entry


def create_entry(db: Session, title: str, time: str, description: str, amount: int) -> Entry:
    entry = Entry(title=title.strip(), time=time.strip(), description=description.strip(), amount=amount)
    db.add(entry)
    db.commit()
    db.refresh(entry)
    logger.info("entry.create: id=%s", entry.id)
    return entry


def update_entry(db: Session, entry_id: int, title: str, time: str, description: str, amount: int) -> Entry:
    entry = get_entry(db, entry_id)
    entry.title = title.strip()
    entry.time = time.strip()
    entry.description = description.strip()
    entry.amount = amount
    db.commit()
    db.refresh(entry)
    return entry


def delete_entry(db: Session, entry_id: int) -> None:
    entry = get_entry(db, entry_id)
    db.delete(entry)
    db.commit()


def index_data(db: Session, query: TableQuery) -> Dict[str, Any]:
    total = count_entries(db, query)
    query = clamp_page(query, total)
    return {
        "entries": list_entries(db, query),
        "query": query,
        "pagination": build_pagination(total, query),
    }


def show_data(db: Session, entry_id: int) -> Dict[str, Any]:
    entry = get_entry(db, entry_id)
    participants = (
        db.query(Participant)
        .options(joinedload(Participant.payee))
        .filter(Participant.entry_id == entry_id)
        .join(Payee, Payee.id == Participant.payee_id)
        .order_by(func.lower(Payee.name).asc(), Participant.id.asc())
        .all()
    )
    # Leftover is what the entry brought in minus every payout and reimbursed expense
    distributed = sum(p.amount + p.expense for p in participants)
    taken = {p.payee_id for p in participants}
    available = [p for p in db.query(Payee).order_by(func.lower(Payee.name).asc()).all() if p.id not in taken]
    return {
        "entry": entry,
        "participants": participants,
        "payees": available,
        "distributed": distributed,
        "leftover": entry.amount - distributed,
    }
