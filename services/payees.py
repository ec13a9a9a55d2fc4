"""Payees domain service.

Functions:
- list_payees / count_payees (search on name and description, sort name|created)
- get_payee, create_payee, update_payee, delete_payee
- index_data, show_data
"""
from __future__ import annotations
from typing import Any, Dict, List
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from errors import NotFound
from models.participant import Participant
from models.payee import Payee
from table_query import TableQuery, build_pagination, clamp_page, standard_table_query_spec

PAYEE_TABLE_SPEC = standard_table_query_spec("name", "asc", "name", "created")

_SORT_COLUMNS = {
    "name": func.lower(Payee.name),
    "created": Payee.created_at,
}


class PayeeNotFound(NotFound):
    def __init__(self, payee_id: int):
        super().__init__(f"Payee {payee_id} not found")
        self.payee_id = payee_id


def _filtered(db: Session, query: TableQuery):
    q = db.query(Payee)
    if query.search:
        pattern = f"%{query.search}%"
        q = q.filter(or_(Payee.name.ilike(pattern), Payee.description.ilike(pattern)))
    return q


def count_payees(db: Session, query: TableQuery) -> int:
    return _filtered(db, query).count()


def list_payees(db: Session, query: TableQuery) -> List[Payee]:
    column = _SORT_COLUMNS.get(query.sort, _SORT_COLUMNS["name"])
    order = column.desc() if query.dir == "desc" else column.asc()
    return _filtered(db, query).order_by(order, Payee.id.asc()).offset(query.offset).limit(query.page_size).all()


def get_payee(db: Session, payee_id: int) -> Payee:
    payee = db.query(Payee).filter(Payee.id == payee_id).first()
    if payee is None:
        raise PayeeNotFound(payee_id)
    return payee


def create_payee(db: Session, name: str, description: str) -> Payee:
    payee = Payee(name=name.strip(), description=description.strip())
    db.add(payee)
    db.commit()
    db.refresh(payee)
    return payee


def update_payee(db: Session, payee_id: int, name: str, description: str) -> Payee:
    payee = get_payee(db, payee_id)
    payee.name = name.strip()
    payee.description = description.strip()
    db.commit()
    db.refresh(payee)
    return payee


def delete_payee(db: Session, payee_id: int) -> None:
    payee = get_payee(db, payee_id)
    db.delete(payee)
    db.commit()


def index_data(db: Session, query: TableQuery) -> Dict[str, Any]:
    total = count_payees(db, query)
    query = clamp_page(query, total)
    return {
        "payees": list_payees(db, query),
        "query": query,
        "pagination": build_pagination(total, query),
    }


def show_data(db: Session, payee_id: int) -> Dict[str, Any]:
    payee = get_payee(db, payee_id)
    participations = (
        db.query(Participant)
        .options(joinedload(Participant.entry))
        .filter(Participant.payee_id == payee_id)
        .all()
    )
    participations.sort(key=lambda p: (p.entry.time, p.entry_id))
    return {
        "payee": payee,
        "participations": participations,
        "total_amount": sum(p.amount for p in participations),
        "total_expense": sum(p.expense for p in participations),
    }
