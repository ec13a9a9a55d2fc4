"""Group expenses: costs that are not split across an entry's participants."""
from __future__ import annotations
import logging
from typing import Any, Dict, List
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from errors import NotFound
from models.expense import Expense
from table_query import TableQuery, build_pagination, clamp_page, standard_table_query_spec

logger = logging.getLogger(__name__)

EXPENSE_TABLE_SPEC = standard_table_query_spec("date", "desc", "date", "title", "amount")

_SORT_COLUMNS = {
    "date": Expense.date,
    "title": func.lower(Expense.title),
    "amount": Expense.amount,
}


class ExpenseNotFound(NotFound):
    def __init__(self, expense_id: int):
        super().__init__(f"Expense {expense_id} not found")
        self.expense_id = expense_id


def _filtered(db: Session, query: TableQuery):
    q = db.query(Expense)
    if query.search:
        pattern = f"%{query.search}%"
        q = q.filter(or_(Expense.title.ilike(pattern), Expense.description.ilike(pattern)))
    return q


def count_expenses(db: Session, query: TableQuery) -> int:
    return _filtered(db, query).count()


def list_expenses(db: Session, query: TableQuery) -> List[Expense]:
    column = _SORT_COLUMNS.get(query.sort, Expense.date)
    order = column.desc() if query.dir == "desc" else column.asc()
    return (
        _filtered(db, query)
        .order_by(order, Expense.id.asc())
        .offset(query.offset)
        .limit(query.page_size)
        .all()
    )


def get_expense(db: Session, expense_id: int) -> Expense:
    expense = db.query(Expense).filter(Expense.id == expense_id).first()
    if expense is None:
        raise ExpenseNotFound(expense_id)
    return expense


def create_expense(db: Session, title: str, date: str, description: str, amount: int) -> Expense:
    expense = Expense(title=title.strip(), date=date.strip(), description=description.strip(), amount=amount)
    db.add(expense)
    db.commit()
    db.refresh(expense)
    logger.info("expense.create: id=%s", expense.id)
    return expense


def update_expense(db: Session, expense_id: int, title: str, date: str, description: str, amount: int) -> Expense:
    expense = get_expense(db, expense_id)
    expense.title = title.strip()
    expense.date = date.strip()
    expense.description = description.strip()
    expense.amount = amount
    db.commit()
    db.refresh(expense)
    return expense


def delete_expense(db: Session, expense_id: int) -> None:
    db.delete(get_expense(db, expense_id))
    db.commit()


def index_data(db: Session, query: TableQuery) -> Dict[str, Any]:
    total = count_expenses(db, query)
    query = clamp_page(query, total)
    return {
        "expenses": list_expenses(db, query),
        "query": query,
        "pagination": build_pagination(total, query),
        "total_amount": db.query(func.coalesce(func.sum(Expense.amount), 0)).scalar(),
    }
