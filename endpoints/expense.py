from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import logging

from database import get_db
from i18n import request_locale, t
from notifications import NotificationKind
from schemas.expense import EXPENSE_ERROR_FIELDS, ExpenseSignals, expense_reset_signals
from services import expenses
from services.expenses import EXPENSE_TABLE_SPEC
from signals import read_json_object, read_signals
from table_query import parse_table_query
from validation import validate
import views

logger = logging.getLogger(__name__)

router = APIRouter()

BASE_PATH = "/expense"


async def _table_query(request: Request):
    body = await read_json_object(request) if request.method != "GET" else None
    result = parse_table_query(request.query_params, EXPENSE_TABLE_SPEC, body)
    if result.rejected:
        logger.debug("expense.index: rejected table params %s", result.rejected)
    return result.query


def _index_context(db: Session, query):
    return views.table_context(BASE_PATH, expenses.index_data(db, query), EXPENSE_TABLE_SPEC)


def _index_fragment(request: Request, db: Session, query):
    return lambda: views.render_fragment(request, "expenses/_index.html", _index_context(db, query))


@router.get("")
async def index(request: Request, db: Session = Depends(get_db)):
    query = await _table_query(request)
    return views.render_page(request, "expenses/index.html", _index_context(db, query), view=BASE_PATH)


@router.post("")
async def create(request: Request, db: Session = Depends(get_db)):
    views.require_client(request)
    signals = await read_signals(request, ExpenseSignals)
    errors = validate(signals.form_data, request_locale(request))
    if errors:
        return views.validation_failed(request, EXPENSE_ERROR_FIELDS, errors)
    form = signals.form_data
    try:
        expenses.create_expense(db, form.title, form.date, form.description, form.amount)
    except SQLAlchemyError as exc:
        db.rollback()
        return views.persist_failed(request, t(request, "expenses.notifications.create_failed"), exc)

    views.notify(request, NotificationKind.SUCCESS, t(request, "expenses.notifications.created"))
    return views.succeeded(
        request,
        expense_reset_signals(),
        EXPENSE_ERROR_FIELDS,
        html=_index_fragment(request, db, await _table_query(request)),
    )


@router.put("/{expense_id}")
async def update(expense_id: int, request: Request, db: Session = Depends(get_db)):
    views.require_client(request)
    signals = await read_signals(request, ExpenseSignals)
    errors = validate(signals.form_data, request_locale(request))
    if errors:
        return views.validation_failed(request, EXPENSE_ERROR_FIELDS, errors)
    form = signals.form_data
    try:
        expenses.update_expense(db, expense_id, form.title, form.date, form.description, form.amount)
    except SQLAlchemyError as exc:
        db.rollback()
        return views.persist_failed(request, t(request, "expenses.notifications.update_failed"), exc)

    views.notify(request, NotificationKind.SUCCESS, t(request, "expenses.notifications.updated"))
    return views.succeeded(
        request,
        expense_reset_signals(),
        EXPENSE_ERROR_FIELDS,
        html=_index_fragment(request, db, await _table_query(request)),
    )


@router.delete("/{expense_id}")
async def destroy(expense_id: int, request: Request, db: Session = Depends(get_db)):
    views.require_client(request)
    await read_signals(request, ExpenseSignals)
    try:
        expenses.delete_expense(db, expense_id)
    except SQLAlchemyError as exc:
        db.rollback()
        return views.persist_failed(request, t(request, "expenses.notifications.delete_failed"), exc)

    views.notify(request, NotificationKind.SUCCESS, t(request, "expenses.notifications.deleted"))
    return views.succeeded(
        request,
        expense_reset_signals(),
        EXPENSE_ERROR_FIELDS,
        html=_index_fragment(request, db, await _table_query(request)),
    )
