from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import get_db
from i18n import request_locale, t
from notifications import NotificationKind
from schemas.payee import PAYEE_ERROR_FIELDS, PayeeSignals, payee_reset_signals
from services import payees
from services.payees import PAYEE_TABLE_SPEC, PayeeNotFound
from signals import read_json_object, read_signals
from table_query import parse_table_query
from validation import validate
import views

router = APIRouter()

BASE_PATH = "/payee"


async def _table_query(request: Request):
    body = await read_json_object(request) if request.method != "GET" else None
    return parse_table_query(request.query_params, PAYEE_TABLE_SPEC, body).query


def _index_context(db: Session, query):
    return views.table_context(BASE_PATH, payees.index_data(db, query), PAYEE_TABLE_SPEC)


def _index_fragment(request: Request, db: Session, query):
    return lambda: views.render_fragment(request, "payees/_index.html", _index_context(db, query))


@router.get("")
async def index(request: Request, db: Session = Depends(get_db)):
    query = await _table_query(request)
    return views.render_page(request, "payees/index.html", _index_context(db, query), view=BASE_PATH)


@router.get("/{payee_id}")
async def show(payee_id: int, request: Request, db: Session = Depends(get_db)):
    try:
        context = payees.show_data(db, payee_id)
    except PayeeNotFound:
        views.notify(request, NotificationKind.ERROR, t(request, "payees.notifications.not_found"))
        return RedirectResponse(BASE_PATH, status_code=303)
    return views.render_page(request, "payees/show.html", context, view=f"{BASE_PATH}/{payee_id}")


@router.post("")
async def create(request: Request, db: Session = Depends(get_db)):
    views.require_client(request)
    signals = await read_signals(request, PayeeSignals)
    errors = validate(signals.form_data, request_locale(request))
    if errors:
        return views.validation_failed(request, PAYEE_ERROR_FIELDS, errors)
    try:
        payee = payees.create_payee(db, signals.form_data.name, signals.form_data.description)
    except SQLAlchemyError as exc:
        db.rollback()
        return views.persist_failed(request, t(request, "payees.notifications.create_failed"), exc)

    views.notify(request, NotificationKind.SUCCESS, t(request, "payees.notifications.created"))
    return views.succeeded(
        request,
        payee_reset_signals(),
        PAYEE_ERROR_FIELDS,
        html=_index_fragment(request, db, await _table_query(request)),
        redirect_to=f"{BASE_PATH}/{payee.id}" if signals.single else None,
    )


@router.put("/{payee_id}")
async def update(payee_id: int, request: Request, db: Session = Depends(get_db)):
    views.require_client(request)
    signals = await read_signals(request, PayeeSignals)
    errors = validate(signals.form_data, request_locale(request))
    if errors:
        return views.validation_failed(request, PAYEE_ERROR_FIELDS, errors)
    try:
        payees.update_payee(db, payee_id, signals.form_data.name, signals.form_data.description)
    except SQLAlchemyError as exc:
        db.rollback()
        return views.persist_failed(request, t(request, "payees.notifications.update_failed"), exc)

    views.notify(request, NotificationKind.SUCCESS, t(request, "payees.notifications.updated"))
    return views.succeeded(
        request,
        payee_reset_signals(),
        PAYEE_ERROR_FIELDS,
        html=_index_fragment(request, db, await _table_query(request)),
        redirect_to=f"{BASE_PATH}/{payee_id}" if signals.single else None,
    )


@router.delete("/{payee_id}")
async def destroy(payee_id: int, request: Request, db: Session = Depends(get_db)):
    views.require_client(request)
    signals = await read_signals(request, PayeeSignals)
    try:
        payees.delete_payee(db, payee_id)
    except SQLAlchemyError as exc:
        db.rollback()
        return views.persist_failed(request, t(request, "payees.notifications.delete_failed"), exc)

    views.notify(request, NotificationKind.SUCCESS, t(request, "payees.notifications.deleted"))
    return views.succeeded(
        request,
        payee_reset_signals(),
        PAYEE_ERROR_FIELDS,
        html=_index_fragment(request, db, await _table_query(request)),
        redirect_to=BASE_PATH if signals.single else None,
    )
