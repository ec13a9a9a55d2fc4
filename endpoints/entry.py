from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import logging

from database import get_db
from i18n import request_locale, t
from notifications import NotificationKind
from schemas.entry import ENTRY_ERROR_FIELDS, EntrySignals, entry_reset_signals
from services import entries
from services.entries import ENTRY_TABLE_SPEC, EntryNotFound
from signals import read_json_object, read_signals
from table_query import parse_table_query
from validation import validate
import views

logger = logging.getLogger(__name__)

router = APIRouter()

BASE_PATH = "/entry"


async def _table_query(request: Request):
    body = await read_json_object(request) if request.method != "GET" else None
    result = parse_table_query(request.query_params, ENTRY_TABLE_SPEC, body)
    if result.rejected:
        logger.debug("entry.index: rejected table params %s", result.rejected)
    return result.query


def _index_context(db: Session, query):
    return views.table_context(BASE_PATH, entries.index_data(db, query), ENTRY_TABLE_SPEC)


@router.get("")
async def index(request: Request, db: Session = Depends(get_db)):
    query = await _table_query(request)
    return views.render_page(request, "entries/index.html", _index_context(db, query), view=BASE_PATH)


@router.get("/{entry_id}")
async def show(entry_id: int, request: Request, db: Session = Depends(get_db)):
    try:
        context = entries.show_data(db, entry_id)
    except EntryNotFound:
        views.notify(request, NotificationKind.ERROR, t(request, "entries.notifications.not_found"))
        return RedirectResponse(BASE_PATH, status_code=303)
    return views.render_page(request, "entries/show.html", context, view=f"{BASE_PATH}/{entry_id}")


@router.post("")
async def create(request: Request, db: Session = Depends(get_db)):
    views.require_client(request)
    signals = await read_signals(request, EntrySignals)
    errors = validate(signals.form_data, request_locale(request))
    if errors:
        return views.validation_failed(request, ENTRY_ERROR_FIELDS, errors)
    form = signals.form_data
    try:
        entry = entries.create_entry(db, form.title, form.time, form.description, form.amount)
    except SQLAlchemyError as exc:
        db.rollback()
        return views.persist_failed(request, t(request, "entries.notifications.create_failed"), exc)

    views.notify(request, NotificationKind.SUCCESS, t(request, "entries.notifications.created"))
    query = await _table_query(request)
    return views.succeeded(
        request,
        entry_reset_signals(),
        ENTRY_ERROR_FIELDS,
        html=lambda: views.render_fragment(request, "entries/_index.html", _index_context(db, query)),
        redirect_to=f"{BASE_PATH}/{entry.id}" if signals.single else None,
    )


@router.put("/{entry_id}")
async def update(entry_id: int, request: Request, db: Session = Depends(get_db)):
    views.require_client(request)
    signals = await read_signals(request, EntrySignals)
    errors = validate(signals.form_data, request_locale(request))
    if errors:
        return views.validation_failed(request, ENTRY_ERROR_FIELDS, errors)
    form = signals.form_data
    try:
        entry = entries.update_entry(db, entry_id, form.title, form.time, form.description, form.amount)
    except SQLAlchemyError as exc:
        db.rollback()
        return views.persist_failed(request, t(request, "entries.notifications.update_failed"), exc)

    views.notify(request, NotificationKind.SUCCESS, t(request, "entries.notifications.updated"))
    query = await _table_query(request)
    return views.succeeded(
        request,
        entry_reset_signals(),
        ENTRY_ERROR_FIELDS,
        html=lambda: views.render_fragment(request, "entries/_index.html", _index_context(db, query)),
        redirect_to=f"{BASE_PATH}/{entry.id}" if signals.single else None,
    )


@router.delete("/{entry_id}")
async def destroy(entry_id: int, request: Request, db: Session = Depends(get_db)):
    views.require_client(request)
    signals = await read_signals(request, EntrySignals)
    try:
        entries.delete_entry(db, entry_id)
    except SQLAlchemyError as exc:
        db.rollback()
        return views.persist_failed(request, t(request, "entries.notifications.delete_failed"), exc)

    views.notify(request, NotificationKind.SUCCESS, t(request, "entries.notifications.deleted"))
    query = await _table_query(request)
    return views.succeeded(
        request,
        entry_reset_signals(),
        ENTRY_ERROR_FIELDS,
        html=lambda: views.render_fragment(request, "entries/_index.html", _index_context(db, query)),
        redirect_to=BASE_PATH if signals.single else None,
    )
