from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import get_db
from i18n import request_locale, t
from notifications import NotificationKind
from schemas.participant import PARTICIPANT_ERROR_FIELDS, ParticipantSignals, participant_reset_signals
from services import entries, participants
from signals import read_signals
from validation import validate
import views

router = APIRouter()


def _entry_fragment(request: Request, db: Session, entry_id: int):
    return lambda: views.render_fragment(request, "entries/_show.html", entries.show_data(db, entry_id))


@router.post("/{entry_id}/participant")
async def add(entry_id: int, request: Request, db: Session = Depends(get_db)):
    views.require_client(request)
    signals = await read_signals(request, ParticipantSignals)
    errors = validate(signals.form_data, request_locale(request))
    if errors:
        return views.validation_failed(request, PARTICIPANT_ERROR_FIELDS, errors)
    form = signals.form_data
    try:
        participants.add_participant(db, entry_id, form.payee_id, form.amount, form.expense)
    except SQLAlchemyError as exc:
        db.rollback()
        return views.persist_failed(request, t(request, "participants.notifications.add_failed"), exc)

    views.notify(request, NotificationKind.SUCCESS, t(request, "participants.notifications.added"))
    return views.succeeded(
        request,
        participant_reset_signals(),
        PARTICIPANT_ERROR_FIELDS,
        html=_entry_fragment(request, db, entry_id),
    )


@router.put("/{entry_id}/participant/{payee_id}")
async def update(entry_id: int, payee_id: int, request: Request, db: Session = Depends(get_db)):
    views.require_client(request)
    signals = await read_signals(request, ParticipantSignals)
    # The payee is fixed by the URL on edit
    form = signals.form_data.model_copy(update={"payee_id": payee_id})
    errors = validate(form, request_locale(request))
    if errors:
        return views.validation_failed(request, PARTICIPANT_ERROR_FIELDS, errors)
    try:
        participants.update_participant(db, entry_id, payee_id, form.amount, form.expense)
    except SQLAlchemyError as exc:
        db.rollback()
        return views.persist_failed(request, t(request, "participants.notifications.update_failed"), exc)

    views.notify(request, NotificationKind.SUCCESS, t(request, "participants.notifications.updated"))
    return views.succeeded(
        request,
        participant_reset_signals(),
        PARTICIPANT_ERROR_FIELDS,
        html=_entry_fragment(request, db, entry_id),
    )


@router.delete("/{entry_id}/participant/{payee_id}")
async def remove(entry_id: int, payee_id: int, request: Request, db: Session = Depends(get_db)):
    views.require_client(request)
    try:
        participants.remove_participant(db, entry_id, payee_id)
    except SQLAlchemyError as exc:
        db.rollback()
        return views.persist_failed(request, t(request, "participants.notifications.delete_failed"), exc)

    views.notify(request, NotificationKind.SUCCESS, t(request, "participants.notifications.deleted"))
    return views.succeeded(
        request,
        participant_reset_signals(),
        PARTICIPANT_ERROR_FIELDS,
        html=_entry_fragment(request, db, entry_id),
    )
