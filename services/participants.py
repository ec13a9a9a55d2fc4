"""Participants: a payee's share of one entry.

A payee takes part in an entry at most once; adding the same payee twice is a
Conflict.
"""
from __future__ import annotations
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from errors import Conflict, NotFound
from models.participant import Participant
from services.entries import get_entry
from services.payees import get_payee


class ParticipantNotFound(NotFound):
    def __init__(self, entry_id: int, payee_id: int):
        super().__init__(f"Payee {payee_id} does not take part in entry {entry_id}")
        self.entry_id = entry_id
        self.payee_id = payee_id


def get_participant(db: Session, entry_id: int, payee_id: int) -> Participant:
    participant = (
        db.query(Participant)
        .filter(Participant.entry_id == entry_id, Participant.payee_id == payee_id)
        .first()
    )
    if participant is None:
        raise ParticipantNotFound(entry_id, payee_id)
    return participant


def add_participant(db: Session, entry_id: int, payee_id: int, amount: int, expense: int) -> Participant:
    get_entry(db, entry_id)
    get_payee(db, payee_id)
    participant = Participant(entry_id=entry_id, payee_id=payee_id, amount=amount, expense=expense)
    db.add(participant)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict(f"Payee {payee_id} already takes part in entry {entry_id}") from exc
    db.refresh(participant)
    return participant


def update_participant(db: Session, entry_id: int, payee_id: int, amount: int, expense: int) -> Participant:
    participant = get_participant(db, entry_id, payee_id)
    participant.amount = amount
    participant.expense = expense
    db.commit()
    db.refresh(participant)
    return participant


def remove_participant(db: Session, entry_id: int, payee_id: int) -> None:
    participant = get_participant(db, entry_id, payee_id)
    db.delete(participant)
    db.commit()
