from typing import Annotated

from signals import SignalInt, SignalModel, SignalStr
from schemas.common import MAX_AMOUNT, ModeParams
from validation import Rules

ENTRY_ERROR_FIELDS = ("title", "time", "description", "amount")


class EntryFormData(SignalModel):
    title: Annotated[SignalStr, Rules(required=True, max=255)] = ""
    time: Annotated[SignalStr, Rules(required=True)] = ""
    description: Annotated[SignalStr, Rules(max=1000)] = ""
    amount: Annotated[SignalInt, Rules(required=True, gt=0, max=MAX_AMOUNT)] = 0


class EntrySignals(ModeParams):
    form_data: EntryFormData = EntryFormData()


def entry_reset_signals() -> dict:
    """Signals pushed after a successful mutation: closed form, blank fields."""
    return {
        "mode": "",
        "formState": "",
        "editingId": 0,
        "formData": {"title": "", "time": "", "description": "", "amount": 0},
    }
