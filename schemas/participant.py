from typing import Annotated

from signals import SignalInt, SignalModel, SignalStr
from schemas.common import MAX_AMOUNT
from validation import Rules

PARTICIPANT_ERROR_FIELDS = ("payeeId", "amount", "expense")


class ParticipantFormData(SignalModel):
    payee_id: Annotated[SignalInt, Rules(required=True, gt=0)] = 0
    payee_name: SignalStr = ""
    amount: Annotated[SignalInt, Rules(gte=0, max=MAX_AMOUNT)] = 0
    expense: Annotated[SignalInt, Rules(gte=0, max=MAX_AMOUNT)] = 0


class ParticipantSignals(SignalModel):
    form_data: ParticipantFormData = ParticipantFormData()


def participant_reset_signals() -> dict:
    return {
        "formState": "",
        "editingId": 0,
        "formData": {"payeeId": 0, "payeeName": "", "amount": 0, "expense": 0},
    }
