from typing import Annotated

from signals import SignalModel, SignalStr
from schemas.common import ModeParams
from validation import Rules

PAYEE_ERROR_FIELDS = ("name", "description")


class PayeeFormData(SignalModel):
    name: Annotated[SignalStr, Rules(required=True, max=255)] = ""
    description: Annotated[SignalStr, Rules(max=1000)] = ""


class PayeeSignals(ModeParams):
    form_data: PayeeFormData = PayeeFormData()


def payee_reset_signals() -> dict:
    return {
        "mode": "",
        "formState": "",
        "editingId": 0,
        "formData": {"name": "", "description": ""},
    }
