from typing import Annotated

from signals import SignalInt, SignalModel, SignalStr
from schemas.common import MAX_AMOUNT
from validation import Rules

EXPENSE_ERROR_FIELDS = ("title", "description", "amount", "date")


class ExpenseFormData(SignalModel):
    title: Annotated[SignalStr, Rules(required=True, max=255)] = ""
    description: Annotated[SignalStr, Rules(max=1000)] = ""
    amount: Annotated[SignalInt, Rules(required=True, gt=0, max=MAX_AMOUNT)] = 0
    date: Annotated[SignalStr, Rules(required=True)] = ""


class ExpenseSignals(SignalModel):
    form_data: ExpenseFormData = ExpenseFormData()


def expense_reset_signals() -> dict:
    return {
        "formState": "",
        "editingId": 0,
        "formData": {"title": "", "description": "", "amount": 0, "date": ""},
    }
