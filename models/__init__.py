from models.user import User, MagicLink
from models.entry import Entry
from models.payee import Payee
from models.participant import Participant
from models.expense import Expense

__all__ = ["User", "MagicLink", "Entry", "Payee", "Participant", "Expense"]
