from typing import Annotated

from signals import SignalModel, SignalStr
from validation import Rules


class LoginForm(SignalModel):
    email: Annotated[SignalStr, Rules(required=True, max=320, email=True)] = ""


class SignupForm(LoginForm):
    name: Annotated[SignalStr, Rules(max=255)] = ""
