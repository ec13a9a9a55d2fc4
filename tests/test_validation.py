from typing import Annotated

from schemas.common import MAX_AMOUNT
from schemas.entry import ENTRY_ERROR_FIELDS, EntryFormData, EntrySignals
from schemas.user import LoginForm
from signals import SignalInt, SignalModel, SignalStr
from validation import Rules, empty_errors, validate, with_errors


class Bounds(SignalModel):
    nick_name: Annotated[SignalStr, Rules(min=3, max=5)] = "abcd"
    age: Annotated[SignalInt, Rules(min=18, max=99)] = 30
    score: Annotated[SignalInt, Rules(gte=0)] = 0


def test_valid_form_has_no_errors():
    form = EntryFormData(title="Gig", time="2026-01-01T20:00", amount=1000)
    assert validate(form, "en") is None


def test_required_fields_are_reported_by_json_name():
    errors = validate(EntryFormData(), "en")
    assert set(errors) == {"title", "time", "amount"}
    assert errors["title"] == "This field is required"


def test_messages_are_localized():
    errors = validate(EntryFormData(), "hu")
    assert errors["title"] == "Kötelező mező"
    assert validate(EntryFormData(title="x", time="t", amount=-5), "en") == {"amount": "Must be greater than 0"}


def test_nested_models_report_leaf_names():
    errors = validate(EntrySignals(), "en")
    assert "title" in errors
    assert "formData" not in errors


def test_length_and_value_bounds():
    errors = validate(Bounds(nick_name="ab", age=120, score=-1), "en")
    assert errors == {
        "nickName": "Must be at least 3 characters",
        "age": "Must be at most 99",
        "score": "Must be 0 or more",
    }
    assert validate(Bounds(nick_name="abcdef"), "en") == {"nickName": "Must be at most 5 characters"}


def test_email_rule():
    assert validate(LoginForm(email="not-an-address"), "en") == {"email": "Must be a valid email address"}
    assert validate(LoginForm(email="anna@example.com"), "en") is None


def test_error_maps_cover_every_field():
    assert empty_errors(ENTRY_ERROR_FIELDS) == {"title": "", "time": "", "description": "", "amount": ""}
    merged = with_errors(ENTRY_ERROR_FIELDS, {"title": "required"})
    assert merged["title"] == "required"
    assert merged["amount"] == ""
    assert set(merged) == set(ENTRY_ERROR_FIELDS)


def test_amounts_are_capped_at_the_column_range():
    form = EntryFormData(title="Gig", time="2026-01-01T20:00", amount=10**30)
    assert validate(form, "en") == {"amount": f"Must be at most {MAX_AMOUNT}"}
    assert validate(form.model_copy(update={"amount": MAX_AMOUNT}), "en") is None
