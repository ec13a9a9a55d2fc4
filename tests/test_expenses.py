import json

from models.expense import Expense
from schemas.common import MAX_AMOUNT
from services import expenses as expense_service
from conftest import drain

BLANK = {"title": "", "description": "", "amount": 0, "date": ""}


def _form(**fields):
    return {"formData": {**BLANK, **fields}}


def test_expense_form_is_validated(browser, stream, db_session):
    response = browser.post("/expense", json=_form())
    assert response.status_code == 422
    errors = json.loads(drain(stream)[0].data)["errors"]
    assert errors == {
        "title": "This field is required",
        "description": "",
        "amount": "This field is required",
        "date": "This field is required",
    }
    assert db_session.query(Expense).count() == 0


def test_expense_amount_is_capped(browser, stream, db_session):
    response = browser.post("/expense", json=_form(title="Van", date="2026-07-05", amount=MAX_AMOUNT + 1))
    assert response.status_code == 422
    errors = json.loads(drain(stream)[0].data)["errors"]
    assert errors["amount"] == f"Must be at most {MAX_AMOUNT}"


def test_create_expense(browser, stream, db_session):
    response = browser.post("/expense", json=_form(title="Strings", date="2026-02-20", amount=8000, description="Two sets"))
    assert response.status_code == 200
    expense = db_session.query(Expense).one()
    assert (expense.title, expense.date, expense.amount) == ("Strings", "2026-02-20", 8000)
    frames = drain(stream)
    assert [f.event for f in frames] == ["patch-signals", "patch-elements"]
    reset = json.loads(frames[0].data)
    assert reset["formData"] == BLANK
    assert reset["editingId"] == 0
    assert 'id="expense-index"' in frames[1].data
    assert f'id="expense-{expense.id}"' in frames[1].data
    assert "Expense created" in frames[1].data


def test_update_and_delete_expense(browser, stream, db_session):
    expense = expense_service.create_expense(db_session, "Fuel", "2026-07-05", "", 20000)
    response = browser.put(f"/expense/{expense.id}", json=_form(title="Van fuel", date="2026-07-05", amount=22000))
    assert response.status_code == 200
    db_session.refresh(expense)
    assert (expense.title, expense.amount) == ("Van fuel", 22000)
    frames = drain(stream)
    assert "Expense updated" in frames[-1].data

    response = browser.request("DELETE", f"/expense/{expense.id}", json={})
    assert response.status_code == 200
    assert db_session.query(Expense).count() == 0
    frames = drain(stream)
    assert frames[-1].event == "patch-elements"
    assert "Expense deleted" in frames[-1].data


def test_update_unknown_expense(browser, stream, db_session):
    response = browser.put("/expense/9999", json=_form(title="Ghost", date="2026-01-01", amount=1))
    assert response.status_code == 404


def test_expense_index_sorts_searches_and_totals(browser, db_session):
    expense_service.create_expense(db_session, "Strings", "2026-02-20", "Two sets", 8000)
    expense_service.create_expense(db_session, "Van fuel", "2026-07-05", "Festival trip", 22000)
    expense_service.create_expense(db_session, "Cables", "2026-04-01", "", 3000)

    text = browser.get("/expense").text
    assert text.index("Van fuel") < text.index("Cables") < text.index("Strings")
    assert '<td class="num total">33000</td>' in text

    text = browser.get("/expense", params={"sort": "title", "dir": "asc"}).text
    assert text.index("Cables") < text.index("Strings") < text.index("Van fuel")

    text = browser.get("/expense", params={"q": "festival"}).text
    assert "Van fuel" in text
    assert "Strings" not in text
