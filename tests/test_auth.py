import aiosmtplib
import pytest
from fastapi.testclient import TestClient

import auth_service
from config import settings
from main import app
from models.user import MagicLink, User
from realtime import SSEConnection
from security import SESSION_COOKIE
from conftest import drain


@pytest.fixture()
def sent_links(monkeypatch):
    sent = []

    async def capture(email, url):
        sent.append((email, url))

    monkeypatch.setattr(auth_service, "send_magic_link_email", capture)
    return sent


def _form(browser, **fields):
    return {**fields, "csrf": browser.cookies["_csrf"]}


def test_signup_sends_a_magic_link(browser, sent_links, db_session):
    response = browser.post("/auth/signup", data=_form(browser, email="Anna@Example.com", name=""))
    assert response.status_code == 200
    user = db_session.query(User).one()
    assert user.email == "anna@example.com"
    assert user.name == "Anna"
    assert sent_links[0][0] == "anna@example.com"
    assert sent_links[0][1].startswith(f"{settings.BASE_URL}/auth/verify/mgl_")


def test_signup_conflict(browser, sent_links, db_session):
    auth_service.create_user(db_session, "anna@example.com")
    response = browser.post("/auth/signup", data=_form(browser, email="anna@example.com"))
    assert response.status_code == 409


def test_signup_disabled(browser, sent_links, monkeypatch):
    monkeypatch.setattr(settings, "DISABLE_SIGNUP", True)
    response = browser.post("/auth/signup", data=_form(browser, email="new@example.com"))
    assert response.status_code == 403


def test_login_validates_email(browser, sent_links):
    response = browser.post("/auth/login", data=_form(browser, email="nope"))
    assert response.status_code == 422
    assert "Must be a valid email address" in response.text
    assert sent_links == []


def test_login_for_unknown_address_looks_the_same(browser, sent_links):
    response = browser.post("/auth/login", data=_form(browser, email="ghost@example.com"))
    assert response.status_code == 200
    assert "Check your inbox" in response.text
    assert sent_links == []


def test_magic_link_signs_in_once(browser, sent_links, db_session):
    user = auth_service.create_user(db_session, "anna@example.com")
    browser.post("/auth/login", data=_form(browser, email="anna@example.com"))
    token = sent_links[0][1].rsplit("/", 1)[1]

    response = browser.get(f"/auth/verify/{token}", follow_redirects=False)
    assert response.status_code == 303
    assert SESSION_COOKIE in browser.cookies
    assert db_session.query(MagicLink).one().used_at is not None
    db_session.refresh(user)
    assert user.last_login_at is not None

    response = browser.get(f"/auth/verify/{token}", follow_redirects=False)
    assert response.status_code == 400


def test_logout_clears_session(browser):
    response = browser.post("/auth/logout", follow_redirects=False)
    assert response.status_code == 303
    assert f'{SESSION_COOKIE}=""' in response.headers["set-cookie"]


def _signed_in(db_session, email):
    user = auth_service.create_user(db_session, email)
    link = auth_service.create_magic_link(db_session, user)
    tab = TestClient(app)
    tab.get("/entry")
    tab.headers["X-CSRF-Token"] = tab.cookies["_csrf"]
    tab.get(f"/auth/verify/{link.token}", follow_redirects=False)
    return tab


def test_broadcast_requires_admin(browser, db_session, monkeypatch):
    monkeypatch.setattr(settings, "SUPERADMIN_EMAIL", "boss@example.com")
    assert browser.post("/admin/broadcast").status_code == 401
    member = _signed_in(db_session, "member@example.com")
    assert member.post("/admin/broadcast").status_code == 403


def test_broadcast_reaches_connected_tabs(db_session, monkeypatch):
    monkeypatch.setattr(settings, "SUPERADMIN_EMAIL", "boss@example.com")
    admin = _signed_in(db_session, "boss@example.com")
    registry = app.state.registry
    conn = SSEConnection("listening-tab")
    registry.add("listening-tab", conn)
    try:
        response = admin.post("/admin/broadcast")
        assert response.status_code == 200
        assert response.json()["delivered"] >= 1
        assert drain(conn)[-1].event == "patch-signals"
    finally:
        registry.remove("listening-tab", conn)


@pytest.fixture()
def relay_down(monkeypatch):
    class FailingSMTP:
        def __init__(self, **kwargs):
            pass

        async def __aenter__(self):
            raise aiosmtplib.SMTPConnectError("relay down")

        async def __aexit__(self, *exc_info):
            return False

    monkeypatch.setattr(settings, "SMTP_HOST", "smtp.test")
    monkeypatch.setattr(aiosmtplib, "SMTP", FailingSMTP)


def test_login_looks_the_same_when_the_relay_fails(browser, relay_down, db_session):
    auth_service.create_user(db_session, "anna@example.com")
    response = browser.post("/auth/login", data=_form(browser, email="anna@example.com"))
    assert response.status_code == 200
    assert "Check your inbox" in response.text


def test_signup_reports_a_failed_relay(browser, relay_down, db_session):
    response = browser.post("/auth/signup", data=_form(browser, email="new@example.com"))
    assert response.status_code == 500
    assert "We could not send the sign-in email" in response.text
    assert db_session.query(User).count() == 1


@pytest.mark.parametrize("token", ["garbage", "mgl_", "cli_0123456789abcdef0123", "mgl_short"])
def test_malformed_magic_link_is_rejected(browser, token, db_session):
    response = browser.get(f"/auth/verify/{token}", follow_redirects=False)
    assert response.status_code == 400
    assert SESSION_COOKIE not in browser.cookies
