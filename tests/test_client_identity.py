from fastapi.testclient import TestClient

from client_identity import CLIENT_ID_COOKIE, generate_client_id, generate_id, is_valid_id
from main import app


def _set_cookies(response):
    return response.headers.get_list("set-cookie")


def test_first_visit_sets_client_id_and_csrf_cookies():
    tab = TestClient(app)
    response = tab.get("/entry")
    assert response.status_code == 200
    cookies = _set_cookies(response)
    client_cookies = [c for c in cookies if c.startswith(f"{CLIENT_ID_COOKIE}=")]
    assert len(client_cookies) == 1
    assert "HttpOnly" in client_cookies[0]
    assert "samesite=lax" in client_cookies[0].lower()
    assert len(tab.cookies[CLIENT_ID_COOKIE]) >= 22
    assert len(tab.cookies["_csrf"]) == 43


def test_returning_visit_keeps_client_id():
    tab = TestClient(app)
    tab.get("/entry")
    first = tab.cookies[CLIENT_ID_COOKIE]
    response = tab.get("/entry")
    assert not any(c.startswith(f"{CLIENT_ID_COOKIE}=") for c in _set_cookies(response))
    assert not any(c.startswith("_csrf=") for c in _set_cookies(response))
    assert tab.cookies[CLIENT_ID_COOKIE] == first


def test_generated_ids_are_unique_and_url_safe():
    ids = {generate_client_id() for _ in range(200)}
    assert len(ids) == 200
    assert all(len(i) >= 22 and "=" not in i and "+" not in i and "/" not in i for i in ids)


def test_prefixed_ids():
    value = generate_id("ntf")
    assert value.startswith("ntf_")
    assert len(value) == 24
    assert is_valid_id(value, "ntf")
    assert not is_valid_id(value, "mgl")
    assert not is_valid_id("ntf_short", "ntf")
