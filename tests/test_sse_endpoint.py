import asyncio

from fastapi.testclient import TestClient
from starlette.requests import Request

from main import app
from endpoints.sse import stream as open_stream
from realtime import SSEConnection


def test_sse_requires_client_cookie():
    tab = TestClient(app)
    response = tab.get("/sse")
    assert response.status_code == 400


def test_health_reports_connected_clients(client):
    registry = app.state.registry
    before = client.get("/health").json()
    assert before["status"] == "ok"
    conn = SSEConnection("health-check")
    registry.add("health-check", conn)
    try:
        assert client.get("/health").json()["clients"] == before["clients"] + 1
    finally:
        registry.remove("health-check", conn)


def test_root_redirects_to_entries(client):
    response = client.get("/", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/entry"


def test_language_switch_rejects_external_targets(client):
    response = client.get("/lang/hu", params={"next": "//evil.example"}, follow_redirects=False)
    assert response.headers["location"] == "/entry"
    assert "lang=hu" in response.headers["set-cookie"]
    response = client.get("/lang/xx", follow_redirects=False)
    assert "lang=en" in response.headers["set-cookie"]


def _sse_request(client_id):
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/sse",
        "query_string": b"view=/entry",
        "headers": [(b"cookie", f"client_id={client_id}".encode())],
        "app": app,
    })


def test_sse_stream_delivers_patches_until_closed():
    registry = app.state.registry
    client_id = "stream-lifecycle"

    async def run():
        response = await open_stream(_sse_request(client_id), view="/entry")
        assert client_id in registry
        assert registry.get_view(client_id) == "/entry"

        events = response.body_iterator
        registry.patch_signals(client_id, {"errors": {}})
        registry.patch_html(client_id, '<div id="entry-index"></div>')
        registry.redirect(client_id, "/entry/1")
        frames = [await events.__anext__() for _ in range(3)]

        registry.get(client_id).conn.close()
        rest = [frame async for frame in events]
        return response, frames, rest

    response, frames, rest = asyncio.run(run())
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    assert response.headers["x-accel-buffering"] == "no"
    assert [f.event for f in frames] == ["patch-signals", "patch-elements", "redirect"]
    assert frames[2].data == "/entry/1"
    assert rest == []
    assert client_id not in registry


def test_sse_disconnect_unregisters_the_tab():
    registry = app.state.registry
    client_id = "stream-disconnect"

    async def run():
        response = await open_stream(_sse_request(client_id))
        events = response.body_iterator
        registry.patch_signals(client_id, {"a": 1})
        first = await events.__anext__()
        conn = registry.get(client_id).conn
        # The server cancels the generator when the browser goes away
        await events.aclose()
        return first, conn

    first, conn = asyncio.run(run())
    assert first.event == "patch-signals"
    assert conn.closed
    assert client_id not in registry
