import asyncio
import json
import threading

import pytest

from errors import ClientNotFound, ConnectionClosed
from realtime import ClientRegistry, SSEConnection, encode_frame
from conftest import drain


def test_frame_wire_format():
    frame = encode_frame("patch-elements", '<div id="a">\n  x\n</div>')
    assert frame.encode() == b'event: patch-elements\ndata: <div id="a">\ndata:   x\ndata: </div>\n\n'


def test_registry_round_trip():
    registry = ClientRegistry()
    conn = SSEConnection("c1")
    client = registry.add("c1", conn)
    assert registry.get("c1") is client
    assert client.conn is conn
    assert "c1" in registry
    registry.remove("c1")
    with pytest.raises(ClientNotFound):
        registry.get("c1")


def test_registry_concurrent_add_remove():
    registry = ClientRegistry()
    errors = []

    def worker(n):
        try:
            client_id = f"client-{n}"
            for _ in range(50):
                conn = SSEConnection(client_id)
                registry.add(client_id, conn)
                assert registry.get(client_id).conn is conn
                registry.remove(client_id, conn)
            registry.add(client_id, SSEConnection(client_id))
        except Exception as exc:  # collected and asserted below
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(64)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert errors == []
    assert len(registry) == 64
    assert sorted(registry.client_ids()) == sorted(f"client-{n}" for n in range(64))


def test_patches_arrive_in_push_order():
    registry = ClientRegistry()
    conn = SSEConnection("c1")
    registry.add("c1", conn)
    registry.patch_signals("c1", {"formData": {"title": ""}})
    registry.patch_html("c1", '<div id="x"></div>')
    registry.redirect("c1", "/entry")
    registry.execute_script("c1", "console.log(1)")
    frames = drain(conn)
    assert [f.event for f in frames] == ["patch-signals", "patch-elements", "redirect", "execute-script"]
    assert json.loads(frames[0].data) == {"formData": {"title": ""}}
    assert frames[2].data == "/entry"


def test_push_to_unknown_client():
    registry = ClientRegistry()
    with pytest.raises(ClientNotFound):
        registry.patch_html("missing", "<div id='x'></div>")


def test_closed_connection_is_removed_on_write():
    registry = ClientRegistry()
    conn = SSEConnection("c1")
    registry.add("c1", conn)
    conn.close()
    with pytest.raises(ClientNotFound):
        registry.patch_signals("c1", {"a": 1})
    assert "c1" not in registry


def test_full_outbox_drops_the_connection():
    conn = SSEConnection("c1", max_pending=2)
    conn.patch_signals({"n": 1})
    conn.patch_signals({"n": 2})
    with pytest.raises(ConnectionClosed):
        conn.patch_signals({"n": 3})
    assert conn.closed
    with pytest.raises(ConnectionClosed):
        conn.redirect("/entry")


def test_reconnect_replaces_previous_connection():
    registry = ClientRegistry()
    old, new = SSEConnection("c1"), SSEConnection("c1")
    registry.add("c1", old)
    registry.add("c1", new)
    assert old.closed
    # The old stream finishing must not unregister the new one
    registry.remove("c1", old)
    assert registry.get("c1").conn is new


def test_views_and_broadcast():
    registry = ClientRegistry()
    a, b = SSEConnection("a"), SSEConnection("b")
    registry.add("a", a)
    registry.add("b", b)
    registry.set_view("a", "/entry")
    assert registry.get_view("a") == "/entry"
    assert registry.get("a").last_view == "/entry"
    b.close()
    assert registry.broadcast() == 1
    assert "b" not in registry
    frames = drain(a)
    assert frames[-1].event == "patch-signals"
    assert json.loads(frames[-1].data)["refresh"]["view"] == "/entry"


def test_remove_forgets_view():
    registry = ClientRegistry()
    registry.add("a", SSEConnection("a"))
    registry.set_view("a", "/payee")
    registry.remove("a")
    assert registry.get_view("a") is None


def test_close_is_idempotent():
    registry = ClientRegistry()
    conn = SSEConnection("a")
    registry.add("a", conn)
    registry.close()
    registry.close()
    assert conn.closed
    assert len(registry) == 0


async def _consume(conn, until):
    """Collect ``conn``'s stream in a task; return it and the frames after ``until`` arrive."""
    frames = []
    arrived = asyncio.Event()

    async def run():
        async for frame in conn.stream():
            frames.append(frame)
            if len(frames) == until:
                arrived.set()

    task = asyncio.create_task(run())
    return task, frames, arrived


def test_stream_yields_in_push_order_until_closed():
    conn = SSEConnection("c1")

    async def run():
        task, frames, arrived = await _consume(conn, 3)
        conn.patch_signals({"errors": {}})
        conn.patch_elements("<p>one</p>")
        conn.redirect("/payee")
        await asyncio.wait_for(arrived.wait(), timeout=1)
        conn.close()
        await asyncio.wait_for(task, timeout=1)
        return frames

    frames = asyncio.run(run())
    assert [f.event for f in frames] == ["patch-signals", "patch-elements", "redirect"]
    assert frames[1].data == "<p>one</p>"


def test_registry_close_ends_open_streams():
    registry = ClientRegistry()
    conn = SSEConnection("c1")
    registry.add("c1", conn)

    async def run():
        task, frames, arrived = await _consume(conn, 1)
        registry.patch_signals("c1", {"a": 1})
        await asyncio.wait_for(arrived.wait(), timeout=1)
        registry.close()
        await asyncio.wait_for(task, timeout=1)
        return frames

    assert [f.event for f in asyncio.run(run())] == ["patch-signals"]
    assert conn.closed
