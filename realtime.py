"""Server-sent-events fan-out: per-client connections and the client registry.

Each browser tab (one ``client_id``) holds at most one long-lived ``GET /sse``
request. Mutation handlers running in other requests push patches to that tab
through the registry. A patch is queued on the connection's bounded outbox and
the SSE request drains it, so writers never block on a slow client: when the
outbox is full the connection is dropped and the client must reconnect.

Phase 1: In-process only. Broadcast across several server instances is out of scope.
"""
from __future__ import annotations
import asyncio
import json
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Dict, List, Mapping, Optional

from sse_starlette.sse import ServerSentEvent

from config import settings
from errors import ClientNotFound, ConnectionClosed

logger = logging.getLogger(__name__)

PATCH_ELEMENTS = "patch-elements"
PATCH_SIGNALS = "patch-signals"
REDIRECT = "redirect"
EXECUTE_SCRIPT = "execute-script"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

_CLOSE = object()


def encode_frame(kind: str, payload: str) -> ServerSentEvent:
    """``event: <kind>`` followed by one ``data:`` line per payload line and a blank line."""
    return ServerSentEvent(data=payload, event=kind, sep="\n")


class SSEConnection:
    """Outbox of framed events for one SSE request.

    Writes are serialized by an internal lock, so patches pushed by concurrent
    handlers never interleave and are observed in push order.
    """

    def __init__(self, client_id: str, max_pending: int | None = None) -> None:
        self.client_id = client_id
        self.outbox: asyncio.Queue = asyncio.Queue(maxsize=max_pending or settings.SSE_QUEUE_SIZE)
        self._lock = threading.Lock()
        self._closed = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def closed(self) -> bool:
        return self._closed

    def patch_elements(self, html: str) -> None:
        self._emit(PATCH_ELEMENTS, html)

    def patch_signals(self, signals: Mapping[str, Any]) -> None:
        self._emit(PATCH_SIGNALS, json.dumps(signals, separators=(",", ":"), ensure_ascii=False))

    def redirect(self, url: str) -> None:
        self._emit(REDIRECT, url)

    def execute_script(self, src: str) -> None:
        self._emit(EXECUTE_SCRIPT, src)

    def _emit(self, kind: str, payload: str) -> None:
        frame = encode_frame(kind, payload)
        with self._lock:
            if self._closed:
                raise ConnectionClosed(self.client_id)
            if self._loop is not None and _running_loop() is not self._loop:
                # Written from a worker thread: hand the frame to the loop serving the stream
                self._loop.call_soon_threadsafe(self._put_or_drop, frame)
                return
            try:
                self.outbox.put_nowait(frame)
            except asyncio.QueueFull:
                self._closed = True
                raise ConnectionClosed(self.client_id, "outbox full")

    def _put_or_drop(self, frame: ServerSentEvent) -> None:
        try:
            self.outbox.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning("sse: outbox full, dropping client %s", self.client_id)
            self.close()

    def close(self) -> None:
        with self._lock:
            already_closed = self._closed
            self._closed = True
        # Wake the stream even when the connection was closed by overflow
        try:
            self.outbox.put_nowait(_CLOSE)
        except asyncio.QueueFull:
            # A full outbox is never awaited on; the stream sees _closed on its next frame
            pass
        if not already_closed:
            logger.debug("sse: connection closed for %s", self.client_id)

    async def stream(self) -> AsyncIterator[ServerSentEvent]:
        """Yield queued frames until the connection is closed.

        Client disconnects cancel this generator from the response side.
        """
        self._loop = asyncio.get_running_loop()
        while True:
            item = await self.outbox.get()
            if item is _CLOSE or self._closed:
                return
            yield item


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


@dataclass
class Client:
    id: str
    conn: SSEConnection
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_view: Optional[str] = None


class ClientRegistry:
    """Concurrent map of client id -> live SSE connection.

    The registry is the only mutator of the map. Lookups snapshot the ``Client``
    under the lock and write to its connection after releasing it, so a slow
    client never stalls registry-wide operations.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._clients: Dict[str, Client] = {}
        self._views: Dict[str, str] = {}
        self._closed = False

    def add(self, client_id: str, conn: SSEConnection) -> Client:
        with self._lock:
            previous = self._clients.get(client_id)
            client = Client(id=client_id, conn=conn, last_view=self._views.get(client_id))
            self._clients[client_id] = client
        if previous is not None and previous.conn is not conn:
            # Same tab reconnected; the old stream ends and must not remove the new entry
            previous.conn.close()
        return client

    def remove(self, client_id: str, conn: SSEConnection | None = None) -> None:
        """Drop the client and its view. With ``conn``, only if it is still the current connection."""
        with self._lock:
            current = self._clients.get(client_id)
            if conn is not None and current is not None and current.conn is not conn:
                return
            self._clients.pop(client_id, None)
            self._views.pop(client_id, None)

    def get(self, client_id: str) -> Client:
        with self._lock:
            client = self._clients.get(client_id)
        if client is None:
            raise ClientNotFound(client_id)
        return client

    def __contains__(self, client_id: str) -> bool:
        with self._lock:
            return client_id in self._clients

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    def client_ids(self) -> List[str]:
        with self._lock:
            return list(self._clients)

    def set_view(self, client_id: str, view: str) -> None:
        with self._lock:
            self._views[client_id] = view
            client = self._clients.get(client_id)
            if client is not None:
                client.last_view = view

    def get_view(self, client_id: str) -> Optional[str]:
        with self._lock:
            return self._views.get(client_id)

    def patch_html(self, client_id: str, html: str) -> None:
        self._deliver(client_id, lambda conn: conn.patch_elements(html))

    def patch_signals(self, client_id: str, signals: Mapping[str, Any]) -> None:
        self._deliver(client_id, lambda conn: conn.patch_signals(signals))

    def redirect(self, client_id: str, url: str) -> None:
        self._deliver(client_id, lambda conn: conn.redirect(url))

    def execute_script(self, client_id: str, src: str) -> None:
        self._deliver(client_id, lambda conn: conn.execute_script(src))

    def _deliver(self, client_id: str, write: Callable[[SSEConnection], None]) -> None:
        client = self.get(client_id)
        try:
            write(client.conn)
        except ConnectionClosed as exc:
            logger.info("sse: dropping client %s after failed write (%s)", client_id, exc.reason)
            self.remove(client_id, client.conn)
            raise ClientNotFound(client_id) from exc

    def broadcast(self) -> int:
        """Ask every connected client to refresh its current view. Returns the number reached."""
        with self._lock:
            targets = [(client, self._views.get(client.id, "")) for client in self._clients.values()]
        delivered = 0
        stamp = int(time.time() * 1000)
        for client, view in targets:
            try:
                client.conn.patch_signals({"refresh": {"view": view, "at": stamp}})
                delivered += 1
            except ConnectionClosed:
                self.remove(client.id, client.conn)
            except Exception:
                logger.exception("sse: broadcast to %s failed", client.id)
        logger.debug("sse: broadcast reached %d/%d clients", delivered, len(targets))
        return delivered

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            clients = list(self._clients.values())
            self._clients.clear()
            self._views.clear()
        for client in clients:
            client.conn.close()
        logger.info("sse: registry closed, %d connections released", len(clients))
