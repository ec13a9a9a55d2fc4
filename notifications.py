"""Per-client toast buffer.

Handlers enqueue notifications for the current client; the next render drains
them into its template context. The buffer never references the rendering layer.
"""
from __future__ import annotations
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, List

from client_identity import PREFIX_NOTIFICATION, generate_id

logger = logging.getLogger(__name__)

NOTIFICATION_LIFETIME = timedelta(seconds=5)


class NotificationKind(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    id: str
    kind: NotificationKind
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationBuffer:
    def __init__(self, lifetime: timedelta = NOTIFICATION_LIFETIME) -> None:
        self._lock = threading.Lock()
        self._queues: Dict[str, List[Notification]] = {}
        self._lifetime = lifetime

    def add(self, client_id: str, kind: NotificationKind | str, message: str) -> Notification | None:
        if not message:
            return None
        notification = Notification(
            id=generate_id(PREFIX_NOTIFICATION),
            kind=NotificationKind(kind),
            message=message,
        )
        with self._lock:
            self._queues.setdefault(client_id, []).append(notification)
        return notification

    def drain(self, client_id: str) -> List[Notification]:
        """Take every pending notification for ``client_id``, oldest first.

        Items older than the buffer lifetime are dropped.
        """
        with self._lock:
            items = self._queues.pop(client_id, [])
        cutoff = datetime.now(timezone.utc) - self._lifetime
        fresh = [n for n in items if n.created_at >= cutoff]
        if len(fresh) != len(items):
            logger.debug("notifications.drain: dropped %d expired for %s", len(items) - len(fresh), client_id)
        return fresh

    def pending(self, client_id: str) -> int:
        with self._lock:
            return len(self._queues.get(client_id, []))
