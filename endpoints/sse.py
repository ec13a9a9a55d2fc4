from fastapi import APIRouter, Request
from sse_starlette.sse import EventSourceResponse
import logging

from client_identity import get_client_id
from config import settings
from realtime import SSE_HEADERS, SSEConnection
import views

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/sse")
async def stream(request: Request, view: str = ""):
    """Open the tab's patch stream. Requires the ``client_id`` cookie (400 otherwise)."""
    client_id = get_client_id(request)
    registry = views.registry(request)
    conn = SSEConnection(client_id)
    registry.add(client_id, conn)
    if view:
        registry.set_view(client_id, view)
    logger.info("sse.connect: client %s view=%s (%d connected)", client_id, view or "-", len(registry))

    async def events():
        try:
            async for frame in conn.stream():
                yield frame
        finally:
            registry.remove(client_id, conn)
            conn.close()
            logger.info("sse.disconnect: client %s", client_id)

    return EventSourceResponse(
        events(),
        headers=SSE_HEADERS,
        ping=settings.SSE_PING_SECONDS,
        sep="\n",
    )
