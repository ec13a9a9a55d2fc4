from fastapi import APIRouter, Depends, Request
import logging

from i18n import t
from models.user import User
from notifications import NotificationKind
from security import require_admin
import views

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/broadcast")
async def broadcast(request: Request, admin: User = Depends(require_admin)):
    """Ask every connected tab to refresh its current view."""
    delivered = views.registry(request).broadcast()
    logger.info("admin.broadcast: user %s reached %d clients", admin.id, delivered)
    views.notify(request, NotificationKind.INFO, t(request, "admin.broadcast_sent", delivered))
    return {"delivered": delivered}
