from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse

from i18n import normalize_locale
from security import set_lang_cookie
import views

router = APIRouter()


@router.get("/")
async def root():
    return RedirectResponse("/entry", status_code=303)


@router.get("/health")
async def health(request: Request):
    return {"status": "ok", "clients": len(views.registry(request))}


@router.get("/lang/{code}")
async def set_language(code: str, next: str = "/entry"):
    # Only local paths; anything else would make this an open redirect
    target = next if next.startswith("/") and not next.startswith("//") else "/entry"
    response = RedirectResponse(target, status_code=303)
    set_lang_cookie(response, normalize_locale(code))
    return response
