from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

import auth_service
from auth_service import MagicLinkInvalid
from database import get_db
from i18n import request_locale, t
from schemas.user import LoginForm, SignupForm
from security import auth_rate_limit, clear_session_cookie, set_session_cookie
from signals import coerce_signals, read_form
from validation import validate
import views

router = APIRouter()


def _login_page(request: Request, *, errors=None, message="", form=None, status_code=200):
    context = {"errors": errors or {}, "message": message, "form": form or LoginForm()}
    return views.render_page(request, "auth/login.html", context, status_code=status_code)


@router.get("/login")
async def login_page(request: Request):
    return _login_page(request)


@router.post("/login", dependencies=[Depends(auth_rate_limit)])
async def login(request: Request, db: Session = Depends(get_db)):
    form = coerce_signals(await read_form(request), LoginForm)
    errors = validate(form, request_locale(request))
    if errors:
        return _login_page(request, errors=errors, form=form, status_code=422)
    await auth_service.request_login(db, form.email)
    # Same answer for known and unknown addresses
    return _login_page(request, message=t(request, "auth.link_sent"))


@router.post("/signup", dependencies=[Depends(auth_rate_limit)])
async def signup(request: Request, db: Session = Depends(get_db)):
    form = coerce_signals(await read_form(request), SignupForm)
    errors = validate(form, request_locale(request))
    if errors:
        return _login_page(request, errors=errors, form=form, status_code=422)
    user = auth_service.signup(db, form.email, form.name)
    if not await auth_service.deliver_magic_link(db, user):
        return _login_page(request, message=t(request, "auth.email_failed"), form=form, status_code=500)
    return _login_page(request, message=t(request, "auth.link_sent"))


@router.get("/verify/{token}")
async def verify(token: str, request: Request, db: Session = Depends(get_db)):
    try:
        user = auth_service.consume_magic_link(db, token)
    except MagicLinkInvalid:
        return _login_page(request, message=t(request, "auth.link_invalid"), status_code=400)
    response = RedirectResponse("/entry", status_code=303)
    set_session_cookie(response, user.id)
    return response


@router.post("/logout")
async def logout():
    response = RedirectResponse("/auth/login", status_code=303)
    clear_session_cookie(response)
    return response
