"""Request security: session cookie, CSRF, same-origin checks, body limits, rate limits.

``SecurityMiddleware`` runs on every request and only ever answers with a bare
status code (403/413) when it rejects one; everything that needs the database
lives in the dependencies at the bottom of the module.
"""
import hmac
import json
import logging
import math
import secrets
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from fastapi import Depends, Request, Response
from fastapi_limiter.depends import RateLimiter
from jose import JWTError, jwt
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware

from config import settings
from database import get_db
from errors import Forbidden, PayloadTooLarge, RateLimited, Unauthorized
from i18n import COOKIE_NAME as LANG_COOKIE, normalize_locale, SUPPORTED_LOCALES
from models.user import User

logger = logging.getLogger(__name__)

SESSION_COOKIE = "session"
CSRF_COOKIE = "_csrf"
CSRF_HEADER = "X-CSRF-Token"
CSRF_FIELD = "csrf"

SAFE_METHODS = {"GET", "HEAD", "OPTIONS", "TRACE"}
_ALLOWED_FETCH_SITES = {"same-origin", "same-site", "none"}


# Session

def create_session_token(user_id: int) -> str:
    expire = datetime.utcnow() + timedelta(days=settings.SESSION_MAX_AGE_DAYS)
    return jwt.encode({"sub": str(user_id), "exp": expire}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def read_session_token(token: str) -> Optional[int]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    sub = payload.get("sub")
    return int(sub) if sub and sub.isdigit() else None


def set_session_cookie(response: Response, user_id: int) -> None:
    response.set_cookie(
        SESSION_COOKIE,
        create_session_token(user_id),
        max_age=settings.SESSION_MAX_AGE_DAYS * 86400,
        path="/",
        httponly=True,
        samesite="strict",
        secure=settings.is_production,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE, path="/")


def set_lang_cookie(response: Response, locale: str) -> None:
    response.set_cookie(
        LANG_COOKIE,
        locale,
        max_age=settings.LANG_MAX_AGE_DAYS * 86400,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )


# CSRF

def generate_csrf_token() -> str:
    # 32 random bytes, URL-safe base64 without padding (43 chars)
    return secrets.token_urlsafe(32)


def ensure_csrf_token(request: Request, response: Response) -> str:
    """Return the request's CSRF token, issuing the ``_csrf`` cookie when absent."""
    existing = getattr(request.state, "csrf_token", None) or request.cookies.get(CSRF_COOKIE)
    if existing:
        request.state.csrf_token = existing
        return existing
    token = generate_csrf_token()
    response.set_cookie(
        CSRF_COOKIE,
        token,
        max_age=settings.CSRF_MAX_AGE_DAYS * 86400,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )
    request.state.csrf_token = token
    return token


def csrf_tokens_match(expected: Optional[str], supplied: Optional[str]) -> bool:
    """Constant-time comparison; empty or differently sized tokens never match."""
    if not expected or not supplied:
        return False
    expected_bytes = expected.encode("utf-8")
    supplied_bytes = supplied.encode("utf-8")
    if len(expected_bytes) != len(supplied_bytes):
        return False
    return hmac.compare_digest(expected_bytes, supplied_bytes)


def supplied_csrf_token(headers, content_type: str, body: bytes) -> Optional[str]:
    """Token from ``X-CSRF-Token``, a form field ``csrf``, or JSON ``csrf`` / ``signals.csrf``."""
    header = headers.get(CSRF_HEADER)
    if header:
        return header.strip()
    if not body:
        return None
    if content_type.startswith("application/x-www-form-urlencoded"):
        values = parse_qs(body.decode("utf-8", errors="replace")).get(CSRF_FIELD)
        return values[0] if values else None
    if content_type.startswith("application/json") or content_type == "":
        try:
            payload = json.loads(body)
        except ValueError:
            return None
        if not isinstance(payload, dict):
            return None
        token = payload.get(CSRF_FIELD)
        if not token and isinstance(payload.get("signals"), dict):
            token = payload["signals"].get(CSRF_FIELD)
        return token if isinstance(token, str) else None
    return None


# Middleware

def _body_limit(path: str) -> int:
    return settings.AUTH_MAX_BODY_BYTES if path.startswith("/auth") else settings.MAX_BODY_BYTES


def _same_origin(request: Request, value: str) -> bool:
    parts = urlsplit(value)
    return bool(parts.netloc) and parts.netloc == request.headers.get("host", request.url.netloc)


def resolve_locale(request: Request) -> str:
    cookie = request.cookies.get(LANG_COOKIE)
    if cookie:
        return normalize_locale(cookie)
    for item in request.headers.get("accept-language", "").split(","):
        code = item.split(";")[0].strip().lower().split("-")[0]
        if code in SUPPORTED_LOCALES:
            return code
    return normalize_locale(None)


class SecurityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request.state.locale = resolve_locale(request)
        if request.method in SAFE_METHODS:
            return await call_next(request)

        path = request.url.path
        limit = _body_limit(path)
        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > limit:
            logger.info("security.body_limit: %s declared %s bytes", path, declared)
            return Response(status_code=PayloadTooLarge.status_code)

        fetch_site = request.headers.get("sec-fetch-site")
        if fetch_site and fetch_site not in _ALLOWED_FETCH_SITES:
            logger.warning("security.fetch_site: rejected %s %s from %s", request.method, path, fetch_site)
            return Response(status_code=Forbidden.status_code)
        origin = request.headers.get("origin") or request.headers.get("referer")
        if origin and origin != "null" and not _same_origin(request, origin):
            logger.warning("security.origin: rejected %s %s from %s", request.method, path, origin)
            return Response(status_code=Forbidden.status_code)

        body = await request.body()
        if len(body) > limit:
            logger.info("security.body_limit: %s sent %d bytes", path, len(body))
            return Response(status_code=PayloadTooLarge.status_code)

        supplied = supplied_csrf_token(request.headers, request.headers.get("content-type", ""), body)
        if not csrf_tokens_match(request.cookies.get(CSRF_COOKIE), supplied):
            logger.warning("security.csrf: token mismatch on %s %s", request.method, path)
            return Response(status_code=Forbidden.status_code)
        return await call_next(request)


# Rate limiting

async def _rate_limited(request: Request, response: Response, pexpire: int):
    raise RateLimited(max(1, math.ceil(pexpire / 1000)) if pexpire else 60)


def rate_limit(times: int, *, seconds: int = 0, minutes: int = 0):
    """fastapi-limiter dependency that is a no-op unless ``RATE_LIMIT_ENABLED``."""
    limiter = RateLimiter(times=times, seconds=seconds, minutes=minutes, callback=_rate_limited)

    async def dependency(request: Request, response: Response):
        if not settings.RATE_LIMIT_ENABLED:
            return
        await limiter(request, response)

    return dependency


# Global budget is 4 requests/second with bursts of 80; auth is 5/minute
global_rate_limit = rate_limit(80, seconds=20)
auth_rate_limit = rate_limit(5, minutes=1)


# Users

def get_current_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        return None
    user_id = read_session_token(token)
    if user_id is None:
        return None
    return db.query(User).filter(User.id == user_id).first()


def require_user(user: Optional[User] = Depends(get_current_user)) -> User:
    if user is None:
        raise Unauthorized("Sign in required")
    return user


def is_admin(user: Optional[User]) -> bool:
    return bool(user and settings.SUPERADMIN_EMAIL and user.email.lower() == settings.SUPERADMIN_EMAIL)


def require_admin(user: User = Depends(require_user)) -> User:
    if not is_admin(user):
        raise Forbidden("Admin role required")
    return user
