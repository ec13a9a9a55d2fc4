"""Per-tab client identity carried in the ``client_id`` cookie.

The id is a routing key for the realtime registry only; it carries no privilege.
"""
import re
import secrets
import string

from fastapi import Request, Response

from config import settings
from errors import MissingClientId

CLIENT_ID_COOKIE = "client_id"

_ALPHANUMERIC = string.ascii_letters + string.digits
_ID_PATTERN = re.compile(r"^[a-z]{3}_[A-Za-z0-9]{20}$")

# ID prefixes for different entity types
PREFIX_NOTIFICATION = "ntf"
PREFIX_MAGIC_LINK = "mgl"


def generate_client_id() -> str:
    # 16 random bytes -> 22 URL-safe characters
    return secrets.token_urlsafe(16)


def generate_id(prefix: str) -> str:
    """Create ``"xxx_" + 20 random alphanumerics``, e.g. ``ntf_7x9KpQmN3vLwAbCdEfGh``."""
    if len(prefix) != 3:
        raise ValueError("ID prefix must be exactly 3 characters")
    return prefix.lower() + "_" + "".join(secrets.choice(_ALPHANUMERIC) for _ in range(20))


def is_valid_id(value: str, prefix: str) -> bool:
    if len(prefix) != 3 or not _ID_PATTERN.match(value or ""):
        return False
    return value.startswith(prefix.lower() + "_")


def ensure_client_id(request: Request, response: Response) -> str:
    """Return the request's client id, issuing the cookie on ``response`` when absent.

    The id is remembered on ``request.state`` so repeated calls during one request
    never emit a second ``Set-Cookie``.
    """
    existing = getattr(request.state, "client_id", None)
    if existing:
        return existing
    client_id = request.cookies.get(CLIENT_ID_COOKIE)
    if not client_id:
        client_id = generate_client_id()
        response.set_cookie(
            CLIENT_ID_COOKIE,
            client_id,
            max_age=settings.CLIENT_ID_MAX_AGE_DAYS * 86400,
            path="/",
            httponly=True,
            samesite="lax",
            secure=settings.is_production,
        )
    request.state.client_id = client_id
    return client_id


def get_client_id(request: Request) -> str:
    client_id = getattr(request.state, "client_id", None) or request.cookies.get(CLIENT_ID_COOKIE)
    if not client_id:
        raise MissingClientId()
    return client_id
