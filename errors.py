"""Error taxonomy shared by the realtime core and the request handlers.

Every expected failure is raised as an ``AppError`` subclass carrying the HTTP
status it surfaces as; ``main.py`` registers a single exception handler that
turns them into empty-bodied responses.
"""
from __future__ import annotations
from typing import Dict, Optional


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str = "", *, headers: Optional[Dict[str, str]] = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message
        self.headers = headers or {}


class BadInput(AppError):
    status_code = 400


class Unauthorized(AppError):
    status_code = 401


class Forbidden(AppError):
    status_code = 403


class NotFound(AppError):
    status_code = 404


class Conflict(AppError):
    status_code = 409


class PayloadTooLarge(AppError):
    status_code = 413


class ValidationFailed(AppError):
    status_code = 422

    def __init__(self, errors: Dict[str, str]):
        super().__init__(f"Validation failed for {', '.join(sorted(errors))}")
        self.errors = errors


class RateLimited(AppError):
    status_code = 429

    def __init__(self, retry_after: int = 60):
        super().__init__(f"Rate limited, retry after {retry_after}s", headers={"Retry-After": str(retry_after)})
        self.retry_after = retry_after


class Internal(AppError):
    status_code = 500


# Realtime core

class MissingClientId(BadInput):
    def __init__(self):
        super().__init__("No client_id cookie")


class MalformedSignals(BadInput):
    pass


class TypeMismatch(BadInput):
    def __init__(self, field: str, value: object):
        super().__init__(f"Cannot coerce {value!r} for field {field}")
        self.field = field
        self.value = value


class ClientNotFound(AppError):
    status_code = 404

    def __init__(self, client_id: str):
        super().__init__(f"Client not found: {client_id}")
        self.client_id = client_id


class ConnectionClosed(AppError):
    def __init__(self, client_id: str, reason: str = "closed"):
        super().__init__(f"SSE connection for {client_id} {reason}")
        self.client_id = client_id
        self.reason = reason
