"""Rendering and the realtime side of every mutation handler.

Read endpoints answer with ``render_page``. Mutation endpoints answer with an
empty-bodied status and push their visible effects to the requesting tab over
SSE, in this order:

    parsed     -> 400 on bad signals (nothing pushed)
    validated  -> 422 + ``errors`` signal patch
    persisted  -> 500 + error toast
    signals    -> reset form signals
    html       -> re-rendered view, or a redirect in single mode

A failed SSE write is logged and never changes the status of the mutation.
"""
from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from fastapi import Request, Response
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from client_identity import ensure_client_id, get_client_id, CLIENT_ID_COOKIE
from errors import ClientNotFound, Internal, ValidationFailed
from i18n import request_locale, translate
from notifications import NotificationBuffer, NotificationKind
from realtime import ClientRegistry
from security import ensure_csrf_token
from table_query import (
    build_page_size_url,
    build_page_url,
    build_sort_url,
    page_numbers,
    table_query_signals,
)
from validation import empty_errors, with_errors

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
templates.env.globals.update(
    sort_url=build_sort_url,
    page_url=build_page_url,
    page_size_url=build_page_size_url,
    page_numbers=page_numbers,
)


def registry(request: Request) -> ClientRegistry:
    return request.app.state.registry


def notifications(request: Request) -> NotificationBuffer:
    return request.app.state.notifications


def current_client_id(request: Request) -> Optional[str]:
    return getattr(request.state, "client_id", None) or request.cookies.get(CLIENT_ID_COOKIE)


def notify(request: Request, kind: NotificationKind | str, message: str) -> None:
    client_id = current_client_id(request)
    if not client_id:
        logger.debug("notify: no client for %s, dropping %r", request.url.path, message)
        return
    notifications(request).add(client_id, kind, message)


def _context(request: Request, context: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    locale = request_locale(request)
    client_id = current_client_id(request)
    ctx: Dict[str, Any] = {
        "request": request,
        "locale": locale,
        "t": lambda key, *args: translate(locale, key, *args),
        "csrf_token": getattr(request.state, "csrf_token", None) or "",
        "client_id": client_id or "",
        "notifications": notifications(request).drain(client_id) if client_id else [],
    }
    ctx.update(context or {})
    return ctx


def render(request: Request, name: str, context: Optional[Mapping[str, Any]] = None) -> str:
    return templates.get_template(name).render(_context(request, context))


def render_page(
    request: Request,
    name: str,
    context: Optional[Mapping[str, Any]] = None,
    *,
    view: Optional[str] = None,
    status_code: int = 200,
) -> HTMLResponse:
    """Full HTML page; issues the client id and CSRF cookies on first visit."""
    cookies = Response()
    client_id = ensure_client_id(request, cookies)
    ensure_csrf_token(request, cookies)
    # Tabs that are not streaming yet report their view when they open /sse
    if client_id in registry(request):
        registry(request).set_view(client_id, view or request.url.path)
    response = HTMLResponse(render(request, name, context), status_code=status_code)
    for value in cookies.headers.getlist("set-cookie"):
        response.headers.append("set-cookie", value)
    return response


def render_fragment(request: Request, name: str, context: Optional[Mapping[str, Any]] = None) -> str:
    """HTML for an SSE patch. Pending notifications are drained into it."""
    return render(request, name, {**(context or {}), "fragment": True})


def table_context(base_path: str, data: Mapping[str, Any], spec) -> Dict[str, Any]:
    return {
        **data,
        "base_path": base_path,
        "spec": spec,
        "page_sizes": sorted(spec.allowed_page_sizes),
        "table_signals": table_query_signals(data["query"]),
    }


# SSE pushes

def _push(request: Request, action: str, write: Callable[[ClientRegistry, str], None]) -> bool:
    client_id = current_client_id(request)
    if not client_id:
        return False
    try:
        write(registry(request), client_id)
    except ClientNotFound:
        logger.info("sse.%s: %s %s client %s not connected", action, request.method, request.url.path, client_id)
        return False
    return True


def push_signals(request: Request, signals: Mapping[str, Any]) -> bool:
    return _push(request, "patch_signals", lambda reg, cid: reg.patch_signals(cid, signals))


def push_html(request: Request, html: str) -> bool:
    return _push(request, "patch_html", lambda reg, cid: reg.patch_html(cid, html))


def push_redirect(request: Request, url: str) -> bool:
    return _push(request, "redirect", lambda reg, cid: reg.redirect(cid, url))


def push_notifications(request: Request) -> bool:
    return push_html(request, render_fragment(request, "partials/toasts.html"))


# Mutation outcomes

def require_client(request: Request) -> str:
    """Mutations report back over SSE, so they need the tab's client id."""
    return get_client_id(request)


def validation_failed(request: Request, fields: Iterable[str], errors: Dict[str, str]) -> Response:
    logger.info("%s %s: validation failed for %s", request.method, request.url.path, ", ".join(sorted(errors)))
    push_signals(request, {"errors": with_errors(fields, errors)})
    return Response(status_code=ValidationFailed.status_code)


def persist_failed(request: Request, message: str, exc: Exception) -> Response:
    logger.error(
        "%s %s: store failed for client %s: %s",
        request.method, request.url.path, current_client_id(request), exc,
    )
    notify(request, NotificationKind.ERROR, message)
    push_notifications(request)
    return Response(status_code=Internal.status_code)


def succeeded(
    request: Request,
    reset: Mapping[str, Any],
    fields: Iterable[str],
    *,
    html: Optional[Callable[[], str]] = None,
    redirect_to: Optional[str] = None,
) -> Response:
    """Reset the form, then either redirect (single mode) or push the re-rendered view."""
    push_signals(request, {**reset, "errors": empty_errors(fields)})
    if redirect_to:
        push_redirect(request, redirect_to)
    elif html is not None:
        try:
            fragment = html()
        except Exception as exc:
            logger.exception(
                "%s %s: re-render failed for client %s: %s",
                request.method, request.url.path, current_client_id(request), exc,
            )
            notify(request, NotificationKind.ERROR, translate(request_locale(request), "errors.render_failed"))
            return Response(status_code=Internal.status_code)
        push_html(request, fragment)
    return Response(status_code=200)
