"""
Route guard (raw ASGI middleware).

Per request, by path prefix:
- protected pages without a valid session -> 302 to the login page,
  carrying ?redirect=<original path>
- auth entry pages with a valid session -> 302 to the landing page
- everything else passes through

Only the token's signature and expiry are checked; no store lookups.
API routes are excluded and enforce auth through require_session instead.
"""

from __future__ import annotations

from http.cookies import CookieError, SimpleCookie
from typing import Optional
from urllib.parse import urlencode

from starlette.types import ASGIApp, Receive, Scope, Send

from prompt_enhancer.auth.session import SessionSigner
from prompt_enhancer.core.config import RouteSettings

PROTECTED = "protected"
AUTH_ENTRY = "auth"
PUBLIC = "public"


def _matches(path: str, prefix: str) -> bool:
    if prefix.endswith("/"):
        return path.startswith(prefix)
    return path == prefix or path.startswith(prefix + "/")


def classify_path(path: str, routes: RouteSettings) -> str:
    """Return PROTECTED, AUTH_ENTRY or PUBLIC for a request path."""
    if any(_matches(path, p) for p in routes.excluded_prefixes):
        return PUBLIC
    if any(_matches(path, p) for p in routes.protected_prefixes):
        return PROTECTED
    if any(_matches(path, p) for p in routes.auth_prefixes):
        return AUTH_ENTRY
    return PUBLIC


def get_cookie_from_scope(scope: Scope, name: str) -> Optional[str]:
    """Extract a cookie value from ASGI scope headers."""
    for key, value in scope.get("headers") or []:
        if key.lower() != b"cookie":
            continue
        jar = SimpleCookie()
        try:
            jar.load(value.decode("latin-1"))
        except CookieError:
            continue
        if name in jar:
            return jar[name].value
    return None


async def _redirect(send: Send, location: str) -> None:
    await send({
        "type": "http.response.start",
        "status": 302,
        "headers": [[b"location", location.encode("latin-1")]],
    })
    await send({"type": "http.response.body", "body": b""})


class RouteGuardASGI:
    """Redirects page requests based on session validity."""

    def __init__(
        self,
        app: ASGIApp,
        signer: SessionSigner,
        routes: RouteSettings,
        cookie_name: str = "session",
    ):
        self.app = app
        self.signer = signer
        self.routes = routes
        self.cookie_name = cookie_name

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path") or "/"
        kind = classify_path(path, self.routes)
        if kind == PUBLIC:
            await self.app(scope, receive, send)
            return

        token = get_cookie_from_scope(scope, self.cookie_name)
        has_session = self.signer.verify(token) is not None

        if kind == PROTECTED and not has_session:
            query = urlencode({"redirect": path})
            await _redirect(send, f"{self.routes.login_path}?{query}")
            return
        if kind == AUTH_ENTRY and has_session:
            await _redirect(send, self.routes.landing_path)
            return
        await self.app(scope, receive, send)
