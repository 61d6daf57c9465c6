"""
Auth dependencies for API routes.

require_session() is a FastAPI dependency that:
- Reads the session token from the cookie or Authorization header
- Verifies it with the app's SessionSigner
- Returns the session claims, or raises 401
"""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Request, status

from prompt_enhancer.auth.models import SessionClaims


def extract_token(request: Request) -> Optional[str]:
    # Prefer cookie for browser flows
    cookie_name = request.app.state.settings.auth.cookie_name
    token = request.cookies.get(cookie_name)
    if token:
        return token
    # Fallback to Authorization: Bearer <token>
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip()
    return None


def get_optional_session(request: Request) -> Optional[SessionClaims]:
    return request.app.state.auth_service.current_session(extract_token(request))


async def require_session(request: Request) -> SessionClaims:
    """
    Dependency for protected API routes.

    Raises 401 if the session is missing, expired or tampered with.
    """
    claims = get_optional_session(request)
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return claims
