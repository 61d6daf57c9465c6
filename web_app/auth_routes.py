"""
FastAPI routes for passwordless authentication.

Prefix: /api/auth

- POST /send-otp    {email}       -> code emailed, never returned
- POST /verify-otp  {email, otp}  -> identity summary + session cookie
- GET  /me                        -> identity summary from the session
- POST /logout                    -> session cookie cleared, always succeeds
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from prompt_enhancer.auth.models import Identity, IdentitySummary, SessionClaims
from prompt_enhancer.utils.exceptions import (
    AuthenticationError,
    DeliveryError,
    InputValidationError,
    InvalidCodeError,
)
from .auth_middleware import require_session


router = APIRouter(prefix="/api/auth", tags=["auth"])


class SendOtpRequest(BaseModel):
    email: str


class VerifyOtpRequest(BaseModel):
    email: str
    otp: str


class MeResponse(BaseModel):
    user: IdentitySummary


def _identity_to_summary(identity: Identity) -> IdentitySummary:
    return IdentitySummary(id=identity.id, email=identity.email, role=identity.role)


def _validation_error(e: InputValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": str(e), "field": e.field},
    )


def _set_session_cookie(request: Request, response: Response, token: str, max_age: int) -> None:
    """Attach the session token as an HTTP-only cookie that lives as long as the token."""
    settings = request.app.state.settings
    response.set_cookie(
        key=settings.auth.cookie_name,
        value=token,
        max_age=max_age,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )


@router.post("/send-otp")
async def send_otp(body: SendOtpRequest, request: Request) -> Any:
    """
    Start a login: email a one-time code to the address.

    Response:
        { "message": "OTP sent successfully" }
    """
    auth_service = request.app.state.auth_service
    try:
        await run_in_threadpool(auth_service.request_code, body.email)
    except InputValidationError as e:
        return _validation_error(e)
    except DeliveryError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=e.public_message,
        )
    return {"message": "OTP sent successfully"}


@router.post("/verify-otp")
async def verify_otp(body: VerifyOtpRequest, request: Request) -> Any:
    """
    Finish a login with the emailed code.

    Response:
        {
          "message": "Login successful",
          "user": { "id": "...", "email": "...", "role": "user" }
        }
    """
    auth_service = request.app.state.auth_service
    try:
        result = await run_in_threadpool(auth_service.verify_code, body.email, body.otp)
    except InputValidationError as e:
        return _validation_error(e)
    except InvalidCodeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.public_message)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=e.public_message,
        )

    response = JSONResponse(
        content={
            "message": "Login successful",
            "user": _identity_to_summary(result.identity).model_dump(),
        }
    )
    _set_session_cookie(request, response, result.token, result.max_age)
    return response


@router.get("/me", response_model=MeResponse)
async def me(claims: SessionClaims = Depends(require_session)) -> MeResponse:
    """Return the identity carried by the current session."""
    return MeResponse(
        user=IdentitySummary(id=claims.user_id, email=claims.email, role=claims.role)
    )


@router.post("/logout")
async def logout(request: Request) -> Dict[str, str]:
    """Clear the session cookie. Works with or without a valid session."""
    response = JSONResponse({"message": "Logged out successfully"})
    response.delete_cookie(request.app.state.settings.auth.cookie_name, path="/")
    return response
