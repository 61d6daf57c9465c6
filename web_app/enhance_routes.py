"""
FastAPI routes for prompt enhancement and history.

Prefix: /api (all routes require a session)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from prompt_enhancer.auth.models import SessionClaims
from prompt_enhancer.enhance.prompts import PromptCategory
from prompt_enhancer.stores.history import HistoryEntry
from prompt_enhancer.utils.exceptions import EnhancementError, StoreError
from prompt_enhancer.utils.logger import get_logger
from .auth_middleware import require_session

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["enhance"])


class EnhanceRequest(BaseModel):
    prompt: str = Field(..., min_length=10, max_length=10000)
    category: PromptCategory


class FavoriteRequest(BaseModel):
    is_favorite: bool


def _store_unavailable(e: StoreError, user_id: str) -> HTTPException:
    logger.error("History store failure", user_id=user_id, error=str(e))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=e.public_message,
    )


def _entry_to_public(entry: HistoryEntry) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "originalPrompt": entry.original_prompt,
        "enhancedPrompt": entry.enhanced_prompt,
        "category": entry.category.value,
        "createdAt": entry.created_at.isoformat(),
        "isFavorite": entry.is_favorite,
        "tags": entry.tags,
        "metadata": {
            "modelUsed": entry.metadata.model_used,
            "latency": entry.metadata.latency_ms,
        },
    }


@router.post("/enhance")
async def enhance(
    body: EnhanceRequest,
    request: Request,
    claims: SessionClaims = Depends(require_session),
) -> Dict[str, Any]:
    """
    Enhance a prompt and save it to the user's history.

    Response:
        {
          "enhancedPrompt": "...",
          "metadata": { "modelUsed": "...", "latency": 1234 }
        }
    """
    enhancer = request.app.state.enhancer
    history = request.app.state.history
    try:
        result = await run_in_threadpool(enhancer.enhance, body.prompt, body.category)
    except EnhancementError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.public_message)

    try:
        await run_in_threadpool(
            history.add,
            claims.user_id,
            body.prompt,
            result.enhanced_prompt,
            body.category,
            result.model_used,
            result.latency_ms,
        )
    except StoreError as e:
        raise _store_unavailable(e, claims.user_id)
    return {
        "enhancedPrompt": result.enhanced_prompt,
        "metadata": {"modelUsed": result.model_used, "latency": result.latency_ms},
    }


@router.get("/history")
async def list_history(
    request: Request,
    category: Optional[PromptCategory] = None,
    favorites: bool = False,
    claims: SessionClaims = Depends(require_session),
) -> Dict[str, List[Dict[str, Any]]]:
    """Last 20 enhancements for the current user, newest first."""
    try:
        entries = await run_in_threadpool(
            request.app.state.history.list_for_user,
            claims.user_id,
            category=category,
            favorites_only=favorites,
        )
    except StoreError as e:
        raise _store_unavailable(e, claims.user_id)
    return {"history": [_entry_to_public(e) for e in entries]}


@router.post("/history/{entry_id}/favorite")
async def set_favorite(
    entry_id: str,
    body: FavoriteRequest,
    request: Request,
    claims: SessionClaims = Depends(require_session),
) -> Dict[str, Any]:
    try:
        entry = await run_in_threadpool(
            request.app.state.history.set_favorite, claims.user_id, entry_id, body.is_favorite
        )
    except StoreError as e:
        raise _store_unavailable(e, claims.user_id)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="History entry not found")
    return _entry_to_public(entry)
