"""Prompt enhancement via an OpenAI-compatible chat API (OpenRouter)"""

import time
from typing import Optional

from openai import APIConnectionError, APIError, APITimeoutError, OpenAI, RateLimitError
from pydantic import BaseModel
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .prompts import PromptCategory, build_user_message, system_prompt_for
from ..core.config import EnhanceSettings
from ..utils.exceptions import EnhancementError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class EnhanceResult(BaseModel):
    enhanced_prompt: str
    model_used: str
    latency_ms: int


class EnhanceClient:
    """
    Client for the enhancement model.

    Features:
    - Category-specific system instruction
    - Bounded timeout and retry on transient API errors
    - Empty or failed completions raise EnhancementError
    """

    def __init__(self, settings: EnhanceSettings, app_url: str = "http://localhost:8000"):
        self.settings = settings
        self.app_url = app_url
        self._client: Optional[OpenAI] = None

    def is_available(self) -> bool:
        """Return True if an API key is configured"""
        return bool(self.settings.api_key)

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self.settings.api_key:
                raise EnhancementError("OPENROUTER_API_KEY is not configured")
            self._client = OpenAI(
                api_key=self.settings.api_key,
                base_url=self.settings.base_url,
                timeout=self.settings.timeout_seconds,
                max_retries=0,
                default_headers={"HTTP-Referer": self.app_url, "X-Title": "PromptEnhancer"},
            )
        return self._client

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type((APIConnectionError, APITimeoutError, RateLimitError)),
        reraise=True,
    )
    def _complete(self, system_prompt: str, user_message: str):
        return self._get_client().chat.completions.create(
            model=self.settings.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
        )

    def enhance(self, prompt: str, category: PromptCategory) -> EnhanceResult:
        """
        Enhance a prompt for the given category.

        Raises:
            EnhancementError: Missing key, API failure or empty completion
        """
        system_prompt = system_prompt_for(category)
        start = time.monotonic()
        try:
            response = self._complete(system_prompt, build_user_message(prompt))
        except APIError as e:
            logger.error("Enhancement API error", error=str(e), model=self.settings.model)
            raise EnhancementError(status_code=getattr(e, "status_code", None)) from e
        latency_ms = int((time.monotonic() - start) * 1000)

        content = None
        if response.choices:
            content = (response.choices[0].message.content or "").strip()
        if not content:
            logger.error("Enhancement API returned no content", model=self.settings.model)
            raise EnhancementError("No response from AI model")

        logger.info(
            "Prompt enhanced",
            category=PromptCategory(category).value,
            model=response.model or self.settings.model,
            latency_ms=latency_ms,
        )
        return EnhanceResult(
            enhanced_prompt=content,
            model_used=response.model or self.settings.model,
            latency_ms=latency_ms,
        )
