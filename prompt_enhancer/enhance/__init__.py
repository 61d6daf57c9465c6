"""Prompt enhancement through an external chat model."""

from .client import EnhanceClient, EnhanceResult
from .prompts import PromptCategory, system_prompt_for

__all__ = [
    "EnhanceClient",
    "EnhanceResult",
    "PromptCategory",
    "system_prompt_for",
]
