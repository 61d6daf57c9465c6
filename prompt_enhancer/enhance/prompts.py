"""Category system instructions for prompt enhancement."""

from enum import Enum


class PromptCategory(str, Enum):
    CODING = "coding"
    BUG_FIXING = "bug-fixing"
    FRONTEND = "frontend"
    BACKEND = "backend"
    GENERAL = "general"


_BASE = (
    "You are an expert Prompt Engineer for AI coding assistants. "
    "Rewrite the user's request as a structured, actionable Markdown prompt. "
    "If critical context is missing, start with clarifying questions."
)

SYSTEM_PROMPTS = {
    PromptCategory.CODING: _BASE
    + " Cover: Task, Technical Requirements, Implementation Guidelines,"
    " File Structure, Acceptance Criteria, Edge Cases.",
    PromptCategory.BUG_FIXING: _BASE
    + " Treat the input as a bug report. Cover: Bug Summary, Context, Error Details,"
    " Expected vs Actual Behavior, Reproduction Steps, Debugging Strategy.",
    PromptCategory.FRONTEND: _BASE
    + " Focus on UI work. Cover: Component Goal, Framework and Styling, State,"
    " Accessibility, Responsive Behavior, Acceptance Criteria.",
    PromptCategory.BACKEND: _BASE
    + " Focus on server work. Cover: Endpoint or Service Goal, Data Model, Validation,"
    " Error Handling, Security, Performance, Acceptance Criteria.",
    PromptCategory.GENERAL: _BASE
    + " Cover: Objective, Context, Constraints, Expected Output Format.",
}


def system_prompt_for(category: PromptCategory) -> str:
    return SYSTEM_PROMPTS[PromptCategory(category)]


def build_user_message(original_prompt: str) -> str:
    return f'Original Prompt:\n"{original_prompt}"\n\nEnhance this prompt.'
