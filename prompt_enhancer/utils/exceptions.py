"""Custom exceptions for PromptEnhancer"""

from typing import Optional


class PromptEnhancerError(Exception):
    """Base exception for PromptEnhancer"""

    # Message that is safe to return to a client
    public_message = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.public_message)


class ConfigError(PromptEnhancerError):
    """Configuration error (fatal at startup)"""
    pass


class InputValidationError(PromptEnhancerError, ValueError):
    """Malformed input, reported with the offending field"""

    def __init__(self, message: str, field: str):
        self.field = field
        super().__init__(message)


class InvalidCodeError(PromptEnhancerError):
    """Code not found, expired or wrong. Deliberately not distinguished."""

    public_message = "Invalid or expired OTP"


class DeliveryError(PromptEnhancerError):
    """The one-time code could not be sent"""

    public_message = "Failed to send OTP. Please try again."


class AuthenticationError(PromptEnhancerError):
    """Verification could not be completed for a non-user reason"""

    public_message = "Verification failed. Please try again."


class StoreError(PromptEnhancerError):
    """Persistent store unavailable or lock timeout"""

    public_message = "Service temporarily unavailable. Please try again."


class EnhancementError(PromptEnhancerError):
    """Error from the prompt enhancement API"""

    public_message = "Failed to enhance prompt. Please try again."

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
