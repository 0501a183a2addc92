"""
LLM-specific exceptions.

This module defines all custom exceptions used in the LLM provider system.
Providers never retry: every failure surfaces as one of these so the
orchestrator can isolate it to the unit that issued the request.
"""

from typing import Optional, Dict, Any

from speranto.core.exceptions import TranslationError


class LLMError(TranslationError):
    """Base exception for LLM provider errors."""
    pass


class LLMConnectionError(LLMError):
    """Raised when the provider cannot be reached (network error, timeout)."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context, recoverable=True)


class LLMRateLimitError(LLMError):
    """Raised when the provider answers 429."""

    def __init__(
        self,
        message: str,
        retry_after: Optional[float] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        ctx = dict(context or {})
        if retry_after is not None:
            ctx['retry_after'] = retry_after
        super().__init__(message, ctx, recoverable=True)
        self.retry_after = retry_after


class LLMAuthenticationError(LLMError):
    """Raised when authentication fails (missing/invalid API key).

    This is NOT recoverable without user intervention.
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context, recoverable=False)


class LLMResponseError(LLMError):
    """Raised when LLM response is invalid or unparseable."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context, recoverable=True)


class ModelUnavailableError(LLMError):
    """Raised when the requested model cannot be found or pulled."""
    pass
