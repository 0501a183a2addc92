"""
Exception hierarchy for the translation pipeline.

Every error raised by speranto derives from TranslationError so callers can
tell pipeline failures apart from programming errors. The hierarchy mirrors
how failures are contained:

- ParseError: a source or existing-translation document could not be parsed
- UnitTranslationError: one translation unit failed (isolated to its file/language)
- ConnectivityError: the database or the LLM backend is unreachable (fatal)
- ConfigurationError: the run is misconfigured (fatal before any work starts)
"""

from typing import Optional, Dict, Any


class TranslationError(Exception):
    """Base exception for all translation-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context about the error
        recoverable: Whether the error can potentially be recovered from
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        recoverable: bool = False
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        base = f"{self.__class__.__name__}: {self.message}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base += f" (context: {context_str})"
        return base


# ============================================================================
# Document errors
# ============================================================================

class ParseError(TranslationError):
    """Raised when a document cannot be parsed into a content tree.

    Attributes:
        path: File the content came from, when known
        format_name: Name of the parser that failed
    """

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        format_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        ctx = dict(context or {})
        if path is not None:
            ctx['path'] = path
        if format_name is not None:
            ctx['format'] = format_name
        super().__init__(message, ctx, recoverable=True)
        self.path = path
        self.format_name = format_name


class ReconstructionError(TranslationError):
    """Raised when translated values cannot be written back into a tree."""
    pass


# ============================================================================
# Translation unit errors
# ============================================================================

class UnitTranslationError(TranslationError):
    """Raised when translating a specific unit fails.

    Attributes:
        unit_key: Key of the failed unit
    """

    def __init__(
        self,
        message: str,
        unit_key: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        recoverable: bool = True
    ):
        ctx = dict(context or {})
        if unit_key is not None:
            ctx['unit'] = unit_key
        super().__init__(message, ctx, recoverable)
        self.unit_key = unit_key


# ============================================================================
# Run-level errors
# ============================================================================

class ConnectivityError(TranslationError):
    """Raised when a backend (database or LLM provider) cannot be reached.

    Attributes:
        remediation: Actionable hint printed alongside the error
    """

    def __init__(
        self,
        message: str,
        remediation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, context, recoverable=False)
        self.remediation = remediation

    def __str__(self) -> str:
        base = super().__str__()
        if self.remediation:
            base += f"\n{self.remediation}"
        return base


class ConfigurationError(TranslationError):
    """Raised when the configuration is missing or invalid."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context, recoverable=False)
