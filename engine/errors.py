"""
Error taxonomy for the trade analysis pipeline.

Every failure is caught at the route boundary and converted to a JSON
payload; nothing here ever reaches the client as an unhandled exception.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class TradeAnalysisError(Exception):
    """Base class for all pipeline errors."""
    pass


class InputValidationError(TradeAnalysisError):
    """Raised when the request is missing the asset or investment amount."""
    pass


class GenerationSchemaError(TradeAnalysisError):
    """Raised when a candidate analysis does not match the schema."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path
        self.reason = message


class NoObjectGeneratedError(GenerationSchemaError):
    """
    The model answered, but no schema-conformant object could be built.

    Carries the raw text so callers can attempt their own recovery, plus
    the provider diagnostics (finish reason, token usage).
    """

    def __init__(
        self,
        text: Optional[str],
        cause: Optional[BaseException] = None,
        finish_reason: Optional[str] = None,
        usage: Optional[Dict[str, Any]] = None,
    ):
        path = getattr(cause, "path", "")
        reason = str(getattr(cause, "reason", cause)) if cause else "No object generated"
        super().__init__(reason, path=path)
        self.text = text
        self.cause = cause
        self.finish_reason = finish_reason
        self.usage = usage or {}


class UpstreamFetchError(TradeAnalysisError):
    """Raised when an external collaborator (market data, LLM) fails."""
    pass


class DataFetchError(UpstreamFetchError):
    """Raised when market data fetching fails."""
    pass


class GenerationServiceError(UpstreamFetchError):
    """Raised when the generation service call itself fails."""
    pass
