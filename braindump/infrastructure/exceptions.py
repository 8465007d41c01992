"""
Custom Exceptions for BrainDump

Hierarchical exception classes for proper error handling across layers.
"""

from typing import Optional, Dict, Any


class BrainDumpError(Exception):
    """Base exception for all BrainDump errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class ValidationError(BrainDumpError):
    """Raised when input validation fails."""
    pass


class DatabaseError(BrainDumpError):
    """Raised when database operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table
        super().__init__(message, details, original_error)


class NotFoundError(DatabaseError):
    """Raised when a requested resource is not found."""
    pass


class QuotaExceededError(BrainDumpError):
    """Raised when a free user has used up today's dumps."""

    def __init__(
        self,
        message: str = "Daily brain dump limit reached",
        daily_limit: Optional[int] = None,
    ):
        details: Dict[str, Any] = {"remaining_dumps": 0}
        if daily_limit is not None:
            details["daily_limit"] = daily_limit
        super().__init__(message, details)


class AIServiceError(BrainDumpError):
    """Raised when AI (DeepSeek/Gemini) operations fail."""

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if model:
            details["model"] = model
        if operation:
            details["operation"] = operation
        super().__init__(message, details, original_error)


class BillingServiceError(BrainDumpError):
    """Raised when the PayPal billing flow fails at any step."""

    def __init__(
        self,
        message: str,
        step: Optional[str] = None,
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        details: Dict[str, Any] = {}
        if step:
            details["step"] = step
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details, original_error)


class AuthProviderError(BrainDumpError):
    """Raised when the auth provider rejects a request."""
    pass


class ConfigurationError(BrainDumpError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details, original_error)
