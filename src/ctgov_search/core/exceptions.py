"""
Unified Exception Hierarchy for ClinicalTrials.gov Search MCP.

Exception Hierarchy:
    CtgovSearchError (base)
    ├── APIError
    │   ├── RateLimitError
    │   ├── NetworkError
    │   └── ServiceUnavailableError
    ├── ValidationError
    │   ├── InvalidNCTIdError
    │   ├── InvalidParameterError
    │   └── QuotaExceededError
    ├── DataError
    │   ├── NotFoundError
    │   ├── ParseError
    │   └── InsufficientDataError
    ├── OperationCancelledError
    └── ConfigurationError

APIError subclasses are raised by record sources and travel through the
matching and aggregation engine untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Any


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    WARNING = auto()      # Recoverable, can continue
    ERROR = auto()        # Failed but can retry
    CRITICAL = auto()     # Cannot continue
    TRANSIENT = auto()    # Temporary, caller may retry


class ErrorCategory(Enum):
    """Categories for error classification."""
    API = "api"
    VALIDATION = "validation"
    DATA = "data"
    CONFIGURATION = "config"
    NETWORK = "network"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Rich context for error messages."""
    tool_name: str | None = None
    operation: str | None = None
    input_value: Any = None
    suggestion: str | None = None
    example: str | None = None
    retry_after: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class CtgovSearchError(Exception):
    """
    Base exception for all ClinicalTrials.gov search errors.

    Provides:
    - Structured error context
    - Severity classification
    - Agent-friendly formatting
    """

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        category: ErrorCategory = ErrorCategory.API,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.context = context or ErrorContext()
        self.severity = severity
        self.category = category
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "error": str(self),
            "category": self.category.value,
            "severity": self.severity.name.lower(),
            "retryable": self.retryable,
        }
        if self.context.tool_name:
            result["tool"] = self.context.tool_name
        if self.context.suggestion:
            result["suggestion"] = self.context.suggestion
        if self.context.example:
            result["example"] = self.context.example
        if self.context.retry_after:
            result["retry_after_seconds"] = self.context.retry_after
        if self.context.metadata:
            result["details"] = dict(self.context.metadata)
        return result

    def to_agent_message(self) -> str:
        """Format for Agent consumption (Markdown)."""
        parts = [f"❌ **Error**: {self}"]

        if self.context.suggestion:
            parts.append(f"💡 **Suggestion**: {self.context.suggestion}")
        if self.context.example:
            parts.append(f"📝 **Example**: `{self.context.example}`")
        if self.retryable:
            if self.context.retry_after:
                parts.append(f"🔄 Retry after {self.context.retry_after:.1f} seconds")
            else:
                parts.append("🔄 This error is retryable")

        return "\n".join(parts)


def _with_defaults(context: ErrorContext | None, **defaults: Any) -> ErrorContext:
    """Fill unset context fields with the given defaults."""
    ctx = context or ErrorContext()
    updates = {key: value for key, value in defaults.items() if getattr(ctx, key) in (None, {})}
    return replace(ctx, **updates) if updates else ctx


# =============================================================================
# API Errors
# =============================================================================

class APIError(CtgovSearchError):
    """Base class for errors reported by the remote catalog."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        context: ErrorContext | None = None,
        retryable: bool = True,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.ERROR,
            category=ErrorCategory.API,
            retryable=retryable,
        )
        self.status_code = status_code


class RateLimitError(APIError):
    """Raised when the API answers 429."""

    def __init__(
        self,
        message: str = "API rate limit exceeded",
        *,
        retry_after: float = 1.0,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = _with_defaults(context, suggestion="Wait and retry the request")
        ctx = replace(ctx, retry_after=retry_after)
        super().__init__(message, status_code=429, context=ctx, retryable=True)
        self.severity = ErrorSeverity.TRANSIENT


class NetworkError(APIError):
    """Raised for network connectivity issues and timeouts."""

    def __init__(
        self,
        message: str = "Network connection failed",
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(message, context=context, retryable=True)
        self.category = ErrorCategory.NETWORK


class ServiceUnavailableError(APIError):
    """Raised when the external service is temporarily unavailable."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        *,
        service: str = "ClinicalTrials.gov",
        status_code: int | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(f"{service}: {message}", status_code=status_code, context=context, retryable=True)
        self.severity = ErrorSeverity.TRANSIENT


# =============================================================================
# Validation Errors
# =============================================================================

class ValidationError(CtgovSearchError):
    """Base class for validation errors."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.WARNING,
            category=ErrorCategory.VALIDATION,
            retryable=False,
        )


class InvalidNCTIdError(ValidationError):
    """Raised when an NCT identifier is malformed."""

    def __init__(
        self,
        nct_id: Any,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = _with_defaults(
            context,
            input_value=nct_id,
            suggestion="NCT ID must be 'NCT' followed by 8 digits",
            example='get_study(nct_ids="NCT04280705")',
        )
        super().__init__(f"Invalid NCT ID format: {nct_id!r}", context=ctx)


class InvalidParameterError(ValidationError):
    """Raised when a parameter value is invalid."""

    def __init__(
        self,
        param_name: str,
        value: Any,
        expected: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = _with_defaults(context, input_value=value, suggestion=f"Expected {expected}")
        super().__init__(
            f"Invalid parameter '{param_name}': {value!r} (expected {expected})",
            context=ctx,
        )
        self.param_name = param_name


class QuotaExceededError(ValidationError):
    """Raised when a query matches more studies than may be fetched."""

    def __init__(
        self,
        total_count: int,
        quota: int,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = _with_defaults(
            context,
            suggestion="Provide a more specific query or filter",
            metadata={"total_studies": total_count, "limit": quota},
        )
        super().__init__(
            f"The query returned {total_count} studies, which exceeds the limit of {quota} for analysis",
            context=ctx,
        )
        self.total_count = total_count
        self.quota = quota


# =============================================================================
# Data Errors
# =============================================================================

class DataError(CtgovSearchError):
    """Base class for data-related errors."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.ERROR,
            category=ErrorCategory.DATA,
            retryable=False,
        )


class NotFoundError(DataError):
    """Raised when requested data is not found."""

    def __init__(
        self,
        resource: str,
        identifier: str | None = None,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        msg = f"{resource} not found"
        if identifier:
            msg = f"{resource} not found: {identifier}"

        ctx = _with_defaults(
            context,
            input_value=identifier,
            suggestion="Check the identifier and try again",
        )
        super().__init__(msg, context=ctx)


class ParseError(DataError):
    """Raised when a response body cannot be parsed."""

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        full_msg = f"Parse error: {message}"
        if source:
            full_msg = f"Parse error ({source}): {message}"
        super().__init__(full_msg, context=context)


class InsufficientDataError(DataError):
    """A study lacks a facet required for evaluation.

    Matching treats this as a per-study skip, never as a failure of the run.
    """

    def __init__(
        self,
        nct_id: str | None,
        facet: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(f"Study {nct_id or 'Unknown'} has no {facet}", context=context)
        self.nct_id = nct_id
        self.facet = facet


# =============================================================================
# Cancellation / Configuration
# =============================================================================

class OperationCancelledError(CtgovSearchError):
    """Raised when a paginated fetch is cancelled between pages."""

    def __init__(
        self,
        message: str = "Operation cancelled before all pages were fetched",
        *,
        pages_fetched: int = 0,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.WARNING,
            category=ErrorCategory.CANCELLED,
            retryable=False,
        )
        self.pages_fetched = pages_fetched


class ConfigurationError(CtgovSearchError):
    """Raised for configuration-related errors."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.CONFIGURATION,
            retryable=False,
        )
