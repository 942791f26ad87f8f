"""
Core module for ClinicalTrials.gov Search MCP.

Provides the unified exception hierarchy shared by the record source,
the matching/aggregation engine and the MCP tools.
"""

from .exceptions import (
    # Base
    CtgovSearchError,
    ErrorContext,
    ErrorSeverity,
    ErrorCategory,
    # API errors
    APIError,
    RateLimitError,
    NetworkError,
    ServiceUnavailableError,
    # Validation errors
    ValidationError,
    InvalidNCTIdError,
    InvalidParameterError,
    QuotaExceededError,
    # Data errors
    DataError,
    NotFoundError,
    ParseError,
    InsufficientDataError,
    # Control flow / configuration
    OperationCancelledError,
    ConfigurationError,
)

__all__ = [
    "CtgovSearchError",
    "ErrorContext",
    "ErrorSeverity",
    "ErrorCategory",
    "APIError",
    "RateLimitError",
    "NetworkError",
    "ServiceUnavailableError",
    "ValidationError",
    "InvalidNCTIdError",
    "InvalidParameterError",
    "QuotaExceededError",
    "DataError",
    "NotFoundError",
    "ParseError",
    "InsufficientDataError",
    "OperationCancelledError",
    "ConfigurationError",
]
