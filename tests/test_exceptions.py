"""Tests for the structured exception hierarchy."""

from __future__ import annotations

import pytest

from ctgov_search.core.exceptions import (
    APIError,
    ConfigurationError,
    CtgovSearchError,
    DataError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    InsufficientDataError,
    InvalidNCTIdError,
    InvalidParameterError,
    NetworkError,
    NotFoundError,
    OperationCancelledError,
    ParseError,
    QuotaExceededError,
    RateLimitError,
    ServiceUnavailableError,
    ValidationError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        ("error", "parent"),
        [
            (RateLimitError(), APIError),
            (NetworkError(), APIError),
            (ServiceUnavailableError(), APIError),
            (InvalidNCTIdError("bad"), ValidationError),
            (InvalidParameterError("age", -1, "0-120"), ValidationError),
            (QuotaExceededError(6000, 5000), ValidationError),
            (NotFoundError("Study", "NCT00000001"), DataError),
            (ParseError("bad json"), DataError),
            (InsufficientDataError("NCT00000001", "eligibility module"), DataError),
            (OperationCancelledError(), CtgovSearchError),
            (ConfigurationError("bad"), CtgovSearchError),
        ],
    )
    def test_subclasses(self, error, parent):
        assert isinstance(error, parent)
        assert isinstance(error, CtgovSearchError)


class TestBaseError:
    def test_to_dict_minimal(self):
        error = CtgovSearchError("boom")
        result = error.to_dict()
        assert result == {
            "error": "boom",
            "category": "api",
            "severity": "error",
            "retryable": False,
        }

    def test_to_dict_with_context(self):
        context = ErrorContext(
            tool_name="search_studies",
            suggestion="Try again",
            example="search_studies(query='x')",
            retry_after=2.0,
            metadata={"page": 3},
        )
        result = CtgovSearchError("boom", context=context, retryable=True).to_dict()
        assert result["tool"] == "search_studies"
        assert result["suggestion"] == "Try again"
        assert result["example"] == "search_studies(query='x')"
        assert result["retry_after_seconds"] == 2.0
        assert result["details"] == {"page": 3}

    def test_agent_message(self):
        context = ErrorContext(suggestion="Narrow the query", example="analyze_trends(...)")
        message = CtgovSearchError("Too broad", context=context).to_agent_message()
        assert "❌" in message
        assert "Too broad" in message
        assert "Narrow the query" in message
        assert "analyze_trends(...)" in message

    def test_agent_message_retryable(self):
        message = RateLimitError(retry_after=3.0).to_agent_message()
        assert "Retry after 3.0 seconds" in message


class TestSpecificErrors:
    def test_rate_limit(self):
        error = RateLimitError(retry_after=5.0)
        assert error.status_code == 429
        assert error.retryable is True
        assert error.severity == ErrorSeverity.TRANSIENT
        assert error.context.retry_after == 5.0

    def test_network_error_category(self):
        assert NetworkError().category == ErrorCategory.NETWORK

    def test_service_unavailable_message(self):
        error = ServiceUnavailableError("HTTP 503", status_code=503)
        assert str(error) == "ClinicalTrials.gov: HTTP 503"
        assert error.status_code == 503

    def test_quota_exceeded(self):
        error = QuotaExceededError(12000, 5000)
        assert error.total_count == 12000
        assert error.quota == 5000
        assert "12000" in str(error)
        assert "5000" in str(error)
        assert error.to_dict()["details"] == {"total_studies": 12000, "limit": 5000}
        assert error.retryable is False

    def test_invalid_parameter_keeps_name(self):
        error = InvalidParameterError("max_results", 0, "1-50")
        assert error.param_name == "max_results"
        assert error.context.suggestion == "Expected 1-50"

    def test_invalid_nct_id(self):
        error = InvalidNCTIdError("NCT123")
        assert "NCT123" in str(error)
        assert error.context.input_value == "NCT123"

    def test_context_defaults_do_not_override(self):
        error = InvalidNCTIdError("x", context=ErrorContext(suggestion="custom"))
        assert error.context.suggestion == "custom"
        assert error.context.example is not None

    def test_not_found(self):
        assert str(NotFoundError("Study", "NCT00000001")) == "Study not found: NCT00000001"
        assert str(NotFoundError("Study")) == "Study not found"

    def test_parse_error_source(self):
        assert str(ParseError("bad", source="ClinicalTrials.gov")) == "Parse error (ClinicalTrials.gov): bad"

    def test_cancelled(self):
        error = OperationCancelledError(pages_fetched=2)
        assert error.pages_fetched == 2
        assert error.severity == ErrorSeverity.WARNING
        assert error.category == ErrorCategory.CANCELLED

    def test_configuration_is_critical(self):
        assert ConfigurationError("bad").severity == ErrorSeverity.CRITICAL
