"""Tests for the core exception hierarchy and classification utilities."""

import pytest

from core.errors.exceptions import (
    CacheBackendError,
    ConfigurationError,
    CoreError,
    ErrorCategory,
    PermanentError,
    TransientError,
    classify_exception,
    is_retryable_error,
)
from marketo.api_client import MarketoApiError
from marketo.capabilities.leads import PartitionNotFoundError

# =============================================================================
# CoreError
# =============================================================================


class TestCoreError:
    def test_message_and_defaults(self):
        error = CoreError("something broke")

        assert error.message == "something broke"
        assert error.cause is None
        assert error.context == {}
        assert error.category == ErrorCategory.UNKNOWN
        assert str(error) == "something broke"

    def test_str_includes_cause(self):
        cause = ValueError("bad value")
        error = CoreError("wrapper", cause=cause)

        assert str(error) == "wrapper | Caused by: bad value"

    def test_context_is_kept(self):
        error = CoreError("x", context={"partition_id": 3})
        assert error.context == {"partition_id": 3}


# =============================================================================
# Hierarchy
# =============================================================================


class TestHierarchy:
    @pytest.mark.parametrize(
        "error_class, category, retryable",
        [
            (TransientError, ErrorCategory.TRANSIENT, True),
            (PermanentError, ErrorCategory.PERMANENT, False),
            (ConfigurationError, ErrorCategory.PERMANENT, False),
            (CacheBackendError, ErrorCategory.TRANSIENT, True),
        ],
    )
    def test_categories(self, error_class, category, retryable):
        error = error_class("x")

        assert isinstance(error, CoreError)
        assert error.category == category
        assert error.is_retryable is retryable
        assert error.should_refresh_auth is False

    def test_partition_not_found_is_permanent(self):
        error = PartitionNotFoundError(9)

        assert isinstance(error, PermanentError)
        assert str(error) == "There is no Partition with id 9"
        assert error.context == {"partition_id": 9}


# =============================================================================
# classify_exception / is_retryable_error
# =============================================================================


class TestClassifyException:
    def test_core_error_keeps_category(self):
        assert classify_exception(ConfigurationError("x")) == ErrorCategory.PERMANENT

    def test_error_with_category_attribute(self):
        error = MarketoApiError("Forbidden (403)", category=ErrorCategory.PERMANENT)
        assert classify_exception(error) == ErrorCategory.PERMANENT

    @pytest.mark.parametrize(
        "error, category",
        [
            (ConnectionResetError("connection reset by peer"), ErrorCategory.TRANSIENT),
            (TimeoutError("timeout"), ErrorCategory.TRANSIENT),
            (RuntimeError("401 Unauthorized"), ErrorCategory.AUTH),
            (RuntimeError("429 rate limit"), ErrorCategory.TRANSIENT),
            (RuntimeError("404 not found"), ErrorCategory.PERMANENT),
            (RuntimeError("something odd"), ErrorCategory.UNKNOWN),
        ],
    )
    def test_generic_exceptions(self, error, category):
        assert classify_exception(error) == category


class TestIsRetryableError:
    def test_core_error(self):
        assert is_retryable_error(TransientError("x")) is True
        assert is_retryable_error(PermanentError("x")) is False

    def test_uses_is_retryable_flag(self):
        assert is_retryable_error(MarketoApiError("Server error (503)", is_retryable=True))
        assert not is_retryable_error(MarketoApiError("Daily quota", is_retryable=False))

    def test_falls_back_to_classification(self):
        assert is_retryable_error(RuntimeError("connection refused")) is True
        assert is_retryable_error(RuntimeError("404 not found")) is False
