"""Tests for the domain error taxonomy and failure classification."""

import pytest

from ctxgen.domain.errors import (
    AllProvidersFailed,
    FailureKind,
    InvalidTransition,
    ProviderError,
    ResponseParseError,
    RetryLimitReached,
    classify_failure,
)
from ctxgen.domain.models.execution import Failure


class TestClassifyFailure:
    def test_explicit_kind_wins_over_message(self):
        error = ProviderError("429 Too Many Requests", kind=FailureKind.PAYMENT_REQUIRED)

        assert classify_failure(error) == FailureKind.PAYMENT_REQUIRED

    @pytest.mark.parametrize(
        "message,expected",
        [
            ("HTTP 429: slow down", FailureKind.RATE_LIMITED),
            ("Rate limit exceeded for model", FailureKind.RATE_LIMITED),
            ("RateLimitReached", FailureKind.RATE_LIMITED),
            ("Too Many Requests", FailureKind.RATE_LIMITED),
            ("402 Payment Required", FailureKind.PAYMENT_REQUIRED),
            ("Insufficient credits on account", FailureKind.PAYMENT_REQUIRED),
            ("insufficient_quota", FailureKind.PAYMENT_REQUIRED),
            ("Request timed out", FailureKind.TIMEOUT),
            ("connection refused", FailureKind.UNAVAILABLE),
        ],
    )
    def test_message_markers(self, message, expected):
        assert classify_failure(ProviderError(message)) == expected

    def test_plain_exceptions_are_classified_by_message(self):
        assert classify_failure(RuntimeError("got 429")) == FailureKind.RATE_LIMITED
        assert classify_failure(RuntimeError("boom")) == FailureKind.UNAVAILABLE

    def test_timeout_error_type(self):
        assert classify_failure(TimeoutError()) == FailureKind.TIMEOUT

    def test_parse_error_is_malformed(self):
        assert classify_failure(ResponseParseError("empty")) == FailureKind.MALFORMED


class TestAllProvidersFailed:
    def test_message_lists_providers_and_kinds(self):
        attempts = [
            Failure(kind=FailureKind.UNAVAILABLE, provider_name="a"),
            Failure(kind=FailureKind.RATE_LIMITED, provider_name="b"),
        ]

        error = AllProvidersFailed(attempts)

        assert error.provider_names == ["a", "b"]
        assert "a (unavailable)" in str(error)
        assert "b (rate_limited)" in str(error)

    def test_no_attempts_message(self):
        error = AllProvidersFailed([])

        assert error.attempts == []
        assert "No AI providers available" in str(error)

    def test_attempts_are_copied(self):
        attempts = [Failure(kind=FailureKind.TIMEOUT, provider_name="a")]
        error = AllProvidersFailed(attempts)
        attempts.clear()

        assert len(error.attempts) == 1


class TestRetryLimitReached:
    def test_carries_partial_outputs(self):
        error = RetryLimitReached({"CodeGenSubAgent": "code"}, retry_count=2, last_error="boom")

        assert error.outputs == {"CodeGenSubAgent": "code"}
        assert error.retry_count == 2
        assert "CodeGenSubAgent" in str(error)
        assert "boom" in str(error)

    def test_message_without_outputs(self):
        assert "completed stages: none" in str(RetryLimitReached({}, retry_count=0))


def test_invalid_transition_message():
    error = InvalidTransition("completed", "start")

    assert error.state == "completed"
    assert error.event == "start"
    assert "completed" in str(error)
