"""Unit tests for inference error classification."""

from __future__ import annotations

import httpx
import pytest

from insightmeet.inference.errors import (
    ErrorCode,
    InferenceConfigError,
    InferenceError,
    classify_exception,
    classify_response,
    is_model_loading,
    is_retryable_status,
    upstream_error_detail,
)


class TestRetryableStatus:
    """Retryability derives from the HTTP status."""

    @pytest.mark.parametrize("status", [None, 429, 500, 502, 503, 504])
    def test_retryable(self, status: int | None) -> None:
        """5xx, 429 and missing statuses are retryable."""
        assert is_retryable_status(status)

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 413, 422])
    def test_final(self, status: int) -> None:
        """Other 4xx statuses are final."""
        assert not is_retryable_status(status)


class TestInferenceErrorFactories:
    """Tests for InferenceError factory methods."""

    def test_api_error_uses_upstream_message(self) -> None:
        """The upstream ``error`` field appears in the message."""
        error = InferenceError.api_error(403, {"error": "Authorization required"})

        assert error.code is ErrorCode.API_ERROR
        assert error.status_code == 403
        assert error.retryable is False
        assert "Authorization required" in error.message
        assert error.response_body == {"error": "Authorization required"}

    def test_api_error_falls_back_to_reason(self) -> None:
        """Without an upstream message the reason phrase is used."""
        error = InferenceError.api_error(502, None, reason="Bad Gateway")
        assert "Bad Gateway" in str(error)
        assert error.retryable is True

    def test_rate_limit_exceeded_is_429(self) -> None:
        """Local rate-limit rejections carry status 429."""
        error = InferenceError.rate_limit_exceeded("anonymous:gpt2")
        assert error.code is ErrorCode.RATE_LIMIT_EXCEEDED
        assert error.status_code == 429
        assert "anonymous:gpt2" in str(error)

    @pytest.mark.parametrize(
        ("error", "code"),
        [
            (InferenceError.unknown_model("acme/x"), ErrorCode.UNKNOWN_MODEL),
            (
                InferenceError.invalid_input_type("a string", 42),
                ErrorCode.INVALID_INPUT_TYPE,
            ),
            (InferenceError.input_too_long(2000, 1024), ErrorCode.INPUT_TOO_LONG),
            (
                InferenceError.max_retries_exceeded("gpt2", 4),
                ErrorCode.MAX_RETRIES_EXCEEDED,
            ),
        ],
        ids=["unknown-model", "invalid-input", "too-long", "max-retries"],
    )
    def test_local_failures_are_not_retryable(
        self, error: InferenceError, code: ErrorCode
    ) -> None:
        """Validation and exhaustion errors never invite a retry."""
        assert error.code is code
        assert error.status_code is None
        assert error.retryable is False

    def test_invalid_input_names_actual_type(self) -> None:
        """The message names the rejected type."""
        assert "int" in str(InferenceError.invalid_input_type("a string", 42))

    def test_network_failures_are_retryable(self) -> None:
        """Timeouts and network errors have no status and are retryable."""
        assert InferenceError.timeout(500).retryable
        assert InferenceError.network_error("reset").retryable


class TestClassification:
    """Tests for classify_response and classify_exception."""

    def test_classify_response_builds_api_error(self) -> None:
        """Non-2xx responses become api-error."""
        error = classify_response(500, "upstream exploded")
        assert error.code is ErrorCode.API_ERROR
        assert "upstream exploded" in str(error)

    def test_classify_timeout(self) -> None:
        """httpx timeouts map to the timeout error."""
        error = classify_exception(httpx.ReadTimeout("slow"), timeout_ms=1500)
        assert "timed out after 1500ms" in str(error)

    def test_classify_connect_error(self) -> None:
        """Connection failures keep their description."""
        error = classify_exception(httpx.ConnectError("refused"), timeout_ms=10)
        assert "refused" in str(error)
        assert error.retryable


class TestUpstreamDetail:
    """Tests for upstream body inspection."""

    def test_error_list_is_joined(self) -> None:
        """List-valued errors are joined."""
        assert upstream_error_detail({"error": ["a", "b"]}) == "a; b"

    def test_long_text_is_truncated(self) -> None:
        """Plain-text bodies are previewed."""
        detail = upstream_error_detail("x" * 500)
        assert detail is not None
        assert len(detail) < 250

    @pytest.mark.parametrize(
        ("status", "body", "expected"),
        [
            (503, {"error": "Model gpt2 is currently loading"}, True),
            (503, {"error": "Service unavailable"}, False),
            (500, {"error": "Model gpt2 is currently loading"}, False),
        ],
    )
    def test_model_loading(self, status: int, body: object, *, expected: bool) -> None:
        """Only 503s mentioning loading are loading responses."""
        assert is_model_loading(status, body) is expected


class TestInferenceConfigError:
    """Tests for configuration error factories."""

    def test_invalid_positive_int(self) -> None:
        """The message names the variable and the constraint."""
        error = InferenceConfigError.invalid_positive_int("INSIGHTMEET_CACHE_TTL_MS", "-1")
        assert "INSIGHTMEET_CACHE_TTL_MS" in str(error)
        assert "positive integer" in str(error)

    def test_invalid_endpoint(self) -> None:
        """Endpoint errors mention the accepted scheme."""
        assert "http(s)" in str(InferenceConfigError.invalid_endpoint("ftp://x"))
