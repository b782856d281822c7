"""Typed errors and failure classification for the inference client.

Every failure surfaced by :class:`~insightmeet.inference.client.InferenceClient`
is an :class:`InferenceError` carrying a classification code, the upstream
HTTP status (when there was one) and a ``retryable`` flag. The classification
helpers at the bottom of the module are what the transport's retry loop
consults, and callers may use them to layer their own policy on single calls.
"""

from __future__ import annotations

import enum
import typing as typ

import httpx

_BODY_PREVIEW_LIMIT = 200
_HTTP_SERVER_ERROR = 500
_HTTP_TOO_MANY_REQUESTS = 429
_HTTP_SERVICE_UNAVAILABLE = 503


class ErrorCode(enum.StrEnum):
    """Classification codes carried by :class:`InferenceError`."""

    UNKNOWN_MODEL = "unknown-model"
    INVALID_INPUT_TYPE = "invalid-input-type"
    INPUT_TOO_LONG = "input-too-long"
    RATE_LIMIT_EXCEEDED = "rate-limit-exceeded"
    API_ERROR = "api-error"
    DECODE_ERROR = "decode-error"
    MAX_RETRIES_EXCEEDED = "max-retries-exceeded"


def is_retryable_status(status_code: int | None) -> bool:
    """Return whether a failure with ``status_code`` may be retried.

    Server errors (5xx) and 429 are retryable. A missing status means the
    request never got an answer (network failure or timeout), which is also
    retryable. Every other status is final.
    """
    if status_code is None:
        return True
    return status_code >= _HTTP_SERVER_ERROR or status_code == _HTTP_TOO_MANY_REQUESTS


class InferenceError(Exception):
    """Uniform error raised by the inference client.

    Attributes
    ----------
    code
        Failure classification.
    status_code
        HTTP status from the upstream or local rejection, if any.
    response_body
        Decoded upstream error body, if any.
    retryable
        Whether repeating the same call may succeed. Derived from
        ``status_code`` unless given explicitly.

    """

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        status_code: int | None = None,
        response_body: object | None = None,
        retryable: bool | None = None,
    ) -> None:
        """Initialise the error; ``retryable`` defaults from the status."""
        self.code = code
        self.status_code = status_code
        self.response_body = response_body
        self.retryable = (
            is_retryable_status(status_code) if retryable is None else retryable
        )
        super().__init__(message)

    @property
    def message(self) -> str:
        """Human-readable description for display."""
        return str(self)

    @classmethod
    def unknown_model(cls, model_id: str) -> InferenceError:
        """Create error for a model id missing from the registry."""
        return cls(
            f"Unknown model: {model_id}",
            code=ErrorCode.UNKNOWN_MODEL,
            retryable=False,
        )

    @classmethod
    def invalid_input_type(cls, expected: str, actual: object) -> InferenceError:
        """Create error for input of the wrong type.

        Parameters
        ----------
        expected
            Description of the accepted input, such as ``"a string"``.
        actual
            The rejected input.

        """
        return cls(
            f"Input must be {expected}, got {type(actual).__name__}",
            code=ErrorCode.INVALID_INPUT_TYPE,
            retryable=False,
        )

    @classmethod
    def input_too_long(cls, length: int, max_length: int) -> InferenceError:
        """Create error for text input exceeding the model limit."""
        return cls(
            f"Input exceeds maximum length of {max_length} (got {length})",
            code=ErrorCode.INPUT_TOO_LONG,
            retryable=False,
        )

    @classmethod
    def rate_limit_exceeded(cls, key: str) -> InferenceError:
        """Create error for a call rejected by the local rate limiter."""
        return cls(
            f"Rate limit exceeded for {key}",
            code=ErrorCode.RATE_LIMIT_EXCEEDED,
            status_code=_HTTP_TOO_MANY_REQUESTS,
        )

    @classmethod
    def api_error(
        cls,
        status_code: int,
        response_body: object | None = None,
        *,
        reason: str | None = None,
    ) -> InferenceError:
        """Create error for a non-2xx upstream response.

        Parameters
        ----------
        status_code
            Upstream HTTP status.
        response_body
            Decoded error body; its ``error`` field is used in the message.
        reason
            Fallback description, usually the HTTP reason phrase.

        """
        detail = upstream_error_detail(response_body) or reason or "unknown error"
        return cls(
            f"API request failed with status {status_code}: {detail}",
            code=ErrorCode.API_ERROR,
            status_code=status_code,
            response_body=response_body,
        )

    @classmethod
    def timeout(cls, timeout_ms: float) -> InferenceError:
        """Create error for a request exceeding its per-attempt timeout."""
        return cls(
            f"API request timed out after {timeout_ms:.0f}ms",
            code=ErrorCode.API_ERROR,
        )

    @classmethod
    def network_error(cls, detail: str) -> InferenceError:
        """Create error for connection, DNS, TLS and similar failures."""
        return cls(
            f"API network error: {detail}",
            code=ErrorCode.API_ERROR,
        )

    @classmethod
    def max_retries_exceeded(cls, model_id: str, attempts: int) -> InferenceError:
        """Create error for a call that failed on every attempt."""
        return cls(
            f"Failed to call {model_id} after {attempts} attempts",
            code=ErrorCode.MAX_RETRIES_EXCEEDED,
            retryable=False,
        )


class InferenceConfigError(Exception):
    """Raised when inference client configuration is invalid."""

    @classmethod
    def invalid_parameter(
        cls, parameter_name: str, value: str, constraint: str
    ) -> InferenceConfigError:
        """Create error for an invalid configuration value.

        Parameters
        ----------
        parameter_name
            Environment variable or field that failed validation.
        value
            The rejected raw value.
        constraint
            Description of the accepted values.

        """
        return cls(f"Invalid {parameter_name} '{value}'. {constraint}")

    @classmethod
    def invalid_positive_int(cls, parameter_name: str, value: str) -> InferenceConfigError:
        """Create error for a value that must be a positive integer."""
        return cls.invalid_parameter(parameter_name, value, "Must be a positive integer")

    @classmethod
    def invalid_endpoint(cls, value: str) -> InferenceConfigError:
        """Create error for an endpoint that is not an http(s) URL."""
        return cls.invalid_parameter(
            "INSIGHTMEET_INFERENCE_ENDPOINT", value, "Must be an http(s) URL"
        )


def upstream_error_detail(body: object) -> str | None:
    """Extract the upstream error description from a decoded body."""
    if isinstance(body, dict):
        error = typ.cast("dict[str, object]", body).get("error")
        if isinstance(error, str):
            return error
        if isinstance(error, list) and error:
            return "; ".join(str(item) for item in error)
        return None
    if isinstance(body, str) and body.strip():
        text = body.strip()
        if len(text) > _BODY_PREVIEW_LIMIT:
            return text[:_BODY_PREVIEW_LIMIT] + "..."
        return text
    return None


def is_model_loading(status_code: int, body: object) -> bool:
    """Return whether a response says the model is still loading."""
    if status_code != _HTTP_SERVICE_UNAVAILABLE:
        return False
    detail = upstream_error_detail(body)
    return detail is not None and "loading" in detail.lower()


def classify_response(
    status_code: int,
    body: object,
    *,
    reason: str | None = None,
) -> InferenceError:
    """Build the typed error for a non-2xx upstream response."""
    return InferenceError.api_error(status_code, body, reason=reason)


def classify_exception(exc: BaseException, *, timeout_ms: float) -> InferenceError:
    """Build the typed error for a request that received no response.

    Timeouts (``httpx.TimeoutException`` or ``TimeoutError``) become timeout
    errors. Any other ``httpx.RequestError``, such as a refused connection,
    an undecodable body or a redirect loop, is reported as a network error
    with the exception text. Both are retryable.
    """
    if isinstance(exc, httpx.TimeoutException | TimeoutError):
        return InferenceError.timeout(timeout_ms)
    return InferenceError.network_error(str(exc) or type(exc).__name__)
