"""Domain exceptions and Falcon error handlers for the API layer.

Register error handlers on the Falcon app::

    from insightmeet.api.errors import (
        InvalidInputError,
        handle_inference_error,
        handle_invalid_input,
    )

    app.add_error_handler(InferenceError, handle_inference_error)
    app.add_error_handler(InvalidInputError, handle_invalid_input)

"""

from __future__ import annotations

import typing as typ

import falcon

from insightmeet.inference.errors import ErrorCode, InferenceError

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

__all__ = [
    "InvalidInputError",
    "handle_inference_error",
    "handle_invalid_input",
    "status_for_error",
]

_CODE_STATUS: typ.Final[dict[ErrorCode, str]] = {
    ErrorCode.UNKNOWN_MODEL: falcon.HTTP_404,
    ErrorCode.INVALID_INPUT_TYPE: falcon.HTTP_400,
    ErrorCode.INPUT_TOO_LONG: falcon.HTTP_400,
    ErrorCode.RATE_LIMIT_EXCEEDED: falcon.HTTP_429,
    ErrorCode.API_ERROR: falcon.HTTP_502,
    ErrorCode.DECODE_ERROR: falcon.HTTP_502,
    ErrorCode.MAX_RETRIES_EXCEEDED: falcon.HTTP_503,
}


class InvalidInputError(Exception):
    """Raised for request validation errors that should map to HTTP 400.

    Attributes
    ----------
    reason
        Human-readable description of the validation failure.
    field
        Optional name of the input field that failed validation.

    """

    def __init__(self, reason: str, *, field: str | None = None) -> None:
        """Initialize with a validation reason and optional field name."""
        self.reason = reason
        self.field = field
        message = f"{field}: {reason}" if field is not None else reason
        super().__init__(message)


def status_for_error(error: InferenceError) -> str:
    """Return the HTTP status reported to API callers for ``error``.

    An ``api-error`` without an upstream status means the upstream never
    answered in time, which is reported as a gateway timeout.
    """
    if error.code is ErrorCode.API_ERROR and error.status_code is None:
        return falcon.HTTP_504
    return _CODE_STATUS.get(error.code, falcon.HTTP_500)


async def handle_inference_error(
    _req: Request,
    resp: Response,
    ex: InferenceError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InferenceError`` to a JSON error response.

    Parameters
    ----------
    _req
        Falcon request (unused).
    resp
        Falcon response whose status and media are set.
    ex
        The classified inference failure.
    _params
        URI template parameters (unused).

    """
    resp.status = status_for_error(ex)
    media: dict[str, typ.Any] = {
        "title": "Inference failed",
        "description": ex.message,
        "code": str(ex.code),
        "retryable": ex.retryable,
    }
    if ex.status_code is not None:
        media["upstream_status"] = ex.status_code
    resp.media = media


async def handle_invalid_input(
    _req: Request,
    resp: Response,
    ex: InvalidInputError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InvalidInputError`` to an HTTP 400 JSON response."""
    resp.status = falcon.HTTP_400
    media: dict[str, str] = {
        "title": "Invalid input",
        "description": ex.reason,
    }
    if ex.field is not None:
        media["field"] = ex.field
    resp.media = media
