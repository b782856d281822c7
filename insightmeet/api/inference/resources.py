"""Inference API resources.

``POST /models/{model_id}`` runs one inference call, ``GET /metrics`` and
``DELETE /metrics`` expose the client's call metrics, ``DELETE /cache``
drops cached results and ``POST /summaries`` runs the meeting summary
pipeline.

Usage
-----
Register the resources on the Falcon app::

    app.add_route("/models/{model_id}", InferenceResource(client))
    app.add_route("/metrics", MetricsResource(client))
    app.add_route("/cache", CacheResource(client))
    app.add_route("/summaries", SummaryResource(client))

"""

from __future__ import annotations

import typing as typ

import falcon
import msgspec

from insightmeet.api.errors import InvalidInputError
from insightmeet.inference.options import CallOptions, Priority
from insightmeet.summary import DEFAULT_SUMMARY_MODEL, generate_summary, truncate_text
from insightmeet.summary.text import DEFAULT_MAX_WORDS

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from insightmeet.inference.client import InferenceClient
    from insightmeet.inference.decoder import DecodedResult

__all__ = [
    "CacheResource",
    "InferenceRequest",
    "InferenceResource",
    "MetricsResource",
    "SummaryRequest",
    "SummaryResource",
]

_BINARY_MEDIA_PREFIXES = ("application/octet-stream", "image/", "audio/")

_T = typ.TypeVar("_T")


class RequestOptions(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    """Caller-tunable subset of :class:`CallOptions`."""

    use_cache: bool = True
    wait_for_model: bool = True
    validate_output: bool = True
    max_retries: typ.Annotated[int, msgspec.Meta(ge=0, le=10)] | None = None
    timeout_ms: typ.Annotated[int, msgspec.Meta(gt=0)] | None = None
    priority: Priority = Priority.NORMAL

    def to_call_options(self, request_id: str | None) -> CallOptions:
        """Build call options, keeping defaults for unset fields."""
        overrides: dict[str, typ.Any] = {}
        if self.max_retries is not None:
            overrides["max_retries"] = self.max_retries
        if self.timeout_ms is not None:
            overrides["timeout_ms"] = self.timeout_ms
        return CallOptions(
            use_cache=self.use_cache,
            wait_for_model=self.wait_for_model,
            validate_output=self.validate_output,
            priority=self.priority,
            request_id=request_id,
            **overrides,
        )


class InferenceRequest(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    """JSON body of ``POST /models/{model_id}``."""

    inputs: str | dict[str, typ.Any]
    parameters: dict[str, typ.Any] = msgspec.field(default_factory=dict)
    options: RequestOptions = msgspec.field(default_factory=RequestOptions)


class SummaryRequest(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    """JSON body of ``POST /summaries``."""

    text: typ.Annotated[str, msgspec.Meta(min_length=1)]
    model_id: str = DEFAULT_SUMMARY_MODEL
    max_words: typ.Annotated[int, msgspec.Meta(gt=0)] = DEFAULT_MAX_WORDS


def _decode_body(raw: bytes, body_type: type[_T]) -> _T:
    """Decode a JSON request body into ``body_type``.

    Raises
    ------
    InvalidInputError
        If the body is empty, not JSON, or does not match ``body_type``.

    """
    if not raw:
        msg = "request body is required"
        raise InvalidInputError(msg)
    try:
        return msgspec.json.decode(raw, type=body_type)
    except msgspec.ValidationError as exc:
        raise InvalidInputError(str(exc)) from exc
    except msgspec.DecodeError as exc:
        msg = "request body must be valid JSON"
        raise InvalidInputError(msg) from exc


def _is_binary(content_type: str | None) -> bool:
    return content_type is not None and content_type.startswith(_BINARY_MEDIA_PREFIXES)


def _serialize_result(model_id: str, result: DecodedResult) -> dict[str, typ.Any]:
    """Serialize a decoded result to a JSON-compatible dict."""
    return {
        "model": model_id,
        "shape": str(result.shape),
        "value": result.value,
        "score": result.score,
        "matches_task": result.matches_task,
    }


class InferenceResource:
    """Resource running one inference call per request.

    JSON bodies follow :class:`InferenceRequest`. Bodies sent as
    ``application/octet-stream``, ``image/*`` or ``audio/*`` are forwarded
    as binary model input with default options.

    """

    def __init__(self, client: InferenceClient) -> None:
        """Bind the resource to the shared inference client."""
        self._client = client

    async def on_post(self, req: Request, resp: Response, *, model_id: str) -> None:
        """Handle POST /models/{model_id}.

        Parameters
        ----------
        req
            Falcon request object.
        resp
            Falcon response object.
        model_id
            Model identifier from the URL path.

        """
        raw = await req.stream.read()
        request_id = req.get_header("X-Request-ID")
        if _is_binary(req.content_type):
            if not raw:
                msg = "request body is required"
                raise InvalidInputError(msg)
            result = await self._client.call(
                model_id, raw, None, CallOptions(request_id=request_id)
            )
        else:
            body = _decode_body(raw, InferenceRequest)
            result = await self._client.call(
                model_id,
                body.inputs,
                body.parameters,
                body.options.to_call_options(request_id),
            )

        if result is None:
            resp.status = falcon.HTTP_204
            return
        if isinstance(result.value, bytes):
            resp.data = result.value
            resp.content_type = falcon.MEDIA_PNG
            resp.status = falcon.HTTP_200
            return
        resp.media = _serialize_result(model_id, result)
        resp.status = falcon.HTTP_200


class MetricsResource:
    """Resource exposing the client's recorded call metrics."""

    def __init__(self, client: InferenceClient) -> None:
        """Bind the resource to the shared inference client."""
        self._client = client

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /metrics with totals and per-call records."""
        records = self._client.metrics()
        resp.media = {
            "count": len(records),
            "successes": sum(1 for record in records if record.success),
            "cached": sum(1 for record in records if record.cached),
            "metrics": msgspec.to_builtins(records),
        }
        resp.status = falcon.HTTP_200

    async def on_delete(self, _req: Request, resp: Response) -> None:
        """Handle DELETE /metrics."""
        self._client.clear_metrics()
        resp.status = falcon.HTTP_204


class CacheResource:
    """Resource dropping the client's cached results."""

    def __init__(self, client: InferenceClient) -> None:
        """Bind the resource to the shared inference client."""
        self._client = client

    async def on_delete(self, _req: Request, resp: Response) -> None:
        """Handle DELETE /cache."""
        self._client.clear_cache()
        resp.status = falcon.HTTP_204


class SummaryResource:
    """Resource summarising meeting transcripts.

    ``POST /summaries`` truncates the transcript to ``max_words`` and runs
    :func:`~insightmeet.summary.generate_summary`. Inference failures
    degrade to a locally built summary, so this endpoint answers 200 even
    when the upstream is down; the ``degraded`` flag reports it.

    """

    def __init__(self, client: InferenceClient) -> None:
        """Bind the resource to the shared inference client."""
        self._client = client

    async def on_post(self, req: Request, resp: Response) -> None:
        """Handle POST /summaries."""
        body = _decode_body(await req.stream.read(), SummaryRequest)
        summary = await generate_summary(
            self._client,
            truncate_text(body.text, body.max_words),
            body.model_id,
        )
        resp.media = msgspec.to_builtins(summary)
        resp.status = falcon.HTTP_200
