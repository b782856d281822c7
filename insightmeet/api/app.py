"""Application factory for the InsightMeet Falcon ASGI application.

This module provides ``create_app()`` which builds and configures the
Falcon ASGI application with health endpoints and, when an inference
client is supplied, the inference endpoints.

Usage
-----
Create a health-only app (no inference client)::

    app = create_app()

Create a full app with inference endpoints::

    from insightmeet.api.app import AppDependencies, create_app
    from insightmeet.inference import InferenceClient

    app = create_app(AppDependencies(client=InferenceClient()))

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from insightmeet.api.errors import (
    InvalidInputError,
    handle_inference_error,
    handle_invalid_input,
)
from insightmeet.api.health.resources import HealthResource, ReadyResource
from insightmeet.inference.errors import InferenceError

if typ.TYPE_CHECKING:
    from insightmeet.inference.client import InferenceClient

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    Attributes
    ----------
    client
        Shared inference client. When ``None`` only health endpoints are
        registered.

    """

    client: InferenceClient | None = None


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Parameters
    ----------
    dependencies
        Optional application dependencies. When ``None`` or without a
        client, only ``/health`` and ``/ready`` are available and
        ``/ready`` reports the service as unavailable.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    client = dependencies.client if dependencies is not None else None

    app = falcon.asgi.App()

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(client_configured=client is not None))

    if client is not None:
        from insightmeet.api.inference.resources import (
            CacheResource,
            InferenceResource,
            MetricsResource,
            SummaryResource,
        )

        # model ids contain a slash, e.g. facebook/bart-large-cnn
        app.add_route("/models/{model_id:path}", InferenceResource(client))
        app.add_route("/metrics", MetricsResource(client))
        app.add_route("/cache", CacheResource(client))
        app.add_route("/summaries", SummaryResource(client))

    app.add_error_handler(InferenceError, handle_inference_error)
    app.add_error_handler(InvalidInputError, handle_invalid_input)

    return app
