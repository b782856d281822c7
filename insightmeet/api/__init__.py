"""InsightMeet HTTP API layer.

This package provides the Falcon Asynchronous Server Gateway Interface
(ASGI) application exposing the inference client over HTTP.

Usage
-----
Create and run the application::

    from insightmeet.api import create_app

    app = create_app()              # health-only mode
    app = create_app(dependencies)  # full mode with inference endpoints

Public API
----------
create_app
    Application factory that configures the Falcon ASGI app with health
    endpoints and optionally with inference endpoints when an inference
    client is provided.
"""

from insightmeet.api.app import create_app

__all__ = ["create_app"]
