"""Granian entrypoint for the InsightMeet HTTP service.

``insightmeet.runtime:create_app`` is the factory Granian imports; it builds
an :class:`~insightmeet.inference.client.InferenceClient` from the
environment and hands it to :func:`insightmeet.api.app.create_app`.

Environment variables
---------------------
INSIGHTMEET_HOST
    Bind address (default ``0.0.0.0``).
INSIGHTMEET_PORT
    Listen port (default ``8080``).
INSIGHTMEET_LOG_LEVEL
    femtologging level name (default ``INFO``).
INSIGHTMEET_HF_API_KEY, INSIGHTMEET_INFERENCE_ENDPOINT, ...
    Inference settings, see :meth:`InferenceClientConfig.from_env`.

Run the service with ``insightmeet`` or ``python -m insightmeet.runtime``.
"""

from __future__ import annotations

import dataclasses as dc
import os
import typing as typ

from insightmeet.inference.config import InferenceClientConfig
from insightmeet.inference.errors import InferenceConfigError
from insightmeet.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi

__all__ = ["RuntimeSettings", "create_app", "main"]

logger = get_logger(__name__)

_APP_FACTORY = "insightmeet.runtime:create_app"
_PORT_RANGE = range(1, 65536)


def _parse_port(port_str: str) -> int:
    """Return ``port_str`` as a TCP port number.

    Raises
    ------
    SystemExit
        If ``port_str`` is not an integer between 1 and 65535.

    """
    try:
        port = int(port_str)
    except ValueError:
        port = -1
    if port not in _PORT_RANGE:
        log_error(
            logger,
            "Invalid INSIGHTMEET_PORT value %r: expected an integer from %d to %d",
            port_str,
            _PORT_RANGE.start,
            _PORT_RANGE.stop - 1,
        )
        raise SystemExit(1)
    return port


@dc.dataclass(frozen=True, slots=True)
class RuntimeSettings:
    """Server bind address and log level."""

    host: str = "0.0.0.0"  # noqa: S104 - containers publish every interface
    port: int = 8080
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> RuntimeSettings:
        """Read the ``INSIGHTMEET_*`` server variables.

        Raises
        ------
        SystemExit
            If ``INSIGHTMEET_PORT`` is invalid.

        """
        defaults = cls()
        return cls(
            host=os.environ.get("INSIGHTMEET_HOST", defaults.host),
            port=_parse_port(os.environ.get("INSIGHTMEET_PORT", str(defaults.port))),
            log_level=os.environ.get("INSIGHTMEET_LOG_LEVEL", defaults.log_level),
        )


def create_app() -> falcon.asgi.App:
    """Build the API app around a client configured from the environment.

    Raises
    ------
    SystemExit
        If the inference settings are invalid.

    """
    from insightmeet.api.app import AppDependencies
    from insightmeet.api.app import create_app as create_api_app
    from insightmeet.inference.client import InferenceClient

    try:
        config = InferenceClientConfig.from_env()
    except InferenceConfigError as exc:
        log_error(logger, "Refusing to start: %s", exc)
        raise SystemExit(1) from exc

    if config.api_key is None:
        log_warning(
            logger,
            "No inference API key set; requests to %s will be anonymous",
            config.endpoint,
        )
    return create_api_app(AppDependencies(client=InferenceClient(config)))


def main() -> None:
    """Configure logging and serve the app with Granian."""
    from granian import Granian
    from granian.constants import Interfaces

    settings = RuntimeSettings.from_env()
    level, rejected = configure_logging(settings.log_level)
    if rejected:
        log_warning(
            logger,
            "Unknown INSIGHTMEET_LOG_LEVEL %r; using %s",
            settings.log_level,
            level,
        )
    log_info(logger, "Serving InsightMeet on %s:%d", settings.host, settings.port)

    Granian(
        _APP_FACTORY,
        address=settings.host,
        port=settings.port,
        interface=Interfaces.ASGI,
        factory=True,
    ).serve()


if __name__ == "__main__":
    main()
