"""Logging helpers built on femtologging.

femtologging loggers take a finished message string, so every InsightMeet
module formats its message here with ``%`` interpolation before handing it
over. Level names are normalised once, at start-up, by
:func:`configure_logging`.

Example:
>>> from insightmeet.logging import get_logger, log_info
>>> logger = get_logger(__name__)
>>> log_info(logger, "Calling %s", "facebook/bart-large-cnn")

"""

from __future__ import annotations

import enum
import typing as typ

from femtologging import basicConfig, get_logger

__all__ = [
    "LogLevel",
    "configure_logging",
    "format_log_message",
    "get_logger",
    "log_debug",
    "log_error",
    "log_exception",
    "log_info",
    "log_warning",
    "normalize_log_level",
]


class LogLevel(enum.StrEnum):
    """Level names femtologging understands."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


_FALLBACK_LEVEL = LogLevel.INFO


class _Logger(typ.Protocol):
    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str | None: ...


def normalize_log_level(level: str | None) -> tuple[str, bool]:
    """Resolve a raw level name such as ``INSIGHTMEET_LOG_LEVEL``.

    Returns
    -------
    tuple[str, bool]
        The upper-cased level, and whether ``level`` had to be replaced with
        ``INFO`` because it was empty or unknown.

    """
    candidate = (level or "").strip().upper()
    if candidate in LogLevel.__members__:
        return (candidate, False)
    return (_FALLBACK_LEVEL.value, True)


def configure_logging(level: str, *, force: bool = False) -> tuple[str, bool]:
    """Configure the femtologging root logger at ``level``.

    ``force`` replaces handlers from an earlier configuration. The return
    value is that of :func:`normalize_log_level`, so callers can warn about
    a rejected level once logging works.
    """
    resolved, rejected = normalize_log_level(level)
    basicConfig(level=resolved, force=force)
    return (resolved, rejected)


def format_log_message(template: str, *args: object) -> str:
    """Interpolate ``args`` into ``template`` with ``%`` formatting."""
    return template % args


def _log_at(
    level: str,
    logger: _Logger,
    template: str,
    args: tuple[object, ...],
    exc_info: object | None,
) -> None:
    logger.log(level, format_log_message(template, *args), exc_info=exc_info)


def log_debug(
    logger: _Logger, template: str, *args: object, exc_info: object | None = None
) -> None:
    """Log at DEBUG."""
    _log_at(LogLevel.DEBUG, logger, template, args, exc_info)


def log_info(
    logger: _Logger, template: str, *args: object, exc_info: object | None = None
) -> None:
    """Log at INFO."""
    _log_at(LogLevel.INFO, logger, template, args, exc_info)


def log_warning(
    logger: _Logger, template: str, *args: object, exc_info: object | None = None
) -> None:
    """Log at WARNING, optionally attaching the exception being retried."""
    _log_at(LogLevel.WARNING, logger, template, args, exc_info)


def log_error(
    logger: _Logger, template: str, *args: object, exc_info: object | None = None
) -> None:
    """Log at ERROR."""
    _log_at(LogLevel.ERROR, logger, template, args, exc_info)


def log_exception(logger: _Logger, message: str, exc: BaseException) -> None:
    """Log ``message`` verbatim at ERROR with ``exc`` attached.

    ``message`` is not interpolated, so it may contain ``%`` signs.
    """
    logger.log(LogLevel.ERROR, message, exc_info=exc)
