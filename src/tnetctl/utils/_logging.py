"""Structured logging for the control plane.

Loggers are built with `structlog.wrap_logger` and never touch the global
structlog configuration, so the server, the CLI and tests can each hold
their own logger. Every logger masks crypt keys in event values before
rendering.
"""

import logging
import sys
from os import getenv
from pathlib import Path
from typing import TYPE_CHECKING, Literal, cast

import orjson
import structlog

from tnetctl.args import mask_args, mask_text

if TYPE_CHECKING:
    from structlog.typing import EventDict, FilteringBoundLogger, WrappedLogger

LogFormatType = Literal["json", "text"]


def log_level_from_string(level: str | None = None) -> int:
    """Resolve the numeric log level.

    ``TNETCTL_DEBUG`` forces DEBUG. Otherwise ``level`` is used, then
    ``TNETCTL_LOG_LEVEL``; unknown names fall back to INFO.
    """
    if getenv("TNETCTL_DEBUG"):
        return logging.DEBUG

    name = level or getenv("TNETCTL_LOG_LEVEL") or "info"
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def mask_secrets(
    _logger: "WrappedLogger",  # noqa: UP037
    _method_name: str,
    event_dict: "EventDict",  # noqa: UP037
) -> "EventDict":  # noqa: UP037
    """Mask ``--crypt-key=`` values in string and list event values."""
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = mask_text(value)
        elif isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
            event_dict[key] = mask_args(value)
    return event_dict


def _json_serializer(obj: object, **_: object) -> str:
    return orjson.dumps(obj, default=str).decode("utf-8")


def create_logger(
    *,
    level: str | None = None,
    log_format: LogFormatType = "json",
    log_file: str = "",
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create a standalone structlog logger.

    Args:
        level: Log level threshold (debug, info, warning, error).
        log_format: ``json`` for one object per line, ``text`` for
            ``timestamp [level] event key=value`` lines.
        log_file: File to append to. Logs go to stderr when empty.

    Returns:
        A configured FilteringBoundLogger instance.
    """
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        raw_logger: object = structlog.WriteLoggerFactory(file=log_path.open("a"))()
    else:
        raw_logger = structlog.PrintLogger(file=sys.stderr)

    processors: list[structlog.typing.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        mask_secrets,
    ]
    if log_format == "json":
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(serializer=_json_serializer),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            raw_logger,
            processors=processors,
            wrapper_class=structlog.make_filtering_bound_logger(
                log_level_from_string(level)
            ),
            context_class=dict,
        ),
    )
