"""Reporting — one place where registry operations emit log records.

Library code only logs; it never prints. The CLI (or an application)
decides where records go via ``configure_logging``.
"""

from __future__ import annotations

import logging
import os

from scopereg.errors import ErrorKind, ScopeError

LOGGER_NAME = "scopereg"
LEVEL_ENV_VAR = "SCOPEREG_LOG_LEVEL"

logger = logging.getLogger(LOGGER_NAME)
logger.addHandler(logging.NullHandler())


def report(
    level: int,
    operation: str,
    message: str,
    context: object = None,
    error: BaseException | None = None,
) -> None:
    """Emit ``scopereg | LEVEL | operation | message | context | error``."""
    parts = [LOGGER_NAME, logging.getLevelName(level), operation, message]
    if context not in (None, "", ()):
        parts.append(_format_context(context))
    if error is not None:
        parts.append(str(error))
    logger.log(level, " | ".join(parts))


def fail(
    kind: ErrorKind,
    operation: str,
    context: object = None,
    message: str = "",
    error: BaseException | None = None,
) -> ScopeError:
    """Report a recoverable failure at warning level and return it as a value."""
    result = ScopeError(kind=kind, message=message, context=_format_context(context))
    report(logging.WARNING, operation, result.message, context, error)
    return result


def configure_logging(level: int | str | None = None, console=None) -> logging.Handler:
    """Attach a rich console handler to the ``scopereg`` logger.

    Without an explicit level, ``SCOPEREG_LOG_LEVEL`` is used, then WARNING.
    Report lines already name their level, so the handler's own level
    column is turned off.
    """
    from rich.logging import RichHandler

    if level is None:
        level = os.environ.get(LEVEL_ENV_VAR, "WARNING")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(console=console, show_path=False, show_level=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    return handler


def _format_context(context: object) -> str:
    if context is None:
        return ""
    if isinstance(context, (list, tuple)):
        return " > ".join(str(c) for c in context)
    return str(context)
