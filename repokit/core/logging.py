from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Optional

from repokit.core.settings import get_settings


# Context variables for enriched logging
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
scope_id_var: ContextVar[Optional[str]] = ContextVar("scope_id", default=None)


class LoggingContextFilter(logging.Filter):
    """
    Logging filter that injects correlation_id and scope_id from contextvars
    into each log record so formatters can include them.

    If no values are present in the context, placeholders are used.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        cid = correlation_id_var.get()
        sid = scope_id_var.get()
        setattr(record, "correlation_id", cid or "-")
        setattr(record, "scope_id", sid or "-")
        return True


# PUBLIC_INTERFACE
def configure_logging(level: Optional[int] = None) -> None:
    """
    Configure root logging with a structured format and context filter.

    The level defaults to REPOKIT_LOG_LEVEL. SQLAlchemy engine logging is kept
    at WARNING unless REPOKIT_SQL_ECHO is set.
    """
    settings = get_settings()
    if level is None:
        level = settings.LOG_LEVEL
    handler = logging.StreamHandler(stream=sys.stdout)
    fmt = (
        "%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | scope=%(scope_id)s | "
        "%(message)s"
    )
    formatter = logging.Formatter(fmt=fmt)
    handler.setFormatter(formatter)
    handler.addFilter(LoggingContextFilter())

    root = logging.getLogger()
    # Remove pre-existing default handlers configured elsewhere (e.g., basicConfig)
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    root.setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.SQL_ECHO else logging.WARNING
    )
