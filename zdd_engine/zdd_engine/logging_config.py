"""Logging setup for the zdd command line.

Human-readable output goes through :class:`rich.logging.RichHandler` on
stderr.  With structured logging enabled each record is emitted as one JSON
line instead::

    {"timestamp": "...", "level": "INFO", "logger": "zdd_engine.executor.plan_executor",
     "message": "Recorded deployment 000001 (checksum 3b1f...)"}
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from datetime import UTC, datetime
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

_EXTRA_FIELDS = ("deployment_id", "phase", "path")


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        """Render *record* as a single JSON line."""
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in _EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_info"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(payload, default=str, ensure_ascii=False)


def configure_logging(verbose: bool = False, structured: bool = False) -> logging.Handler:
    """Replace the root handlers with a single Rich or JSON handler on stderr.

    Parameters
    ----------
    verbose:
        Log at DEBUG instead of INFO.
    structured:
        Emit JSON lines instead of Rich-formatted text.

    Returns
    -------
    logging.Handler
        The installed handler.
    """
    level = logging.DEBUG if verbose else logging.INFO

    handler: logging.Handler
    if structured:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JSONFormatter())
    else:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=verbose,
            rich_tracebacks=verbose,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    # SQLAlchemy echoes every statement at INFO.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.DEBUG if verbose else logging.WARNING)
    return handler
