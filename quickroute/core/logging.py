"""Centralised logging configuration."""

from __future__ import annotations

import logging
import sys
from typing import IO, Optional, Union

from .tracing import get_run_id


class RunIdFilter(logging.Filter):
    """Injects the current planning-run identifier into log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401 - inherited
        record.run_id = get_run_id()
        return True


def configure_logging(
    service_name: str,
    level: Union[int, str] = logging.INFO,
    stream: Optional[IO[str]] = None,
) -> logging.Logger:
    """Configure root logging with run correlation."""

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | run_id=%(run_id)s | %(message)s"
    )
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)
    handler.addFilter(RunIdFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)

    return logging.getLogger(service_name)
