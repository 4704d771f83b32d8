"""Loguru logging setup.

Human-readable lines go to stderr.  Records bound with ``json_output=True``
go to a separate serialized sink instead, so structured records are never
printed twice.  With ``log_dir`` set, every record is also written to a
daily-rotated ``ghost-api.log`` and errors additionally to ``error.log``.
"""

import sys
from pathlib import Path
from typing import Any

from loguru import logger

_LINE_FORMAT = "[{time:YYYY-MM-DDTHH:mm:ss.SSSZ}] [{level}] {name}:{function}:{line} | {message}"
_ROTATION = "24h"
_RETENTION = "7 days"


def _is_structured(record: Any) -> bool:
    return bool(record["extra"].get("json_output", False))


def setup_logging(log_level: str = "INFO", log_dir: str | None = None, *, environment: str = "production") -> None:
    """Configure Loguru sinks.

    Args:
        log_level: Minimum log level to emit (case-insensitive).
        log_dir: Optional directory for log files.
        environment: Deployment environment.  Outside ``production``,
            exception tracebacks include variable values.
    """
    level = log_level.upper()
    verbose = environment != "production"

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=_LINE_FORMAT,
        filter=lambda record: not _is_structured(record),
        backtrace=verbose,
        diagnose=verbose,
    )
    logger.add(sys.stderr, level=level, serialize=True, filter=_is_structured)

    if not log_dir:
        return

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    logger.add(log_path / "ghost-api.log", level=level, format=_LINE_FORMAT, rotation=_ROTATION, retention=_RETENTION)
    logger.add(log_path / "error.log", level="ERROR", format=_LINE_FORMAT, rotation=_ROTATION, retention=_RETENTION)
