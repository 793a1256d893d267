"""Loguru logging configuration.

Every record carries a ``run`` field: migration and rollback runs set it with
``logger.contextualize(run=...)`` (e.g. ``missing-fields_backup_20250101``) so
interleaved partition progress lines can be traced back to their run.
Records outside a run show ``-``.
"""

import sys
from pathlib import Path

from loguru import logger

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {extra[run]} | {name}:{function}:{line} | {message}"


def setup_logging(log_level: str = "INFO", log_dir: str | None = None) -> None:
    """Configure Loguru sinks.

    Args:
        log_level: Minimum log level to emit.
        log_dir: Optional directory for log files.  When set, a rotating
            file sink is added (rotated every 24 hours, retained 30 days).
    """
    logger.remove()
    logger.configure(extra={"run": "-"})
    logger.add(
        sys.stderr,
        level=log_level.upper(),
        format=_LOG_FORMAT,
    )

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path / "fieldops.log",
            level=log_level.upper(),
            format=_LOG_FORMAT,
            rotation="24h",
            retention="30 days",
        )
