from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _DemoteInfoFilter(logging.Filter):
    """Turns chatty INFO records of a library into DEBUG records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno == logging.INFO:
            record.levelno = logging.DEBUG
            record.levelname = logging.getLevelName(logging.DEBUG)
        return record.levelno >= logging.getLogger().getEffectiveLevel()


def configure_logging(level: str, error_log_path: Path) -> None:
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(_LEVELS.get(str(level or "").lower(), logging.INFO))

    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    error_log_path.parent.mkdir(parents=True, exist_ok=True)
    errors = RotatingFileHandler(
        error_log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    errors.setLevel(logging.ERROR)
    errors.setFormatter(formatter)
    root.addHandler(errors)

    for name in ("apscheduler", "apscheduler.scheduler", "apscheduler.executors.default"):
        logger = logging.getLogger(name)
        logger.filters = [f for f in logger.filters if not isinstance(f, _DemoteInfoFilter)]
        logger.addFilter(_DemoteInfoFilter())
