from __future__ import annotations

import logging
import sys

"""CLI log output: one ``LABEL message`` line per record on stdout.

Labels are INFO|WARN|ERROR|SUMMARY (DEBUG only with --debug). Modules log
through ``logging.getLogger(__name__)`` and reach the handler installed on
the ``contact_io`` logger.
"""

__all__ = [
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
    "LabeledFormatter",
    "log_summary",
    "reset_logging",
    "setup_logging",
]

LOGGER_NAME = "contact_io"

# INFO(20) と WARNING(30) の間
SUMMARY_LEVEL = 25
logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")


class LabeledFormatter(logging.Formatter):
    LABELS = {
        logging.WARNING: "WARN",
        SUMMARY_LEVEL: "SUMMARY",
    }

    def format(self, record: logging.LogRecord) -> str:
        return f"{self.LABELS.get(record.levelno, record.levelname)} {record.getMessage()}"


class _StdoutHandler(logging.StreamHandler):
    """Marker type so setup can find its own handler again."""


def setup_logging(*, debug: bool = False) -> logging.Logger:
    """Attach the stdout handler once. A later call can only switch DEBUG on."""
    logger = logging.getLogger(LOGGER_NAME)
    handler = next((h for h in logger.handlers if isinstance(h, _StdoutHandler)), None)
    if handler is None:
        handler = _StdoutHandler(sys.stdout)
        handler.setFormatter(LabeledFormatter())
        logger.addHandler(handler)
        # root 側での二重出力を防ぐ
        logger.propagate = False

    level = logging.DEBUG if debug else logging.INFO
    if debug or logger.level == logging.NOTSET:
        logger.setLevel(level)
        handler.setLevel(level)
    return logger


def log_summary(message: str) -> None:
    logging.getLogger(LOGGER_NAME).log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Remove installed handlers and restore propagation (tests)."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in [h for h in logger.handlers if isinstance(h, _StdoutHandler)]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
