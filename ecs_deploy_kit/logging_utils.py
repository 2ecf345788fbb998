import logging
import sys

import click


_LEVEL_COLORS = {
    "DEBUG": "blue",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red",
}

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


class _ColorLevelFormatter(logging.Formatter):
    """레벨 이름에만 색을 입힌다. (TTY 일 때만 사용)"""

    def format(self, record: logging.LogRecord) -> str:
        original = record.levelname
        color = _LEVEL_COLORS.get(original)
        if color:
            record.levelname = click.style(original, fg=color, bold=original != "INFO")
        try:
            return super().format(record)
        finally:
            record.levelname = original


def setup_logging(verbosity: int = 0) -> None:
    level = logging.INFO
    if verbosity >= 1:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stdout)
    if sys.stdout.isatty():
        handler.setFormatter(_ColorLevelFormatter(LOG_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logging.basicConfig(level=level, handlers=[handler], force=True)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
