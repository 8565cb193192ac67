import logging
import os
import sys

# Libraries whose INFO output drowns out the score engine's own records.
QUIET_LOGGERS = ("sqlalchemy.engine", "alembic.runtime.migration")


def resolve_level(level: int | str | None = None) -> int:
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if isinstance(level, str):
        return logging.getLevelName(level.strip().upper()) if level.strip() else logging.INFO
    return level


def setup_logging(level: int | str | None = None) -> logging.Logger:
    """Route every record through one stdout handler; level defaults to $LOG_LEVEL."""
    root = logging.getLogger()
    root.setLevel(resolve_level(level))

    for existing in list(root.handlers):
        root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname).1s | %(name)-30.30s | %(message)s"
    ))
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root
