from __future__ import annotations

import logging
import os
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel

from contest_scoring.db.session import get_engine
from contest_scoring.db.tables import ContestRow  # noqa: F401  (registers the table)

logger = logging.getLogger(__name__)


def tables_to_reset() -> list[str]:
    return ["contests", "alembic_version"]


def _find_alembic_dir() -> Path | None:
    """Locate the Alembic migrations directory.

    Checks ``ALEMBIC_DIR`` first, then ``<repo>/alembic`` next to the package.
    Returns ``None`` when neither holds an ``env.py`` and ``versions/``.
    """
    def _is_valid(p: Path) -> bool:
        return p.is_dir() and (p / "env.py").exists() and (p / "versions").is_dir()

    env_dir = os.getenv("ALEMBIC_DIR")
    if env_dir and _is_valid(Path(env_dir)):
        return Path(env_dir)

    repo_dir = Path(__file__).resolve().parent.parent.parent / "alembic"
    if _is_valid(repo_dir):
        return repo_dir

    return None


def _run_alembic_upgrade(engine: Engine, alembic_dir: Path) -> None:
    from alembic import command
    from alembic.config import Config

    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(alembic_dir))
    alembic_cfg.set_main_option("sqlalchemy.url", engine.url.render_as_string(hide_password=False))
    command.upgrade(alembic_cfg, "head")


def migrate(engine: Engine | None = None) -> None:
    """Bring the schema up to date. Safe to run on every boot; never drops data."""
    engine = engine or get_engine()
    alembic_dir = _find_alembic_dir()
    if alembic_dir is None:
        logger.info("No Alembic migrations directory found, using SQLModel create_all")
        SQLModel.metadata.create_all(engine)
        return

    logger.info("Running Alembic migrations from %s", alembic_dir)
    try:
        _run_alembic_upgrade(engine, alembic_dir)
    except Exception as exc:
        logger.warning("Alembic migration failed (%s), falling back to create_all", exc)
        SQLModel.metadata.create_all(engine)


def reset_db(engine: Engine | None = None) -> None:
    """Drop the score tables and recreate them. Destroys all data."""
    engine = engine or get_engine()
    logger.warning("Dropping contest tables")
    with engine.begin() as conn:
        for table in tables_to_reset():
            conn.execute(text(f"DROP TABLE IF EXISTS {table}"))
    migrate(engine)


if __name__ == "__main__":
    import sys

    from contest_scoring.utils.logging_config import setup_logging

    setup_logging()
    if "--reset" in sys.argv:
        reset_db()
    else:
        migrate()
    logger.info("Database migration complete")
    sys.exit(0)
