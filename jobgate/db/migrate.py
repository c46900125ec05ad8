"""
Alembic upgrade runner for the metering schema.

Several app instances may boot at once; on Postgres the upgrade runs under
a session advisory lock so only one of them migrates.
"""
import logging
import os
from contextlib import contextmanager
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from jobgate.core import config as app_config

logger = logging.getLogger(__name__)

METERING_MIGRATION_LOCK = 742_019_331
ALEMBIC_INI = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "alembic.ini")


def alembic_config(database_url: str) -> Config:
    cfg = Config(ALEMBIC_INI)
    cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg


@contextmanager
def migration_lock(engine: Engine):
    """Hold the metering advisory lock for the duration of the block (Postgres only)."""
    if engine.dialect.name != "postgresql":
        yield
        return

    conn = engine.connect()
    try:
        conn.execute(text("SELECT pg_advisory_lock(:key)"), {"key": METERING_MIGRATION_LOCK})
        conn.commit()
        logger.info(f"Metering migration lock {METERING_MIGRATION_LOCK} held")
        yield
    finally:
        try:
            conn.execute(text("SELECT pg_advisory_unlock(:key)"), {"key": METERING_MIGRATION_LOCK})
            conn.commit()
        except SQLAlchemyError:
            logger.warning("Metering migration lock was not released cleanly")
        conn.close()


def run_migrations(database_url: Optional[str] = None, revision: str = "head") -> None:
    """
    Upgrade the metering tables to `revision`.

    Raises:
        ValueError: no database URL configured
    """
    database_url = database_url or app_config.DATABASE_URL
    if not database_url:
        raise ValueError("DATABASE_URL is not set")

    engine = create_engine(database_url, pool_pre_ping=True)
    try:
        with migration_lock(engine):
            logger.info(f"Upgrading metering schema to {revision}")
            command.upgrade(alembic_config(database_url), revision)
        logger.info("Metering schema up to date")
    except Exception:
        logger.exception("Metering schema upgrade failed")
        raise
    finally:
        engine.dispose()
