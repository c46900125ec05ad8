"""
Create all tables and seed the plan catalog.

For local development and tests; deployments run the Alembic migrations
(jobgate.db.migrate) and then seed_catalog.
"""
import logging

from jobgate.db.base import Base
from jobgate.db.session import engine, SessionLocal
from jobgate.db import models  # noqa: F401
from jobgate.services.plan_service import seed_catalog

logger = logging.getLogger(__name__)


def init_db(bind=None, reset: bool = False) -> dict:
    bind = bind or engine
    Base.metadata.create_all(bind=bind)

    db = SessionLocal(bind=bind)
    try:
        created = seed_catalog(db, reset=reset)
    finally:
        db.close()

    logger.info(f"Database initialized: {created}")
    return created
