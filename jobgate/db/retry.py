"""
Storage error translation and bounded retry for ledger writes.

Driver errors never reach callers raw: lock/serialization conflicts are
retried and surface as ConcurrentModification once the retry limit is reached;
anything else becomes StorageUnavailable so callers fail closed.
"""
import logging
from typing import Callable, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from jobgate.core.config import METERING_RETRY_LIMIT
from jobgate.core.errors import ConcurrentModification, StorageUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Postgres serialization_failure / deadlock_detected
_CONFLICT_PGCODES = ("40001", "40P01")


class LostRace(Exception):
    """Internal signal: a compare-and-swap matched no row because another writer won."""


def is_conflict(exc: BaseException) -> bool:
    """Whether a driver error means "retry", not "store is down"."""
    if isinstance(exc, (LostRace, StaleDataError, IntegrityError)):
        return True
    if isinstance(exc, DBAPIError):
        orig = exc.orig
        if getattr(orig, "pgcode", None) in _CONFLICT_PGCODES:
            return True
        if "database is locked" in str(orig).lower():
            return True
    return False


def run_with_retry(
    db: Session,
    operation: Callable[[], T],
    entity: str,
    key: object,
    attempts: int = METERING_RETRY_LIMIT,
) -> T:
    """
    Run a ledger operation, retrying on write conflicts.

    The session is rolled back before every retry, so operations must not
    rely on work staged in the session before they were called.

    Raises:
        ConcurrentModification: conflicts persisted past the retry limit
        StorageUnavailable: any other database failure
    """
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except (LostRace, StaleDataError, SQLAlchemyError) as e:
            _safe_rollback(db)
            if not is_conflict(e):
                logger.error(f"Ledger storage error: entity={entity}, key={key}, error={type(e).__name__}")
                raise StorageUnavailable(f"{entity} {key}", cause=e) from e
            logger.warning(
                f"Ledger write conflict: entity={entity}, key={key}, attempt={attempt}/{attempts}, "
                f"error={type(e).__name__}"
            )
    raise ConcurrentModification(entity, key, attempts)


def read_or_unavailable(db: Session, operation: Callable[[], T], what: str) -> T:
    """Run a read; database failures become StorageUnavailable."""
    try:
        return operation()
    except SQLAlchemyError as e:
        _safe_rollback(db)
        logger.error(f"Ledger read failed: {what}, error={type(e).__name__}")
        raise StorageUnavailable(what, cause=e) from e


def _safe_rollback(db: Session) -> None:
    try:
        db.rollback()
    except SQLAlchemyError:
        logger.exception("Rollback after ledger error failed")
