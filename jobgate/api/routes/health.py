"""
Health check endpoint for deployment monitoring.
"""
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jobgate.core.auth_dependency import get_db
from jobgate.core.timeutil import utcnow

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
def health_check(db: Session = Depends(get_db)):
    """
    Returns 200 with status "degraded" when the ledger database is unreachable;
    metered routes fail closed in that state.
    """
    status = "healthy"

    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError as e:
        db_status = f"error: {type(e).__name__}"
        status = "degraded"

    return {
        "status": status,
        "timestamp": utcnow().isoformat(),
        "database": db_status,
        "version": "1.0.0",
    }
