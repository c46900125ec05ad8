"""
Gated job posting actions.

Job creation and featuring are metered: the entitlement check, the usage
charge and the job write commit together or not at all.
"""
import logging
import secrets
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jobgate.core.actor import Actor
from jobgate.core.config import FRONTEND_URL
from jobgate.core.errors import InsufficientCredits, StorageUnavailable
from jobgate.core.policy import Decision, allow, can_generate_shortlink, can_manage_job
from jobgate.db.models.company import Company
from jobgate.db.models.job_posting import JobPosting
from jobgate.services.credit_service import consume
from jobgate.db.retry import read_or_unavailable
from jobgate.services.entitlement_service import evaluate

logger = logging.getLogger(__name__)

SHORTLINK_ATTEMPTS = 6


def get_job(db: Session, job_id: int) -> Optional[JobPosting]:
    return read_or_unavailable(
        db, lambda: db.query(JobPosting).filter(JobPosting.id == job_id).first(), f"job {job_id}"
    )


def _commit_or_unavailable(db: Session, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to commit {what}: {type(e).__name__}")
        raise StorageUnavailable(what, cause=e) from e


def create_job_posting(
    db: Session,
    actor: Actor,
    job_data: Dict[str, Any],
    now: Optional[datetime] = None,
) -> Tuple[Optional[JobPosting], Decision]:
    """
    Create a job posting if the actor is entitled to one.

    Args:
        job_data: title, description and optional location, company_id,
            has_placement_fee, is_placement, status

    Returns:
        (job, decision). job is None when the decision denies; an allowed
        decision with limited=True asks the caller to nudge verification.

    Raises:
        ValueError: company_id does not exist
        InsufficientCredits: the allowance was taken by a concurrent request
        StorageUnavailable / ConcurrentModification: from the ledger
    """
    company_id = job_data.get("company_id")
    if company_id is not None and read_or_unavailable(
        db, lambda: db.query(Company.id).filter(Company.id == company_id).first(), f"company {company_id}"
    ) is None:
        raise ValueError(f"Company not found: {company_id}")

    decision = evaluate(
        db,
        actor,
        "job_posting",
        context={"job_data": job_data},
        now=now,
    )
    if not decision.allowed:
        return None, decision

    try:
        consumption = consume(db, actor, "job_posting", commit=False, now=now)
    except InsufficientCredits:
        db.rollback()
        raise

    job = JobPosting(
        posted_by_id=actor.id,
        company_id=company_id,
        title=job_data["title"],
        description=job_data["description"],
        location=job_data.get("location"),
        status=job_data.get("status") or "active",
        has_placement_fee=bool(job_data.get("has_placement_fee")),
        is_placement=bool(job_data.get("is_placement")),
    )
    db.add(job)
    _commit_or_unavailable(db, f"job posting of user {actor.id}")
    db.refresh(job)

    logger.info(
        f"Job posting created: job_id={job.id}, user_id={actor.id}, source={consumption.source}, "
        f"used={consumption.used}/{consumption.limit or 'unlimited'}, limited={decision.limited}"
    )
    return job, decision


def feature_job(
    db: Session,
    actor: Actor,
    job_id: int,
    now: Optional[datetime] = None,
) -> Tuple[Optional[JobPosting], Decision]:
    """
    Mark a posting as featured, charging one featured_job unit.

    Featuring an already featured posting is free.

    Raises:
        LookupError: job not found
        PermissionError: actor does not own the job
    """
    job = get_job(db, job_id)
    if job is None:
        raise LookupError(f"Job not found: {job_id}")
    if not can_manage_job(actor, job):
        raise PermissionError("Insufficient permissions")

    if job.is_featured:
        return job, allow()

    decision = evaluate(db, actor, "featured_job", now=now)
    if not decision.allowed:
        return None, decision

    try:
        consume(db, actor, "featured_job", commit=False, now=now)
    except InsufficientCredits:
        db.rollback()
        raise
    # consume may roll back and retry, so reload before writing
    job = get_job(db, job_id)
    job.is_featured = True
    _commit_or_unavailable(db, f"featured job {job_id}")
    db.refresh(job)

    logger.info(f"Job featured: job_id={job_id}, user_id={actor.id}")
    return job, decision


def generate_shortlink(db: Session, actor: Actor, job_id: int, regenerate: bool = False) -> Dict[str, str]:
    """
    Short share token for a posting. Not metered.

    Raises:
        LookupError: job not found
        PermissionError: actor may not share the job
        RuntimeError: no unique token after a few attempts
    """
    job = get_job(db, job_id)
    if job is None:
        raise LookupError(f"Job not found: {job_id}")
    if not can_generate_shortlink(actor, job):
        raise PermissionError("Insufficient permissions")

    if job.shortlink_code and not regenerate:
        token = job.shortlink_code
    else:
        token = None
        for _ in range(SHORTLINK_ATTEMPTS):
            candidate = secrets.token_hex(4)
            taken = read_or_unavailable(
                db,
                lambda: db.query(JobPosting.id).filter(JobPosting.shortlink_code == candidate).first(),
                f"shortlink {candidate}",
            )
            if taken is None:
                token = candidate
                break
        if token is None:
            raise RuntimeError("Failed to generate unique short link")
        job.shortlink_code = token
        _commit_or_unavailable(db, f"shortlink of job {job_id}")
        logger.info(f"Shortlink generated: job_id={job_id}, user_id={actor.id}")

    return {"short_token": token, "short_url": f"{FRONTEND_URL.rstrip('/')}/s/{token}"}
