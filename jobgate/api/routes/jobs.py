"""
Job posting endpoints.

Posting and featuring are metered; sharing is gated by ownership only.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from jobgate.core.actor import Actor
from jobgate.core.auth_dependency import get_current_actor, get_db
from jobgate.core.errors import InsufficientCredits
from jobgate.core.metering_guard import denial_exception, insufficient_credits_exception
from jobgate.schemas.job import (
    JobPostingCreate,
    JobPostingCreateResponse,
    JobPostingResponse,
    ShortlinkRequest,
    ShortlinkResponse,
)
from jobgate.services.job_posting_service import create_job_posting, feature_job, generate_shortlink

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["Jobs"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=JobPostingCreateResponse)
def create_job(
    job_data: JobPostingCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Create a job posting.

    Charges one job_posting unit. Unverified employers may hold one
    non-closed posting and may not post placement jobs.
    """
    try:
        job, decision = create_job_posting(db, actor, job_data.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InsufficientCredits as e:
        raise insufficient_credits_exception(e)

    if job is None:
        raise denial_exception(decision, "job_posting")

    return {
        "job": JobPostingResponse.model_validate(job),
        "limited": decision.limited,
        "message": decision.message,
    }


@router.post("/{job_id}/feature", status_code=status.HTTP_200_OK, response_model=JobPostingResponse)
def feature(
    job_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Feature a posting, charging one featured_job unit."""
    try:
        job, decision = feature_job(db, actor, job_id)
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    except PermissionError:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
    except InsufficientCredits as e:
        raise insufficient_credits_exception(e)

    if job is None:
        raise denial_exception(decision, "featured_job")
    return JobPostingResponse.model_validate(job)


@router.post("/{job_id}/shortlink", status_code=status.HTTP_200_OK, response_model=ShortlinkResponse)
def shortlink(
    job_id: int,
    request: Optional[ShortlinkRequest] = None,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Short share link for a posting the user owns."""
    regenerate = bool(request and request.regenerate)
    try:
        return generate_shortlink(db, actor, job_id, regenerate=regenerate)
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    except PermissionError:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
    except RuntimeError as e:
        logger.error(f"Shortlink generation failed: job_id={job_id}, error={e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate unique short link"
        )
