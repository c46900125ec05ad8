"""
Resume contact reveal endpoint.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from jobgate.core.actor import Actor
from jobgate.core.auth_dependency import get_current_actor, get_db
from jobgate.core.errors import InsufficientCredits
from jobgate.core.metering_guard import denial_exception, insufficient_credits_exception
from jobgate.schemas.job import ResumeContactRequest, ResumeContactResponse
from jobgate.services.resume_reveal_service import reveal_resume_contact

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/resume", tags=["Resume"])


@router.post("/contact", status_code=status.HTTP_200_OK, response_model=ResumeContactResponse)
def reveal_contact(
    request: ResumeContactRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Reveal a job seeker's contact details.

    Charges one resume_view unit, or one resume_contact credit once the plan
    allowance is used up. Repeated reveals are free.
    """
    try:
        result = reveal_resume_contact(db, actor, request.job_seeker_id)
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job seeker not found")
    except InsufficientCredits as e:
        raise insufficient_credits_exception(e)

    if result.contact is None:
        raise denial_exception(result.decision, "resume_view")

    return {
        "contact": result.contact,
        "already_revealed": result.already_revealed,
        "source": result.consumption.source if result.consumption else None,
    }
