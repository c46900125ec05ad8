"""
Resume contact reveal.

Employers spend one resume_view (plan allowance, then resume_contact
credits) to see a job seeker's contact details. Reveals are recorded per
billing owner, so a main account and its sub-users never pay twice for the
same candidate.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from jobgate.core.actor import Actor
from jobgate.core.errors import InsufficientCredits, StorageUnavailable
from jobgate.core.logging_config import sanitize_log_data
from jobgate.core.policy import (
    NOT_VERIFIED,
    Decision,
    allow,
    can_reveal_resume,
    can_view_contact_details,
    deny,
)
from jobgate.db.models.resume_reveal import ResumeContactReveal
from jobgate.db.models.user import User
from jobgate.db.retry import read_or_unavailable
from jobgate.services.credit_service import ConsumptionResult, consume
from jobgate.services.entitlement_service import evaluate

logger = logging.getLogger(__name__)


@dataclass
class RevealResult:
    decision: Decision
    contact: Optional[Dict] = None
    already_revealed: bool = False
    consumption: Optional[ConsumptionResult] = None


def _contact_info(viewer: Actor, target: User) -> Dict:
    visible = can_view_contact_details(viewer, target)
    return {
        "user_id": target.id,
        "full_name": target.full_name,
        "email": target.email if visible else None,
        "phone": target.phone if visible else None,
    }


def is_revealed(db: Session, owner_id: int, target_user_id: int) -> bool:
    return db.query(ResumeContactReveal.id).filter(
        ResumeContactReveal.revealed_by == owner_id,
        ResumeContactReveal.target_user_id == target_user_id,
    ).first() is not None


def reveal_resume_contact(
    db: Session,
    actor: Actor,
    target_user_id: int,
    now: Optional[datetime] = None,
) -> RevealResult:
    """
    Reveal a job seeker's contact details to the actor.

    Raises:
        LookupError: target user not found
        InsufficientCredits: the last unit was taken by a concurrent request
        StorageUnavailable / ConcurrentModification: from the ledger
    """
    target = read_or_unavailable(
        db, lambda: db.query(User).filter(User.id == target_user_id).first(), f"user {target_user_id}"
    )
    if target is None:
        raise LookupError(f"User not found: {target_user_id}")

    owner_id = actor.billing_owner_id
    already = target.id == actor.id or read_or_unavailable(
        db, lambda: is_revealed(db, owner_id, target.id), f"reveal {owner_id}:{target.id}"
    )
    if already:
        return RevealResult(decision=allow(), contact=_contact_info(actor, target), already_revealed=True)

    decision = evaluate(db, actor, "resume_view", now=now)
    if not decision.allowed:
        return RevealResult(decision=decision)
    if not can_reveal_resume(actor):
        logger.warning(f"Resume reveal denied: user_id={actor.id}, reason={NOT_VERIFIED}")
        return RevealResult(decision=deny(NOT_VERIFIED, "Verify your account to reveal contact details"))

    try:
        consumption = consume(db, actor, "resume_view", commit=False, now=now)
    except InsufficientCredits:
        db.rollback()
        raise

    db.add(ResumeContactReveal(revealed_by=owner_id, requested_by=actor.id, target_user_id=target.id))
    try:
        db.commit()
    except IntegrityError:
        # same reveal committed concurrently; drop this charge
        db.rollback()
        logger.info(f"Resume contact already revealed: owner_id={owner_id}, target_user_id={target.id}")
        return RevealResult(decision=allow(), contact=_contact_info(actor, target), already_revealed=True)
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageUnavailable(f"reveal {owner_id}:{target.id}", cause=e) from e

    logger.info(
        f"Resume contact revealed: user_id={actor.id}, owner_id={owner_id}, "
        f"target_user_id={target.id}, source={consumption.source}"
    )
    contact = _contact_info(actor, target)
    logger.debug(f"Revealed contact: {sanitize_log_data(contact)}")
    return RevealResult(decision=decision, contact=contact, consumption=consumption)
