"""
Entitlement engine.

Answers "may this actor perform this metered action right now?" without
consuming anything. The order of checks is fixed:

1. super admin: always allowed
2. role not allowed for the resource: "insufficient role"
3. resolve the billing owner's live subscription (free tier on first access)
4. limit 0: unlimited, skip to 6
5. allowance exhausted: fall back to purchased credits, else "limit exceeded"
6. job_posting: verification rules from the policy module
7. allowed

Denials are returned as Decision values. Storage failures raise
StorageUnavailable and the caller must deny.
"""
import logging
from datetime import datetime
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from jobgate.core.actor import Actor
from jobgate.core.plan_catalog import credit_type_for, is_unlimited, validate_resource_type
from jobgate.core.policy import (
    INSUFFICIENT_ROLE,
    LIMIT_EXCEEDED,
    Decision,
    allow,
    can_create_job,
    deny,
    is_super_admin,
    is_verified,
)
from jobgate.core.roles import role_allows
from jobgate.core.timeutil import utcnow
from jobgate.db.models.job_posting import JobPosting
from jobgate.db.retry import read_or_unavailable, run_with_retry
from jobgate.services.subscription_service import resolve_subscription
from jobgate.services.usage_ledger import get_usable_balance, get_usage

logger = logging.getLogger(__name__)


def count_active_jobs(db: Session, user_id: int) -> int:
    """Non-closed postings created by a user."""
    return db.query(JobPosting).filter(
        JobPosting.posted_by_id == user_id,
        JobPosting.status != "closed",
    ).count()


def evaluate(
    db: Session,
    actor: Optional[Actor],
    resource_type: str,
    context: Optional[Mapping[str, Any]] = None,
    amount: int = 1,
    now: Optional[datetime] = None,
) -> Decision:
    """
    Decide whether `actor` may use `amount` units of `resource_type`.

    Args:
        actor: Resolved caller; None is denied
        resource_type: Metered resource type
        context: Optional facts for the job_posting rules:
            verified_document (bool), active_count (int), job_data (mapping)
        amount: Units the action would consume

    Returns:
        Decision; source tells which balance would pay ("subscription" or "credit")

    Raises:
        ValueError: unknown resource type or non-positive amount
        StorageUnavailable: the ledger could not be read
        ConcurrentModification: subscription provisioning kept colliding
    """
    validate_resource_type(resource_type)
    if amount <= 0:
        raise ValueError("Amount must be positive")
    context = context or {}

    if actor is None:
        return deny(INSUFFICIENT_ROLE, "Authentication required")

    if is_super_admin(actor):
        return allow(source="subscription")

    if not role_allows(actor.role, resource_type):
        logger.warning(
            f"Entitlement denied: user_id={actor.id}, role={actor.role}, "
            f"resource={resource_type}, reason={INSUFFICIENT_ROLE}"
        )
        return deny(INSUFFICIENT_ROLE, f"Your role cannot use {resource_type}")

    now = now or utcnow()
    owner_id = actor.billing_owner_id
    subscription = run_with_retry(
        db,
        lambda: resolve_subscription(db, owner_id, now),
        "subscription",
        owner_id,
    )

    source = "subscription"
    limit = subscription.limit_for(resource_type)
    if not is_unlimited(limit):
        used = read_or_unavailable(
            db,
            lambda: get_usage(db, subscription, resource_type),
            f"usage {owner_id}:{resource_type}",
        )
        if used + amount > limit:
            credit_type = credit_type_for(resource_type)
            balance = read_or_unavailable(
                db,
                lambda: get_usable_balance(db, owner_id, credit_type, now),
                f"credits {owner_id}:{credit_type}",
            )
            if balance < amount:
                logger.warning(
                    f"Entitlement denied: user_id={actor.id}, owner_id={owner_id}, "
                    f"resource={resource_type}, used={used}/{limit}, credits={balance}, "
                    f"reason={LIMIT_EXCEEDED}"
                )
                return deny(
                    LIMIT_EXCEEDED,
                    f"You have reached your limit of {limit} {resource_type} for this period",
                )
            source = "credit"

    if resource_type == "job_posting":
        decision = _job_posting_decision(db, actor, context)
        if not decision.allowed:
            logger.warning(
                f"Entitlement denied: user_id={actor.id}, resource={resource_type}, "
                f"reason={decision.reason}"
            )
            return decision
        return allow(limited=decision.limited, message=decision.message, source=source)

    logger.debug(f"Entitlement allowed: user_id={actor.id}, resource={resource_type}, source={source}")
    return allow(source=source)


def _job_posting_decision(db: Session, actor: Actor, context: Mapping[str, Any]) -> Decision:
    verified_document = context.get("verified_document")
    if verified_document is None:
        verified_document = actor.has_verified_document
    verified = is_verified(actor, verified_document)

    active_count = context.get("active_count")
    if active_count is None:
        active_count = 0 if verified else read_or_unavailable(
            db,
            lambda: count_active_jobs(db, actor.id),
            f"active jobs of user {actor.id}",
        )

    return can_create_job(
        actor,
        verified=verified,
        active_count=active_count,
        job_data=context.get("job_data"),
    )
