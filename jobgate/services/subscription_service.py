"""
Subscription resolution and lifecycle.

- resolve_subscription: the user's live subscription, lazily provisioning
  the free tier and rolling the billing period forward when it has ended
- activate_subscription: supersede the live subscription with a new plan
- cancel_subscription: end the live subscription

At most one active/trial subscription exists per user; the partial unique
index makes concurrent provisioning or activation collide instead of
producing two live rows.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from jobgate.core.config import (
    FREE_PLAN_PERIOD_DAYS,
    FREE_PLAN_TYPE,
    SUBSCRIPTION_PERIOD_DAYS,
    YEARLY_PERIOD_DAYS,
)
from jobgate.core.plan_catalog import RESOURCE_LIMIT_FIELDS
from jobgate.core.timeutil import utcnow, days_from
from jobgate.db.models.plan import SubscriptionPlan
from jobgate.db.models.subscription import (
    LIVE_STATUSES,
    Subscription,
    _LIVE_PREDICATE,
    snapshot_column,
)
from jobgate.db.retry import LostRace, run_with_retry
from jobgate.db.upsert import insert_ignore
from jobgate.services.plan_service import ensure_default_plan, get_plan, get_plan_by_type

logger = logging.getLogger(__name__)

SNAPSHOT_FIELDS = tuple(RESOURCE_LIMIT_FIELDS.values()) + ("max_ai_job_matches",)
BILLING_CYCLES = ("free", "monthly", "yearly")


def snapshot_limits(plan: SubscriptionPlan) -> Dict[str, int]:
    """Copy a plan's limits into subscription columns."""
    return {snapshot_column(field): getattr(plan, field) or 0 for field in SNAPSHOT_FIELDS}


def period_days_for(plan: SubscriptionPlan, billing_cycle: str, trial: bool = False) -> int:
    if trial:
        if not plan.trial_days:
            raise ValueError(f"Plan {plan.plan_type} has no trial")
        return plan.trial_days
    if billing_cycle == "yearly":
        return YEARLY_PERIOD_DAYS
    if billing_cycle == "free":
        return FREE_PLAN_PERIOD_DAYS
    return SUBSCRIPTION_PERIOD_DAYS


def get_live_subscription(db: Session, user_id: int) -> Optional[Subscription]:
    return db.query(Subscription).filter(
        Subscription.user_id == user_id,
        Subscription.status.in_(LIVE_STATUSES),
    ).first()


def _provision_free_subscription(db: Session, user_id: int, now: datetime) -> Subscription:
    plan = ensure_default_plan(db, FREE_PLAN_TYPE)
    values: Dict[str, Any] = {
        "user_id": user_id,
        "plan_id": plan.id,
        "status": "active",
        "billing_cycle": "free",
        "period_days": FREE_PLAN_PERIOD_DAYS,
        "current_period_start": now,
        "current_period_end": days_from(now, FREE_PLAN_PERIOD_DAYS),
        **snapshot_limits(plan),
    }
    insert_ignore(db, Subscription, values, index_elements=["user_id"], index_where=_LIVE_PREDICATE)

    subscription = get_live_subscription(db, user_id)
    if subscription is None:
        # the winner of the race was canceled in between
        raise LostRace(f"free subscription for user {user_id}")
    logger.info(f"Free subscription provisioned: user_id={user_id}, subscription_id={subscription.id}")
    return subscription


def roll_period_if_due(db: Session, subscription: Subscription, now: Optional[datetime] = None) -> Subscription:
    """
    Advance an ended billing period by whole periods.

    Counters are keyed on period_start, so the new period starts from zero.
    Compare-and-swap on the old period end; a concurrent roll wins cleanly.
    """
    now = now or utcnow()
    if now < subscription.current_period_end:
        return subscription

    length = timedelta(days=subscription.period_days)
    elapsed = (now - subscription.current_period_start) // length
    new_start = subscription.current_period_start + elapsed * length
    new_end = new_start + length

    updated = db.query(Subscription).filter(
        Subscription.id == subscription.id,
        Subscription.current_period_end == subscription.current_period_end,
    ).update(
        {
            Subscription.current_period_start: new_start,
            Subscription.current_period_end: new_end,
        },
        synchronize_session="fetch",
    )
    if updated == 0:
        db.refresh(subscription)
        if now >= subscription.current_period_end:
            raise LostRace(f"period roll of subscription {subscription.id}")
        return subscription

    logger.info(
        f"Billing period rolled: subscription_id={subscription.id}, user_id={subscription.user_id}, "
        f"period_start={new_start.isoformat()}, period_end={new_end.isoformat()}"
    )
    return subscription


def expire_trial(db: Session, subscription: Subscription, now: datetime) -> None:
    """
    End a trial whose period is over. Trials are not renewed; the user falls
    back to the free tier on the next resolve.
    """
    updated = db.query(Subscription).filter(
        Subscription.id == subscription.id,
        Subscription.status == "trial",
    ).update(
        {Subscription.status: "expired", Subscription.canceled_at: now},
        synchronize_session="fetch",
    )
    if updated:
        logger.info(f"Trial expired: user_id={subscription.user_id}, subscription_id={subscription.id}")


def resolve_subscription(db: Session, user_id: int, now: Optional[datetime] = None) -> Subscription:
    """
    The user's live subscription for the current period.

    Creates a free-tier subscription on first access, expires an ended trial
    and rolls an ended paid or free period forward. None of these writes
    changes any usage count. Does not commit.
    """
    now = now or utcnow()
    subscription = get_live_subscription(db, user_id)
    if subscription is not None and subscription.status == "trial" and now >= subscription.current_period_end:
        expire_trial(db, subscription, now)
        subscription = None
    if subscription is None:
        subscription = _provision_free_subscription(db, user_id, now)
    return roll_period_if_due(db, subscription, now)


def activate_subscription(
    db: Session,
    user_id: int,
    plan_type: Optional[str] = None,
    plan_id: Optional[int] = None,
    billing_cycle: str = "monthly",
    trial: bool = False,
    now: Optional[datetime] = None,
) -> Subscription:
    """
    Start a subscription, superseding the user's live one.

    The previous live subscription is canceled and the new one inserted in a
    single transaction; usage starts from zero under the new subscription.

    Raises:
        ValueError: unknown/inactive plan, bad billing cycle, plan without trial
        ConcurrentModification: concurrent activations kept colliding
    """
    if billing_cycle not in BILLING_CYCLES:
        raise ValueError(f"Invalid billing cycle: {billing_cycle}")
    now = now or utcnow()

    plan = get_plan(db, plan_id) if plan_id is not None else get_plan_by_type(db, plan_type or "")
    if plan is None or not plan.is_active:
        raise ValueError(f"Subscription plan not found: {plan_id or plan_type}")
    period_days = period_days_for(plan, billing_cycle, trial)
    resolved_plan_id = plan.id

    def _activate() -> Subscription:
        db.query(Subscription).filter(
            Subscription.user_id == user_id,
            Subscription.status.in_(LIVE_STATUSES),
        ).update(
            {Subscription.status: "canceled", Subscription.canceled_at: now},
            synchronize_session="fetch",
        )
        target_plan = get_plan(db, resolved_plan_id)
        subscription = Subscription(
            user_id=user_id,
            plan_id=target_plan.id,
            status="trial" if trial else "active",
            billing_cycle=billing_cycle,
            period_days=period_days,
            current_period_start=now,
            current_period_end=days_from(now, period_days),
            **snapshot_limits(target_plan),
        )
        db.add(subscription)
        db.flush()
        db.commit()
        db.refresh(subscription)
        return subscription

    subscription = run_with_retry(db, _activate, "subscription", user_id)
    logger.info(
        f"Subscription activated: user_id={user_id}, subscription_id={subscription.id}, "
        f"plan={plan.plan_type}, status={subscription.status}, billing_cycle={billing_cycle}"
    )
    return subscription


def cancel_subscription(db: Session, user_id: int, now: Optional[datetime] = None) -> Optional[Subscription]:
    """
    Cancel the live subscription. The next metered access falls back to the
    free tier. Purchased credits are unaffected.
    """
    now = now or utcnow()
    subscription = get_live_subscription(db, user_id)
    if subscription is None:
        return None
    subscription.status = "canceled"
    subscription.canceled_at = now
    db.commit()
    db.refresh(subscription)
    logger.info(f"Subscription canceled: user_id={user_id}, subscription_id={subscription.id}")
    return subscription
