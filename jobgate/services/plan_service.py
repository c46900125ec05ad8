"""
Plan catalog service.

Seeds and reads subscription plans and credit packages. Admin edits use
optimistic locking on the plan's version column; edits never touch live
subscriptions, which keep the limits snapshotted at activation.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from jobgate.core.errors import ConcurrentModification
from jobgate.core.plan_catalog import DEFAULT_CREDIT_PACKAGES, DEFAULT_SUBSCRIPTION_PLANS
from jobgate.db.models.credit_package import CreditPackage
from jobgate.db.models.plan import SubscriptionPlan

logger = logging.getLogger(__name__)

EDITABLE_PLAN_FIELDS = frozenset({
    "name", "description", "price_monthly", "price_yearly",
    "max_job_postings", "max_featured_jobs", "max_resume_views",
    "max_direct_applications", "max_ai_credits", "max_ai_job_matches",
    "features", "priority_support", "advanced_analytics", "custom_branding",
    "trial_days",
})


def seed_catalog(db: Session, reset: bool = False) -> Dict[str, int]:
    """
    Insert the default plans and credit packages that are missing.

    Existing rows are left as they are, so admin edits survive a re-seed.

    Args:
        reset: Also overwrite existing rows with the catalog defaults

    Returns:
        Number of plans and packages created, and reset
    """
    counts = {"plans": 0, "packages": 0, "reset": 0}

    for plan_type, plan_data in DEFAULT_SUBSCRIPTION_PLANS.items():
        plan = db.query(SubscriptionPlan).filter(SubscriptionPlan.plan_type == plan_type).first()
        if plan is None:
            db.add(SubscriptionPlan(plan_type=plan_type, **plan_data))
            counts["plans"] += 1
        elif reset:
            for field, value in plan_data.items():
                setattr(plan, field, value)
            counts["reset"] += 1

    for package_data in DEFAULT_CREDIT_PACKAGES:
        package = db.query(CreditPackage).filter(CreditPackage.name == package_data["name"]).first()
        if package is None:
            db.add(CreditPackage(**package_data))
            counts["packages"] += 1
        elif reset:
            for field, value in package_data.items():
                setattr(package, field, value)
            counts["reset"] += 1

    db.commit()
    logger.info(
        f"Catalog seeded: plans_created={counts['plans']}, packages_created={counts['packages']}, "
        f"reset={counts['reset']}"
    )
    return counts


def get_plan(db: Session, plan_id: int) -> Optional[SubscriptionPlan]:
    return db.query(SubscriptionPlan).filter(SubscriptionPlan.id == plan_id).first()


def get_plan_by_type(db: Session, plan_type: str, include_inactive: bool = False) -> Optional[SubscriptionPlan]:
    query = db.query(SubscriptionPlan).filter(SubscriptionPlan.plan_type == plan_type)
    if not include_inactive:
        query = query.filter(SubscriptionPlan.is_active.is_(True))
    return query.first()


def ensure_default_plan(db: Session, plan_type: str) -> SubscriptionPlan:
    """
    Return a plan, inserting its catalog default if the table lacks it.

    Only flushes; the caller's transaction decides when it is committed.
    """
    plan = get_plan_by_type(db, plan_type, include_inactive=True)
    if plan is not None:
        return plan
    if plan_type not in DEFAULT_SUBSCRIPTION_PLANS:
        raise ValueError(f"Unknown plan type: {plan_type}")

    plan = SubscriptionPlan(plan_type=plan_type, **DEFAULT_SUBSCRIPTION_PLANS[plan_type])
    db.add(plan)
    db.flush()
    logger.info(f"Default plan inserted: plan_type={plan_type}, plan_id={plan.id}")
    return plan


def list_plans(db: Session, include_inactive: bool = False) -> List[SubscriptionPlan]:
    query = db.query(SubscriptionPlan)
    if not include_inactive:
        query = query.filter(SubscriptionPlan.is_active.is_(True))
    return query.order_by(SubscriptionPlan.price_monthly, SubscriptionPlan.id).all()


def list_credit_packages(db: Session, include_inactive: bool = False) -> List[CreditPackage]:
    query = db.query(CreditPackage)
    if not include_inactive:
        query = query.filter(CreditPackage.is_active.is_(True))
    return query.order_by(CreditPackage.credit_type, CreditPackage.price).all()


def get_credit_package(db: Session, package_id: int) -> Optional[CreditPackage]:
    return db.query(CreditPackage).filter(CreditPackage.id == package_id).first()


def update_plan(
    db: Session,
    plan_id: int,
    changes: Dict[str, Any],
    expected_version: Optional[int] = None,
) -> SubscriptionPlan:
    """
    Apply an admin edit to a plan.

    Args:
        plan_id: Plan to edit
        changes: Field -> new value; only EDITABLE_PLAN_FIELDS are accepted
        expected_version: Version the admin read; a mismatch is a lost update

    Raises:
        ValueError: unknown plan or non-editable field
        ConcurrentModification: the plan changed since it was read
    """
    unknown = set(changes) - EDITABLE_PLAN_FIELDS
    if unknown:
        raise ValueError(f"Fields not editable: {', '.join(sorted(unknown))}")

    plan = get_plan(db, plan_id)
    if plan is None:
        raise ValueError(f"Subscription plan not found: {plan_id}")
    if expected_version is not None and plan.version != expected_version:
        raise ConcurrentModification("subscription_plan", plan_id, attempts=1)

    for field, value in changes.items():
        setattr(plan, field, value)

    try:
        db.commit()
    except StaleDataError as e:
        db.rollback()
        raise ConcurrentModification("subscription_plan", plan_id, attempts=1) from e

    db.refresh(plan)
    logger.info(f"Plan updated: plan_id={plan_id}, version={plan.version}, fields={sorted(changes)}")
    return plan


def deactivate_plan(db: Session, plan_id: int) -> SubscriptionPlan:
    """Soft-deactivate a plan: hidden from new subscriptions, kept for history."""
    plan = get_plan(db, plan_id)
    if plan is None:
        raise ValueError(f"Subscription plan not found: {plan_id}")
    plan.is_active = False
    db.commit()
    db.refresh(plan)
    logger.info(f"Plan deactivated: plan_id={plan_id}")
    return plan
