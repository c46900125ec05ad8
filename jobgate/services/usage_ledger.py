"""
Usage ledger: per-period usage counters and purchased credit balances.

Mutation entry points are deliberately few:
- increment_usage_if_under_limit: guarded UPDATE, used + amount <= limit
- decrement_credits_if_available: guarded UPDATE, balance >= amount and not expired
- add_credits: replenishment, balance and total_purchased move together

Each is a single UPDATE whose affected-row count decides success, so
concurrent requests for the same user/resource cannot both pass a limit
only one of them fits under. None of them commit; the caller owns the
transaction. There is no raw setter.
"""
import logging
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from jobgate.core.plan_catalog import is_unlimited
from jobgate.core.timeutil import utcnow
from jobgate.db.models.credit import CreditBalance
from jobgate.db.models.subscription import Subscription
from jobgate.db.models.usage import UsageCounter
from jobgate.db.upsert import insert_ignore

logger = logging.getLogger(__name__)


# ============================================
# Usage counters
# ============================================

def _counter_query(db: Session, subscription: Subscription, resource_type: str):
    return db.query(UsageCounter).filter(
        UsageCounter.subscription_id == subscription.id,
        UsageCounter.resource_type == resource_type,
        UsageCounter.period_start == subscription.current_period_start,
    )


def get_usage(db: Session, subscription: Subscription, resource_type: str) -> int:
    """Units of a resource used in the subscription's current period (read only)."""
    used = db.query(UsageCounter.used).filter(
        UsageCounter.subscription_id == subscription.id,
        UsageCounter.resource_type == resource_type,
        UsageCounter.period_start == subscription.current_period_start,
    ).scalar()
    return used or 0


def get_period_usage(db: Session, subscription: Subscription) -> Dict[str, int]:
    """All counters of the current period, keyed by resource type."""
    rows = db.query(UsageCounter.resource_type, UsageCounter.used).filter(
        UsageCounter.subscription_id == subscription.id,
        UsageCounter.period_start == subscription.current_period_start,
    ).all()
    return {resource_type: used for resource_type, used in rows}


def get_or_create_counter(db: Session, subscription: Subscription, resource_type: str) -> UsageCounter:
    """Counter row for the current period, inserted at zero if absent."""
    counter = _counter_query(db, subscription, resource_type).first()
    if counter:
        return counter

    insert_ignore(
        db,
        UsageCounter,
        {
            "user_id": subscription.user_id,
            "subscription_id": subscription.id,
            "resource_type": resource_type,
            "period_start": subscription.current_period_start,
            "used": 0,
        },
        index_elements=["subscription_id", "resource_type", "period_start"],
    )
    return _counter_query(db, subscription, resource_type).one()


def increment_usage_if_under_limit(db: Session, counter_id: int, amount: int, limit: int) -> bool:
    """
    Atomically add `amount` to a counter if it stays within `limit`.

    A limit of 0 is unlimited and always succeeds.

    Returns:
        True if the row was updated
    """
    query = db.query(UsageCounter).filter(UsageCounter.id == counter_id)
    if not is_unlimited(limit):
        query = query.filter(UsageCounter.used + amount <= limit)

    updated = query.update(
        {UsageCounter.used: UsageCounter.used + amount},
        synchronize_session="fetch",
    )
    return updated == 1


def read_counter(db: Session, counter_id: int) -> int:
    return db.query(UsageCounter.used).filter(UsageCounter.id == counter_id).scalar() or 0


# ============================================
# Credit balances
# ============================================

def _usable_filter(now: datetime):
    return or_(CreditBalance.expires_at.is_(None), CreditBalance.expires_at > now)


def get_credit_balance(db: Session, user_id: int, credit_type: str) -> Optional[CreditBalance]:
    return db.query(CreditBalance).filter(
        CreditBalance.user_id == user_id,
        CreditBalance.credit_type == credit_type,
    ).first()


def get_usable_balance(db: Session, user_id: int, credit_type: str, now: Optional[datetime] = None) -> int:
    """Spendable credits: 0 when the balance is missing or expired."""
    now = now or utcnow()
    balance = db.query(CreditBalance.balance).filter(
        CreditBalance.user_id == user_id,
        CreditBalance.credit_type == credit_type,
        _usable_filter(now),
    ).scalar()
    return balance or 0


def get_credit_balances(db: Session, user_id: int, now: Optional[datetime] = None) -> Dict[str, Dict]:
    """All balances of a user keyed by credit type."""
    now = now or utcnow()
    credits = db.query(CreditBalance).filter(CreditBalance.user_id == user_id).all()
    return {
        credit.credit_type: {
            "balance": credit.balance,
            "used": credit.used_credits,
            "total_purchased": credit.total_purchased,
            "expires_at": credit.expires_at,
            "expired": credit.expires_at is not None and credit.expires_at <= now,
        }
        for credit in credits
    }


def decrement_credits_if_available(
    db: Session,
    user_id: int,
    credit_type: str,
    amount: int,
    now: Optional[datetime] = None,
) -> bool:
    """
    Atomically spend `amount` credits if the unexpired balance covers it.

    Returns:
        True if the row was updated; nothing is applied otherwise
    """
    now = now or utcnow()
    updated = db.query(CreditBalance).filter(
        CreditBalance.user_id == user_id,
        CreditBalance.credit_type == credit_type,
        CreditBalance.balance >= amount,
        _usable_filter(now),
    ).update(
        {
            CreditBalance.balance: CreditBalance.balance - amount,
            CreditBalance.used_credits: CreditBalance.used_credits + amount,
            CreditBalance.last_used_at: now,
        },
        synchronize_session="fetch",
    )
    return updated == 1


def add_credits(
    db: Session,
    user_id: int,
    credit_type: str,
    amount: int,
    expires_at: Optional[datetime] = None,
) -> None:
    """
    Grow a balance by `amount` purchased credits.

    The row keeps the later of its current and the new expiry; a balance
    without expiry stays without one.
    """
    if amount <= 0:
        raise ValueError("Credit amount must be positive")

    insert_ignore(
        db,
        CreditBalance,
        {
            "user_id": user_id,
            "credit_type": credit_type,
            "balance": 0,
            "total_purchased": 0,
            "used_credits": 0,
            "expires_at": expires_at,
        },
        index_elements=["user_id", "credit_type"],
    )

    total_purchased, current_expiry = db.query(
        CreditBalance.total_purchased, CreditBalance.expires_at
    ).filter(
        CreditBalance.user_id == user_id,
        CreditBalance.credit_type == credit_type,
    ).one()

    if total_purchased == 0:
        new_expiry = expires_at
    elif current_expiry is None or expires_at is None:
        # non-expiring credits never gain an expiry
        new_expiry = None
    else:
        new_expiry = max(current_expiry, expires_at)

    db.query(CreditBalance).filter(
        CreditBalance.user_id == user_id,
        CreditBalance.credit_type == credit_type,
    ).update(
        {
            CreditBalance.balance: CreditBalance.balance + amount,
            CreditBalance.total_purchased: CreditBalance.total_purchased + amount,
            CreditBalance.expires_at: new_expiry,
        },
        synchronize_session="fetch",
    )

    logger.debug(f"Credits added: user_id={user_id}, credit_type={credit_type}, amount={amount}")
