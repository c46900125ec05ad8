"""
Credit consumption service.

Charges a metered action to exactly one source: the subscription allowance
first, purchased credits once the allowance is used up. Both charges go
through the usage ledger's guarded updates, so a request that loses a race
for the last unit gets InsufficientCredits and nothing is applied.

Also handles replenishment (add_credits, purchase_credit_package) and the
usage summary served by GET /me/usage.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy.orm import Session

from jobgate.core.actor import Actor
from jobgate.core.errors import InsufficientCredits
from jobgate.core.events import CreditConsumed, LimitExceeded, event_bus
from jobgate.core.plan_catalog import (
    CREDIT_TYPES,
    RESOURCE_TYPES,
    BundlePackage,
    SimplePackage,
    credit_type_for,
    is_unlimited,
    validate_resource_type,
)
from jobgate.core.policy import is_super_admin
from jobgate.core.timeutil import days_from, utcnow
from jobgate.db.models.credit import CreditPurchase
from jobgate.db.retry import read_or_unavailable, run_with_retry
from jobgate.services import usage_ledger
from jobgate.services.plan_service import get_credit_package
from jobgate.services.subscription_service import resolve_subscription

logger = logging.getLogger(__name__)

SUBSCRIPTION = "subscription"
CREDIT = "credit"


@dataclass(frozen=True)
class ConsumptionResult:
    """
    Outcome of a successful consume.

    used/limit describe the period allowance after the call (limit 0 is
    unlimited); new_balance is set when purchased credits paid.
    """
    source: str
    used: int
    limit: int
    new_balance: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "used": self.used,
            "limit": self.limit,
            "unlimited": is_unlimited(self.limit),
            "new_balance": self.new_balance,
        }


def consume(
    db: Session,
    actor: Actor,
    resource_type: str,
    amount: int = 1,
    commit: bool = True,
    now: Optional[datetime] = None,
) -> ConsumptionResult:
    """
    Record `amount` units of a resource against the actor's billing owner.

    Call after evaluate() allowed the action. The counter is re-checked
    inside the guarded update, so the decision may still be lost to a
    concurrent request.

    Args:
        commit: False stages the charge in the caller's transaction; the
            caller must commit or roll back together with its own writes.
            A retried conflict rolls the session back, so stage nothing
            before calling.

    Raises:
        InsufficientCredits: allowance and credits are both exhausted
        StorageUnavailable: the ledger could not be written
        ConcurrentModification: write conflicts persisted past the retry limit
    """
    validate_resource_type(resource_type)
    if amount <= 0:
        raise ValueError("Amount must be positive")
    now = now or utcnow()
    owner_id = actor.billing_owner_id
    credit_type = credit_type_for(resource_type)

    def _consume() -> ConsumptionResult:
        subscription = resolve_subscription(db, owner_id, now)
        counter = usage_ledger.get_or_create_counter(db, subscription, resource_type)
        # Admin usage is recorded but never capped
        limit = 0 if is_super_admin(actor) else subscription.limit_for(resource_type)

        if usage_ledger.increment_usage_if_under_limit(db, counter.id, amount, limit):
            result = ConsumptionResult(
                source=SUBSCRIPTION,
                used=usage_ledger.read_counter(db, counter.id),
                limit=limit,
            )
        elif usage_ledger.decrement_credits_if_available(db, owner_id, credit_type, amount, now):
            result = ConsumptionResult(
                source=CREDIT,
                used=usage_ledger.read_counter(db, counter.id),
                limit=limit,
                new_balance=usage_ledger.get_usable_balance(db, owner_id, credit_type, now),
            )
        else:
            used = usage_ledger.read_counter(db, counter.id)
            available = usage_ledger.get_usable_balance(db, owner_id, credit_type, now)
            if commit:
                db.rollback()
            event_bus.emit(LimitExceeded(
                user_id=actor.id,
                billing_owner_id=owner_id,
                resource_type=resource_type,
                amount=amount,
                used=used,
                limit=limit,
            ))
            raise InsufficientCredits(owner_id, resource_type, amount, available)

        if commit:
            db.commit()
        return result

    result = run_with_retry(db, _consume, "usage", f"{owner_id}:{resource_type}")

    event_bus.emit(CreditConsumed(
        user_id=actor.id,
        billing_owner_id=owner_id,
        resource_type=resource_type,
        amount=amount,
        source=result.source,
        used=result.used,
        limit=result.limit,
        new_balance=result.new_balance,
    ))
    return result


def add_credits(
    db: Session,
    user_id: int,
    credit_type: str,
    amount: int,
    expires_at: Optional[datetime] = None,
) -> int:
    """
    Replenish a credit balance and commit.

    Returns:
        New balance

    Raises:
        ValueError: unknown credit type or non-positive amount
    """
    if credit_type not in CREDIT_TYPES:
        raise ValueError(f"Unknown credit type: {credit_type}")
    if amount <= 0:
        raise ValueError("Credit amount must be positive")

    def _add() -> int:
        usage_ledger.add_credits(db, user_id, credit_type, amount, expires_at)
        db.commit()
        return usage_ledger.get_credit_balance(db, user_id, credit_type).balance

    balance = run_with_retry(db, _add, "user_credits", f"{user_id}:{credit_type}")
    logger.info(f"Credits added: user_id={user_id}, credit_type={credit_type}, amount={amount}, balance={balance}")
    return balance


def purchase_credit_package(
    db: Session,
    user_id: int,
    package_id: int,
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    """
    Credit a purchased package to a user.

    Payment capture happens before this is called. A simple package grants
    credit_amount + bonus_credits of its type; a bundle grants every entry.
    All grants share the package's expiry and are written in one transaction
    together with their audit rows.

    Returns:
        Credit type -> amount granted

    Raises:
        ValueError: unknown or inactive package, invalid bundle configuration
    """
    now = now or utcnow()
    package = get_credit_package(db, package_id)
    if package is None or not package.is_active:
        raise ValueError(f"Credit package not found: {package_id}")

    kind = package.kind()
    if isinstance(kind, SimplePackage):
        grants = {kind.credit_type: kind.amount}
    elif isinstance(kind, BundlePackage):
        grants = dict(kind.entries)
    else:
        raise TypeError(f"Unhandled package kind: {type(kind).__name__}")

    expires_at = days_from(now, package.validity_days) if package.validity_days else None

    def _purchase() -> None:
        for credit_type, amount in grants.items():
            usage_ledger.add_credits(db, user_id, credit_type, amount, expires_at)
            db.add(CreditPurchase(
                user_id=user_id,
                package_id=package_id,
                credit_type=credit_type,
                amount=amount,
                expires_at=expires_at,
            ))
        db.commit()

    run_with_retry(db, _purchase, "user_credits", user_id)
    logger.info(
        f"Credit package purchased: user_id={user_id}, package_id={package_id}, "
        f"package={package.name}, grants={grants}"
    )
    return grants


def get_usage_for_response(db: Session, user_id: int, now: Optional[datetime] = None) -> Dict:
    """
    Get usage data formatted for GET /me/usage response.

    Args:
        db: Database session
        user_id: Billing owner whose allowance is reported

    Returns:
        Dictionary with plan, period and per-resource usage plus credit balances
    """
    now = now or utcnow()
    subscription = run_with_retry(
        db,
        lambda: resolve_subscription(db, user_id, now),
        "subscription",
        user_id,
    )
    period_usage = read_or_unavailable(
        db, lambda: usage_ledger.get_period_usage(db, subscription), f"usage of user {user_id}"
    )
    balances = read_or_unavailable(
        db, lambda: usage_ledger.get_credit_balances(db, user_id, now), f"credits of user {user_id}"
    )

    resources = []
    for resource_type in RESOURCE_TYPES:
        limit = subscription.limit_for(resource_type)
        used = period_usage.get(resource_type, 0)
        credit_type = credit_type_for(resource_type)
        credit = balances.get(credit_type)

        if is_unlimited(limit):
            unlimited = True
            remaining = None
        else:
            unlimited = False
            remaining = max(0, limit - used)

        resources.append({
            "resource_type": resource_type,
            "limit": limit,
            "used": used,
            "remaining": remaining,
            "unlimited": unlimited,
            "credit_type": credit_type,
            "credits": 0 if credit is None or credit["expired"] else credit["balance"],
        })

    return {
        "plan": subscription.plan.plan_type,
        "status": subscription.status,
        "billing_cycle": subscription.billing_cycle,
        "period_start": subscription.current_period_start,
        "period_end": subscription.current_period_end,
        "resources": resources,
        "credits": [
            {"credit_type": credit_type, **data}
            for credit_type, data in sorted(balances.items())
        ],
    }
