"""
Metering enforcement dependency.

This module provides charge_entitlement() and the require_entitlement()
dependency built on it, which:
1. Resolves the authenticated actor
2. Evaluates the entitlement for the resource
3. Consumes usage if allowed
4. Raises HTTPException if denied

Denials map to 403 (role, verification, placement) or 402 (limit), a
lost race past the retry limit to 409, an unreachable ledger to 503.
"""
import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from jobgate.core.actor import Actor
from jobgate.core.auth_dependency import get_current_actor, get_db
from jobgate.core.config import FRONTEND_URL, METERING_RETRY_LIMIT
from jobgate.core.errors import ConcurrentModification, InsufficientCredits, StorageUnavailable
from jobgate.core.policy import LIMIT_EXCEEDED, Decision
from jobgate.services.credit_service import ConsumptionResult, consume
from jobgate.services.entitlement_service import evaluate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MeteredAccess:
    """What a metered route receives once the charge went through."""
    actor: Actor
    decision: Decision
    consumption: ConsumptionResult


def denial_exception(decision: Decision, resource_type: str) -> HTTPException:
    """HTTP error for a denied Decision."""
    if decision.reason == LIMIT_EXCEEDED:
        return HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail={
                "error": "limit_exceeded",
                "reason": decision.reason,
                "resource_type": resource_type,
                "message": decision.message,
                "upgrade_url": f"{FRONTEND_URL.rstrip('/')}/pricing",
            }
        )
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={
            "error": "forbidden",
            "reason": decision.reason,
            "resource_type": resource_type,
            "message": decision.message,
        }
    )


def insufficient_credits_exception(error: InsufficientCredits) -> HTTPException:
    detail = error.to_dict()
    detail["upgrade_url"] = f"{FRONTEND_URL.rstrip('/')}/pricing"
    return HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=detail)


def storage_unavailable_exception(error: StorageUnavailable) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=error.to_dict())


def concurrent_modification_exception(error: ConcurrentModification) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=error.to_dict())


def charge_entitlement(db: Session, actor: Actor, resource_type: str, amount: int = 1) -> MeteredAccess:
    """
    Evaluate and consume a metered resource, retrying concurrent conflicts.

    Raises:
        HTTPException 402: allowance and credits exhausted
        HTTPException 403: role, verification or placement denial
        HTTPException 409: concurrent writers kept winning
        HTTPException 503: ledger unavailable
    """
    last_conflict = None
    attempts = max(1, METERING_RETRY_LIMIT)
    for attempt in range(1, attempts + 1):
        try:
            decision = evaluate(db, actor, resource_type, amount=amount)
            if not decision.allowed:
                raise denial_exception(decision, resource_type)
            consumption = consume(db, actor, resource_type, amount=amount)
        except InsufficientCredits as e:
            logger.warning(
                f"Consume lost to concurrent request: user_id={actor.id}, resource={resource_type}"
            )
            raise insufficient_credits_exception(e)
        except StorageUnavailable as e:
            raise storage_unavailable_exception(e)
        except ConcurrentModification as e:
            last_conflict = e
            logger.warning(
                f"Entitlement retry: user_id={actor.id}, resource={resource_type}, "
                f"attempt={attempt}/{attempts}"
            )
            continue

        logger.debug(
            f"Entitlement consumed: user_id={actor.id}, resource={resource_type}, "
            f"amount={amount}, source={consumption.source}"
        )
        return MeteredAccess(actor=actor, decision=decision, consumption=consumption)

    raise concurrent_modification_exception(last_conflict)


def require_entitlement(resource_type: str, amount: int = 1):
    """
    Dependency that evaluates and consumes a metered resource before the route runs.

    Args:
        resource_type: Metered resource type (job_posting, resume_view, ...)
        amount: Units to consume (default: 1)

    Returns:
        MeteredAccess if the charge succeeded; see charge_entitlement for the errors
    """
    def entitlement_checker(
        actor: Actor = Depends(get_current_actor),
        db: Session = Depends(get_db)
    ) -> MeteredAccess:
        return charge_entitlement(db, actor, resource_type, amount)

    return entitlement_checker
