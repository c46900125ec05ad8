"""
Usage tracking endpoints.

Provides usage statistics, entitlement checks and metered consumption for
authenticated users.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from jobgate.core.actor import Actor
from jobgate.core.auth_dependency import get_current_actor, get_db
from jobgate.core.metering_guard import charge_entitlement
from jobgate.core.plan_catalog import RESOURCE_TYPES
from jobgate.schemas.usage import ConsumeResponse, DecisionResponse, UsageResponse
from jobgate.services.credit_service import get_usage_for_response
from jobgate.services.entitlement_service import evaluate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/me", tags=["Usage"])


def _check_resource_type(resource_type: str) -> None:
    if resource_type not in RESOURCE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown resource type: {resource_type}"
        )


@router.get("/usage", status_code=status.HTTP_200_OK, response_model=UsageResponse)
def get_usage(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Get current period usage for the authenticated user's billing account.

    Sub-users see their main account's allowance.
    """
    usage_data = get_usage_for_response(db, actor.billing_owner_id)

    logger.debug(f"Usage summary requested: user_id={actor.id}, plan={usage_data['plan']}")

    return usage_data


@router.get("/entitlements/{resource_type}", status_code=status.HTTP_200_OK, response_model=DecisionResponse)
def get_entitlement(
    resource_type: str,
    amount: int = Query(1, ge=1, description="Units the action would consume"),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Whether the user may use a resource now. Consumes nothing."""
    _check_resource_type(resource_type)
    decision = evaluate(db, actor, resource_type, amount=amount)
    return {"resource_type": resource_type, **decision.to_dict()}


@router.post("/usage/{resource_type}/consume", status_code=status.HTTP_200_OK, response_model=ConsumeResponse)
def consume_resource(
    resource_type: str,
    amount: int = Query(1, ge=1, description="Units to consume"),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Charge one metered use of a resource.

    402 when allowance and credits are exhausted, 403 when the role or
    verification state forbids it.
    """
    _check_resource_type(resource_type)
    access = charge_entitlement(db, actor, resource_type, amount)

    logger.info(
        f"Resource consumed: user_id={actor.id}, resource={resource_type}, "
        f"amount={amount}, source={access.consumption.source}"
    )
    return {"resource_type": resource_type, "amount": amount, **access.consumption.to_dict()}
