"""
Credit endpoints: balances and the purchasable package catalog.

Purchases are credited by the payment flow through
credit_service.purchase_credit_package once payment is captured.
"""
import logging
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from jobgate.core.actor import Actor
from jobgate.core.auth_dependency import get_current_actor, get_db
from jobgate.db.retry import read_or_unavailable
from jobgate.schemas.credits import CreditBalanceResponse, CreditPackageResponse
from jobgate.services.plan_service import list_credit_packages
from jobgate.services.usage_ledger import get_credit_balances

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/credits", tags=["Credits"])


@router.get("/balance", status_code=status.HTTP_200_OK, response_model=CreditBalanceResponse)
def get_balance(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Purchased credit balances of the user's billing account."""
    owner_id = actor.billing_owner_id
    balances = read_or_unavailable(db, lambda: get_credit_balances(db, owner_id), f"credits of user {owner_id}")
    return {
        "user_id": owner_id,
        "credits": [
            {"credit_type": credit_type, **data}
            for credit_type, data in sorted(balances.items())
        ],
    }


@router.get("/packages", status_code=status.HTTP_200_OK, response_model=List[CreditPackageResponse])
def get_packages(db: Session = Depends(get_db)):
    """Active credit packages."""
    return list_credit_packages(db)
