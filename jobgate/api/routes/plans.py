from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from jobgate.core.auth_dependency import get_db
from jobgate.schemas.credits import PlanResponse
from jobgate.services.plan_service import list_plans

router = APIRouter(prefix="/plans", tags=["Plans"])


@router.get("", status_code=status.HTTP_200_OK, response_model=List[PlanResponse])
def get_plans(db: Session = Depends(get_db)):
    """Active subscription plans, cheapest first."""
    return list_plans(db)
