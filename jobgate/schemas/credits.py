"""
Pydantic schemas for plan and credit catalog endpoints.
"""
from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field


class PlanResponse(BaseModel):
    """A subscription plan."""
    id: int
    plan_type: str = Field(..., description="Plan type (free, basic, premium, enterprise)")
    name: str
    description: Optional[str] = None
    price_monthly: float
    price_yearly: float
    max_job_postings: int = Field(..., description="0 for unlimited")
    max_featured_jobs: int
    max_resume_views: int
    max_direct_applications: int
    max_ai_credits: int
    max_ai_job_matches: int
    features: Dict[str, Any] = Field(default_factory=dict)
    priority_support: bool
    advanced_analytics: bool
    custom_branding: bool
    trial_days: int

    class Config:
        from_attributes = True


class CreditPackageResponse(BaseModel):
    """A purchasable credit package."""
    id: int
    name: str
    description: Optional[str] = None
    credit_type: str = Field(..., description="Credit type, or 'bundle'")
    credit_amount: int
    bonus_credits: int
    price: float
    validity_days: Optional[int] = Field(None, description="Days until purchased credits expire")
    bundle_config: Optional[Dict[str, int]] = Field(None, description="Credit type -> amount for bundles")

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": 7,
                "name": "Job Seeker Bundle",
                "description": "Resume contacts + AI credits bundle",
                "credit_type": "bundle",
                "credit_amount": 1,
                "bonus_credits": 0,
                "price": 399,
                "validity_days": 120,
                "bundle_config": {"resume_contact": 50, "ai_credit": 20}
            }
        }


class CreditBalanceEntry(BaseModel):
    credit_type: str
    balance: int
    used: int
    total_purchased: int
    expires_at: Optional[datetime] = None
    expired: bool


class CreditBalanceResponse(BaseModel):
    """Response schema for GET /credits/balance."""
    user_id: int = Field(..., description="Billing owner whose credits are shown")
    credits: List[CreditBalanceEntry]
