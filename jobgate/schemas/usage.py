"""
Pydantic schemas for usage and entitlement endpoints.
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field


class ResourceUsageDetail(BaseModel):
    """Usage details for a single metered resource."""
    resource_type: str = Field(..., description="Resource type (job_posting, resume_view, direct_application, ai_usage, featured_job)")
    limit: int = Field(..., description="Per-period limit (0 for unlimited)")
    used: int = Field(..., description="Usage in the current period")
    remaining: Optional[int] = Field(None, description="Remaining allowance (None for unlimited)")
    unlimited: bool = Field(..., description="Whether this resource is unlimited on the plan")
    credit_type: str = Field(..., description="Credit type spent once the allowance is used up")
    credits: int = Field(0, description="Spendable purchased credits of that type")

    class Config:
        json_schema_extra = {
            "example": {
                "resource_type": "resume_view",
                "limit": 5,
                "used": 5,
                "remaining": 0,
                "unlimited": False,
                "credit_type": "resume_contact",
                "credits": 30
            }
        }


class CreditBalanceDetail(BaseModel):
    """A purchased credit balance."""
    credit_type: str = Field(..., description="Credit type")
    balance: int = Field(..., description="Credits left")
    used: int = Field(..., description="Credits spent")
    total_purchased: int = Field(..., description="Credits ever purchased")
    expires_at: Optional[datetime] = Field(None, description="Expiry (None never expires)")
    expired: bool = Field(..., description="Whether the balance can no longer be spent")


class UsageResponse(BaseModel):
    """Response schema for GET /me/usage."""
    plan: str = Field(..., description="Current plan type (free, basic, premium, enterprise)")
    status: str = Field(..., description="Subscription status (active, trial)")
    billing_cycle: str = Field(..., description="Billing cycle (free, monthly, yearly)")
    period_start: datetime = Field(..., description="Start of the current billing period (UTC)")
    period_end: datetime = Field(..., description="End of the current billing period (UTC)")
    resources: List[ResourceUsageDetail] = Field(..., description="Per-resource usage details")
    credits: List[CreditBalanceDetail] = Field(..., description="Purchased credit balances")

    class Config:
        json_schema_extra = {
            "example": {
                "plan": "free",
                "status": "active",
                "billing_cycle": "free",
                "period_start": "2026-01-01T00:00:00",
                "period_end": "2026-01-31T00:00:00",
                "resources": [
                    {
                        "resource_type": "job_posting",
                        "limit": 1,
                        "used": 0,
                        "remaining": 1,
                        "unlimited": False,
                        "credit_type": "job_posting",
                        "credits": 0
                    }
                ],
                "credits": []
            }
        }


class DecisionResponse(BaseModel):
    """Entitlement decision for a resource."""
    resource_type: str = Field(..., description="Resource type evaluated")
    allowed: bool = Field(..., description="Whether the action may proceed")
    limited: bool = Field(False, description="Allowed under restrictions (unverified account)")
    reason: Optional[str] = Field(None, description="Denial reason")
    message: Optional[str] = Field(None, description="Human-readable explanation")
    source: Optional[str] = Field(None, description="Balance that would pay: subscription or credit")

    class Config:
        json_schema_extra = {
            "example": {
                "resource_type": "resume_view",
                "allowed": False,
                "limited": False,
                "reason": "limit exceeded",
                "message": "You have reached your limit of 5 resume_view for this period",
                "source": None
            }
        }


class ConsumeResponse(BaseModel):
    """Result of a metered consumption."""
    resource_type: str = Field(..., description="Resource type consumed")
    amount: int = Field(..., description="Units consumed")
    source: str = Field(..., description="Balance that paid: subscription or credit")
    used: int = Field(..., description="Period usage after the call")
    limit: int = Field(..., description="Per-period limit (0 for unlimited)")
    unlimited: bool = Field(..., description="Whether the resource is unlimited")
    new_balance: Optional[int] = Field(None, description="Credit balance after the call when credits paid")
