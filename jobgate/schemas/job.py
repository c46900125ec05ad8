"""
Pydantic schemas for job posting and resume contact endpoints.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class JobPostingCreate(BaseModel):
    """Schema for creating a job posting."""
    title: str = Field(..., description="Job title", min_length=1, max_length=255)
    description: str = Field(..., description="Job description", min_length=1)
    location: Optional[str] = Field(None, description="Work location")
    company_id: Optional[int] = Field(None, description="Company the job is posted for")
    status: str = Field(
        default="active",
        description="Posting status",
        pattern="^(draft|active|paused)$"
    )
    has_placement_fee: bool = Field(False, description="Job charges a placement fee (verified employers only)")
    is_placement: bool = Field(False, description="Placement job type (verified employers only)")

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Warehouse Associate",
                "description": "Full-time warehouse role, day shift.",
                "location": "Makati",
                "company_id": 1,
                "status": "active",
                "has_placement_fee": False,
                "is_placement": False
            }
        }


class JobPostingResponse(BaseModel):
    """Schema for job posting response."""
    id: int = Field(..., description="Job ID")
    posted_by_id: int = Field(..., description="User who posted the job")
    company_id: Optional[int] = None
    title: str
    description: str
    location: Optional[str] = None
    status: str
    has_placement_fee: bool
    is_placement: bool
    is_featured: bool
    created_at: datetime

    class Config:
        from_attributes = True


class JobPostingCreateResponse(BaseModel):
    """Created job plus the verification nudge, if any."""
    job: JobPostingResponse
    limited: bool = Field(False, description="Unverified account: some features restricted")
    message: Optional[str] = Field(None, description="Verification nudge")


class ShortlinkRequest(BaseModel):
    regenerate: bool = Field(False, description="Replace an existing token")


class ShortlinkResponse(BaseModel):
    short_token: str
    short_url: str


class ResumeContactRequest(BaseModel):
    """Request schema for POST /resume/contact."""
    job_seeker_id: int = Field(..., description="Job seeker whose contact details to reveal")


class ContactInfo(BaseModel):
    user_id: int
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class ResumeContactResponse(BaseModel):
    """Response schema for POST /resume/contact."""
    contact: ContactInfo
    already_revealed: bool = Field(False, description="No credit was spent for this reveal")
    source: Optional[str] = Field(None, description="Balance that paid: subscription or credit")
