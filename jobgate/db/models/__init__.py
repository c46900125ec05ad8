"""
Database models module.

This module imports all database models to ensure they are registered with SQLAlchemy's Base.metadata
before table creation.

All models must be imported here to be included in database migrations and table creation.
"""
from jobgate.db.models.user import User
from jobgate.db.models.verification_document import VerificationDocument
from jobgate.db.models.company import Company
from jobgate.db.models.job_posting import JobPosting
from jobgate.db.models.plan import SubscriptionPlan
from jobgate.db.models.credit_package import CreditPackage
from jobgate.db.models.subscription import Subscription
from jobgate.db.models.usage import UsageCounter
from jobgate.db.models.credit import CreditBalance, CreditPurchase
from jobgate.db.models.resume_reveal import ResumeContactReveal

# Explicitly export all models for clarity
__all__ = [
    "User",
    "VerificationDocument",
    "Company",
    "JobPosting",
    "SubscriptionPlan",
    "CreditPackage",
    "Subscription",
    "UsageCounter",
    "CreditBalance",
    "CreditPurchase",
    "ResumeContactReveal",
]
