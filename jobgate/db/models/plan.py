from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, JSON
from sqlalchemy.sql import func
from jobgate.db.base import Base


class SubscriptionPlan(Base):
    """
    Subscription tier with per-period limits.

    A limit of 0 means unlimited. Plans are soft-deactivated, never deleted;
    live subscriptions keep the limits snapshotted when they were activated.
    """
    __tablename__ = "subscription_plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    plan_type = Column(String, nullable=False, unique=True, index=True)  # free | basic | premium | enterprise

    price_monthly = Column(Numeric(10, 2), nullable=False, default=0)
    price_yearly = Column(Numeric(10, 2), nullable=False, default=0)

    max_job_postings = Column(Integer, nullable=False, default=0)
    max_featured_jobs = Column(Integer, nullable=False, default=0)
    max_resume_views = Column(Integer, nullable=False, default=0)
    max_direct_applications = Column(Integer, nullable=False, default=0)
    max_ai_credits = Column(Integer, nullable=False, default=0)
    max_ai_job_matches = Column(Integer, nullable=False, default=0)

    features = Column(JSON, nullable=False, default=dict)
    priority_support = Column(Boolean, nullable=False, default=False)
    advanced_analytics = Column(Boolean, nullable=False, default=False)
    custom_branding = Column(Boolean, nullable=False, default=False)
    trial_days = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, nullable=False, default=True)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Optimistic locking for admin edits
    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<SubscriptionPlan(id={self.id}, plan_type='{self.plan_type}')>"
