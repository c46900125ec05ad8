from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from jobgate.db.base import Base
from jobgate.core.plan_catalog import RESOURCE_LIMIT_FIELDS, validate_resource_type

LIVE_STATUSES = ("active", "trial")
_LIVE_PREDICATE = text("status IN ('active', 'trial')")


def snapshot_column(plan_field: str) -> str:
    """max_resume_views -> limit_resume_views"""
    return "limit_" + plan_field[len("max_"):]


class Subscription(Base):
    """
    A user's subscription to a plan for a billing period.

    Limits are copied from the plan at activation so later plan edits only
    affect new subscriptions. At most one active/trial row exists per user.
    """
    __tablename__ = "user_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("subscription_plans.id"), nullable=False, index=True)

    status = Column(String, nullable=False, default="active")  # active | trial | canceled | expired
    billing_cycle = Column(String, nullable=False, default="monthly")  # free | monthly | yearly
    period_days = Column(Integer, nullable=False, default=30)
    current_period_start = Column(DateTime, nullable=False)
    current_period_end = Column(DateTime, nullable=False)
    canceled_at = Column(DateTime, nullable=True)

    # Plan limits at activation time (0 = unlimited)
    limit_job_postings = Column(Integer, nullable=False, default=0)
    limit_featured_jobs = Column(Integer, nullable=False, default=0)
    limit_resume_views = Column(Integer, nullable=False, default=0)
    limit_direct_applications = Column(Integer, nullable=False, default=0)
    limit_ai_credits = Column(Integer, nullable=False, default=0)
    limit_ai_job_matches = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    plan = relationship("SubscriptionPlan")

    __table_args__ = (
        # One live subscription per user
        Index(
            'uq_user_live_subscription', 'user_id',
            unique=True,
            sqlite_where=_LIVE_PREDICATE,
            postgresql_where=_LIVE_PREDICATE,
        ),
    )

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES

    def limit_for(self, resource_type: str) -> int:
        """Snapshotted per-period limit of a resource (0 = unlimited)."""
        field = RESOURCE_LIMIT_FIELDS[validate_resource_type(resource_type)]
        return getattr(self, snapshot_column(field)) or 0

    def __repr__(self):
        return f"<Subscription(id={self.id}, user_id={self.user_id}, status='{self.status}')>"
