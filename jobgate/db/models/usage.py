from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, Index
from sqlalchemy.sql import func
from jobgate.db.base import Base


class UsageCounter(Base):
    """
    Per-period usage of a resource under a subscription's allowance.

    One row per (subscription, resource_type, period_start). A new billing
    period or a new subscription starts a fresh row, which is how counters
    reset. Only the usage ledger's guarded increment mutates `used`.
    """
    __tablename__ = "usage_counters"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    subscription_id = Column(Integer, ForeignKey("user_subscriptions.id"), nullable=False, index=True)
    resource_type = Column(String, nullable=False, index=True)  # job_posting | resume_view | direct_application | ai_usage | featured_job
    period_start = Column(DateTime, nullable=False)
    used = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('subscription_id', 'resource_type', 'period_start', name='uq_usage_sub_resource_period'),
        CheckConstraint('used >= 0', name='ck_usage_used_non_negative'),
        Index('idx_usage_user_resource', 'user_id', 'resource_type'),
    )
