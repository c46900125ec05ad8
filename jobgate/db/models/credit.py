from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.sql import func
from jobgate.db.base import Base


class CreditBalance(Base):
    """
    Purchased credits of one type for one user.

    Independent of the subscription. Invariant: balance >= 0 and
    balance == total_purchased - used_credits.
    """
    __tablename__ = "user_credits"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    credit_type = Column(String, nullable=False)  # resume_contact | ai_credit | job_posting | featured_job | direct_application
    balance = Column(Integer, nullable=False, default=0)
    total_purchased = Column(Integer, nullable=False, default=0)
    used_credits = Column(Integer, nullable=False, default=0)
    expires_at = Column(DateTime, nullable=True)
    last_used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'credit_type', name='uq_user_credit_type'),
        CheckConstraint('balance >= 0', name='ck_credit_balance_non_negative'),
    )


class CreditPurchase(Base):
    """Audit row for every credited package."""
    __tablename__ = "credit_purchases"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    package_id = Column(Integer, ForeignKey("credit_packages.id"), nullable=False, index=True)
    credit_type = Column(String, nullable=False)
    amount = Column(Integer, nullable=False)
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
