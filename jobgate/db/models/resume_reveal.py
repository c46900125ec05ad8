from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from jobgate.db.base import Base


class ResumeContactReveal(Base):
    """
    Contact details of a job seeker revealed to an employer account.

    Keyed on the billing owner so a main account and its sub-users share
    reveals and a contact is only ever paid for once.
    """
    __tablename__ = "resume_contact_reveals"

    id = Column(Integer, primary_key=True, index=True)
    revealed_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    requested_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    target_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('revealed_by', 'target_user_id', name='uq_reveal_owner_target'),
    )
