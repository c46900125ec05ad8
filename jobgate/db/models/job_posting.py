"""
JobPosting model for jobs published on the board.
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from jobgate.db.base import Base

JOB_STATUSES = ("draft", "active", "paused", "closed", "expired")


class JobPosting(Base):
    """
    A job published by an employer account.

    Non-closed postings count toward the one-posting cap of unverified employers.
    """
    __tablename__ = "job_postings"

    id = Column(Integer, primary_key=True, index=True)
    posted_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True, index=True)

    title = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=False)
    location = Column(String, nullable=True)
    status = Column(String, nullable=False, default="active")  # draft | active | paused | closed | expired
    has_placement_fee = Column(Boolean, nullable=False, default=False)
    is_placement = Column(Boolean, nullable=False, default=False)
    is_featured = Column(Boolean, nullable=False, default=False)
    shortlink_code = Column(String, nullable=True, unique=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    company = relationship("Company", backref="job_postings")

    __table_args__ = (
        Index('idx_job_poster_status', 'posted_by_id', 'status'),
    )

    def __repr__(self):
        return f"<JobPosting(id={self.id}, title='{self.title}', status='{self.status}')>"
