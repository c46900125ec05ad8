from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from jobgate.db.base import Base


class VerificationDocument(Base):
    """
    Employer verification document (business permit, agency license, ...).

    A document with status "verified" makes its owner a verified employer
    regardless of the account's verification_status string.
    """
    __tablename__ = "verification_documents"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    document_type = Column(String, nullable=False)
    status = Column(String, nullable=False, default="pending")  # pending | verified | rejected
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index('idx_verification_user_status', 'user_id', 'status'),
    )
