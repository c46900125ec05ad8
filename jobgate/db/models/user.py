from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from jobgate.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True)
    phone = Column(String, nullable=True)
    role = Column(String, nullable=False, default="job_seeker")  # super_admin | employer_admin | sub_user | job_seeker
    verification_status = Column(String, nullable=False, default="unverified")  # unverified | pending | verified
    parent_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)  # main account of a sub-user
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    parent_user = relationship("User", remote_side=[id])
