"""
Database-backed actor resolution.
"""
from typing import Optional

from sqlalchemy.orm import Session

from jobgate.core.actor import Actor
from jobgate.db.models.user import User
from jobgate.db.models.verification_document import VerificationDocument


def has_verified_document(db: Session, user_id: int) -> bool:
    return db.query(VerificationDocument.id).filter(
        VerificationDocument.user_id == user_id,
        VerificationDocument.status == "verified",
    ).first() is not None


def actor_from_user(db: Session, user: User) -> Actor:
    return Actor(
        id=user.id,
        role=user.role,
        verification_status=user.verification_status,
        has_verified_document=has_verified_document(db, user.id),
        parent_user_id=user.parent_user_id,
    )


class DbActorResolver:
    """ActorResolver reading users and their verification documents."""

    def __init__(self, db: Session):
        self.db = db

    def find_user(self, user_id: int) -> Optional[Actor]:
        user = self.db.query(User).filter(User.id == user_id).first()
        if user is None:
            return None
        return actor_from_user(self.db, user)
