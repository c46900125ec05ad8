from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from jobgate.core.actor import Actor
from jobgate.core.security import decode_user_id
from jobgate.db.session import SessionLocal
from jobgate.services.actor_service import DbActorResolver

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_db():
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user_id(token: str = Depends(oauth2_scheme)) -> int:
    """Get current user id from JWT token."""
    user_id = decode_user_id(token)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    return user_id


def get_current_actor(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> Actor:
    """Resolve the authenticated user into an Actor."""
    actor = DbActorResolver(db).find_user(user_id)
    if actor is None:
        raise HTTPException(
            status_code=404,
            detail="User not found"
        )
    return actor
