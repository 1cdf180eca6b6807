from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from sportmatch.core.auth_dependency import get_current_user, get_db
from sportmatch.core.gating import EntitlementGate
from sportmatch.db.models.user import User


def require_premium(feature: str):
    """Dependency factory: the current user, if their subscription unlocks ``feature``."""
    def checker(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> User:
        EntitlementGate(db).require_premium(user.id, feature)
        return user

    return checker


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Requires admin privileges")
    return user
