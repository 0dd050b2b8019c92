"""Request identity for API endpoints.

Authentication itself happens upstream (reverse proxy / session layer) and is
passed in as the X-User-Id header. These helpers only resolve that id to a
User and check the role.
"""

import logging

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from src.models.user import User
from src.services import get_db

logger = logging.getLogger(__name__)


def get_authenticated_user(
    x_user_id: int | None = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the calling user or fail with 401."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    user = db.get(User, x_user_id)
    if user is None:
        logger.warning(f"Unknown user id in request: {x_user_id}")
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def require_admin(user: User = Depends(get_authenticated_user)) -> User:
    """Allow administrators only (403 otherwise)."""
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Forbidden")
    return user


__all__ = ["get_authenticated_user", "require_admin"]
