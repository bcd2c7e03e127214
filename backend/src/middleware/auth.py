"""
Authentication dependencies for API routes.

Provides:
- get_current_actor: FastAPI dependency resolving the acting user

Authentication itself (sessions, tokens, OAuth) happens upstream. The
authentication layer stores the authenticated user's GUID on
request.state.user_guid; this module turns it into an Actor for the
service layer.
"""

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from backend.src.db.database import get_db
from backend.src.models import User
from backend.src.services.guid import GuidService
from backend.src.services.permissions import Actor
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_actor(
    request: Request,
    db: Session = Depends(get_db)
) -> Actor:
    """
    FastAPI dependency returning the authenticated Actor.

    Args:
        request: FastAPI Request object
        db: Database session

    Returns:
        Actor built from the authenticated user's role and clan

    Raises:
        HTTPException 401: If no user is authenticated or the user is unknown

    Example:
        @router.post("/slots/{guid}/assign")
        async def assign(guid: str, actor: Actor = Depends(get_current_actor)):
            ...
    """
    user_guid = getattr(request.state, "user_guid", None)
    if not user_guid or not GuidService.validate_guid(user_guid, User.GUID_PREFIX):
        raise _unauthorized()

    user = db.query(User).filter(User.uuid == User.parse_guid(user_guid)).first()
    if user is None:
        logger.warning(f"Authenticated user {user_guid} no longer exists")
        raise _unauthorized()

    return Actor.from_user(user)


__all__ = [
    "get_current_actor",
]
