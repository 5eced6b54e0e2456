# sellz_auth/deps.py
import logging
from typing import Optional

from fastapi import Depends, Header, Request, status
from sqlalchemy.orm import Session

from .config import Settings, get_settings
from .database import get_db
from .errors import AppError
from .models import User
from .permissions import Permission, check_permission, is_public
from .security import verify_token

logger = logging.getLogger(__name__)


def _unauthorized(message: str) -> AppError:
    return AppError(message, status.HTTP_401_UNAUTHORIZED)


def bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise _unauthorized("No authorization headers.")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise _unauthorized("Malformed token.")
    return parts[1]


def require_auth(permission: Permission):
    """Build a dependency that gates a route on ``permission``.

    ``"*"`` leaves the route public. Otherwise the bearer token must verify,
    its role must hold every required permission, its subject must still
    exist and must not have changed password since the token was issued.
    The resolved user is returned and kept on ``request.state.user``.
    """

    def dependency(
        request: Request,
        authorization: Optional[str] = Header(None),
        db: Session = Depends(get_db),
        settings: Settings = Depends(get_settings),
    ) -> Optional[User]:
        if is_public(permission):
            return None

        token = bearer_token(authorization)
        claims = verify_token(token, settings)

        check_permission(claims.get("role"), permission)

        sub = claims.get("sub")
        current_user = db.get(User, sub) if sub else None
        if current_user is None:
            raise _unauthorized("The user belonging to this token does no longer exist.")

        if current_user.changed_password_after(claims.get("iat", 0)):
            raise _unauthorized("User recently changed password! Please log in again.")

        request.state.user = current_user
        logger.info("User %s verified for %s", current_user.user_id, request.url.path)
        return current_user

    return dependency
