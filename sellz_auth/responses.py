# sellz_auth/responses.py
from fastapi.responses import JSONResponse

from .config import Settings
from .models import User
from .security import issue_token

COOKIE_NAME = "jwt"


def create_send_token(user: User, status_code: int, settings: Settings) -> JSONResponse:
    """Issue a session token for ``user`` and answer with the session envelope."""
    token = issue_token(user.user_id, user.role, settings)
    response = JSONResponse(
        status_code=status_code,
        content={
            "status": "success",
            "token": token,
            "data": {"user": user.public_dict()},
        },
    )
    response.set_cookie(
        COOKIE_NAME,
        token,
        max_age=settings.JWT_COOKIE_EXPIRES_IN_HOURS * 60 * 60,
        httponly=True,
        secure=settings.is_production,
    )
    return response
