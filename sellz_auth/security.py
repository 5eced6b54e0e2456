# sellz_auth/security.py
import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import status
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from .config import Settings
from .errors import AppError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
MIN_PASSWORD_LENGTH = 8

# Password Hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        logger.warning("Stored password hash could not be identified")
        return False


def check_password_policy(password: Optional[str]) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise AppError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.",
            status.HTTP_400_BAD_REQUEST,
        )


def issue_token(
    subject_id: str,
    role: str,
    settings: Settings,
    now: Optional[datetime] = None,
) -> str:
    """Sign a session token for ``subject_id`` carrying its ``role``."""
    now = now or datetime.now(timezone.utc)
    expire = now + timedelta(hours=settings.JWT_EXPIRES_IN_HOURS)
    claims: Dict[str, Any] = {
        "sub": str(subject_id),
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
        "role": role,
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=ALGORITHM)


def verify_token(token: str, settings: Settings) -> Dict[str, Any]:
    """Return the claim set of a valid, unexpired token or raise a 401 AppError."""
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
        )
    except ExpiredSignatureError:
        raise AppError(
            "Your token has expired! Please log in again.",
            status.HTTP_401_UNAUTHORIZED,
        )
    except JWTError:
        raise AppError(
            "Invalid token. Please log in again!",
            status.HTTP_401_UNAUTHORIZED,
        )


def generate_reset_token() -> str:
    return secrets.token_hex(32)


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
