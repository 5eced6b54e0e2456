# sellz_auth/models.py
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import Column, Date, DateTime, String
from sqlalchemy.orm import validates

from .database import Base
from .permissions import ROLES
from .security import generate_reset_token, hash_reset_token

GENDERS = ("M", "F")
RESET_TOKEN_TTL = timedelta(minutes=10)

# Never part of a user's external representation.
CREDENTIAL_FIELDS = (
    "password_hash",
    "password_reset_token",
    "password_reset_expires",
    "password_changed_at",
)


def utcnow() -> datetime:
    # Naive UTC, the way SQLite hands DateTime columns back.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _new_id() -> str:
    return str(uuid.uuid4())


# --- Database Model: User ---
class User(Base):
    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True, default=_new_id)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    other_names = Column(String, nullable=True)
    display_name = Column(String, unique=True, index=True, nullable=False)
    birthdate = Column(Date, nullable=False)
    gender = Column(String(1), nullable=False)
    country = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone_number = Column(String, nullable=False)
    address = Column(String, nullable=False)
    profile_picture = Column(String, nullable=False)
    role = Column(String, nullable=False, default="user")

    password_hash = Column(String, nullable=False)
    password_reset_token = Column(String, nullable=True, index=True)
    password_reset_expires = Column(DateTime, nullable=True)
    password_changed_at = Column(DateTime, nullable=False, default=utcnow)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @validates("role")
    def _validate_role(self, key, value):
        if value not in ROLES:
            raise ValueError("Invalid user type")
        return value

    @validates("gender")
    def _validate_gender(self, key, value):
        if value not in GENDERS:
            raise ValueError("Gender must be M or F")
        return value

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.last_name, self.other_names, self.first_name) if p)

    def public_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "other_names": self.other_names,
            "display_name": self.display_name,
            "birthdate": self.birthdate.isoformat() if self.birthdate else None,
            "gender": self.gender,
            "country": self.country,
            "email": self.email,
            "phone_number": self.phone_number,
            "address": self.address,
            "profile_picture": self.profile_picture,
            "role": self.role,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def create_password_reset_token(self, now: datetime | None = None) -> str:
        """Store the hash of a fresh reset token and return the plaintext once."""
        reset_token = generate_reset_token()
        self.password_reset_token = hash_reset_token(reset_token)
        self.password_reset_expires = (now or utcnow()) + RESET_TOKEN_TTL
        return reset_token

    def clear_password_reset_token(self) -> None:
        self.password_reset_token = None
        self.password_reset_expires = None

    def set_password_hash(self, password_hash: str, now: datetime | None = None) -> None:
        self.password_hash = password_hash
        self.password_changed_at = now or utcnow()
        self.clear_password_reset_token()

    def changed_password_after(self, jwt_iat: int) -> bool:
        if not self.password_changed_at:
            return False
        changed = self.password_changed_at.replace(tzinfo=timezone.utc)
        return int(jwt_iat) < int(changed.timestamp())

    def __repr__(self) -> str:
        return f"<User {self.user_id} {self.email} ({self.role})>"
