# sellz_auth/schemas.py
from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict


# --- Pydantic Schemas ---
# Fields are optional so handlers can answer missing input with their own
# messages instead of a generic validation error.
class SignInData(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordData(BaseModel):
    email: Optional[str] = None


class ResetPasswordData(BaseModel):
    password: Optional[str] = None


class UpdatePasswordData(BaseModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class UpdateUserData(BaseModel):
    """Profile details a user may change. Email, role and credentials are not here."""

    model_config = ConfigDict(extra="forbid")

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    other_names: Optional[str] = None
    display_name: Optional[str] = None
    birthdate: Optional[date] = None
    gender: Optional[Literal["M", "F"]] = None
    country: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None


class MessageResponse(BaseModel):
    status: str
    message: str
