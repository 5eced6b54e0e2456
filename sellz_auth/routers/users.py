# sellz_auth/routers/users.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Request, Response, UploadFile, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..database import get_db
from ..deps import require_auth
from ..errors import AppError
from ..mailer import EmailDeliveryError, get_email_sender
from ..models import RESET_TOKEN_TTL, User, utcnow
from ..permissions import has_permission
from ..responses import create_send_token
from ..schemas import (
    ForgotPasswordData,
    MessageResponse,
    ResetPasswordData,
    UpdatePasswordData,
    UpdateUserData,
)
from ..security import (
    check_password_policy,
    hash_password,
    hash_reset_token,
    verify_password,
)
from ..storage import LocalImageStore, get_image_store, is_image, save_temp_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def reset_url(request: Request, reset_token: str) -> str:
    host = request.headers.get("host") or request.url.netloc
    return f"{request.url.scheme}://{host}/api/v1/users/resetPassword/{reset_token}"


def _target_user(db: Session, current_user: User, user_id: str, admin_permission: str) -> User:
    """Load the user a request acts on; only the user themself or an admin may."""
    if user_id != current_user.user_id and not has_permission(
        current_user.role, admin_permission
    ):
        raise AppError(
            "User not authorised to perform this action",
            status.HTTP_401_UNAUTHORIZED,
        )
    user = db.get(User, user_id)
    if user is None:
        raise AppError("No user found with that ID", status.HTTP_404_NOT_FOUND)
    return user


@router.post("/forgotPassword", response_model=MessageResponse)
async def forgot_password(
    data: ForgotPasswordData,
    request: Request,
    db: Session = Depends(get_db),
    email_sender=Depends(get_email_sender),
):
    email = (data.email or "").strip().lower()
    if not email:
        raise AppError("Please provide user email", status.HTTP_400_BAD_REQUEST)

    user = db.query(User).filter(User.email == email).first()
    if user is None:
        raise AppError("User not found!", status.HTTP_404_NOT_FOUND)

    reset_token = user.create_password_reset_token()
    db.commit()

    minutes = int(RESET_TOKEN_TTL.total_seconds() // 60)
    message = (
        f"Hi {user.full_name},\n\n"
        "Forgot your password? Submit a PATCH request with your new password to: "
        f"{reset_url(request, reset_token)}.\n"
        "If you didn't forget your password, please ignore this email!"
    )
    try:
        await email_sender.send(
            user.email,
            f"Your password reset token (valid for {minutes} min)",
            message,
        )
    except EmailDeliveryError as e:
        logger.error("Password reset email to %s failed: %s", user.email, e)
        user.clear_password_reset_token()
        db.commit()
        raise AppError(
            "There was an error sending the email. Try again later!",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    logger.info("Password reset token sent to user %s", user.user_id)
    return {"status": "success", "message": "Token sent to email!"}


@router.patch("/resetPassword/{token}")
def reset_password(
    token: str,
    data: ResetPasswordData,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    if not data.password:
        raise AppError("New password is required", status.HTTP_400_BAD_REQUEST)
    check_password_policy(data.password)

    user = (
        db.query(User)
        .filter(
            User.password_reset_token == hash_reset_token(token),
            User.password_reset_expires > utcnow(),
        )
        .first()
    )
    if user is None:
        raise AppError("Token is invalid or has expired", status.HTTP_400_BAD_REQUEST)

    if verify_password(data.password, user.password_hash):
        raise AppError(
            "New password cannot be same as previous password",
            status.HTTP_400_BAD_REQUEST,
        )

    user.set_password_hash(hash_password(data.password))
    db.commit()
    db.refresh(user)

    logger.info("Password reset for user %s", user.user_id)
    return create_send_token(user, status.HTTP_200_OK, settings)


@router.patch("/updateMyPassword")
def update_password(
    data: UpdatePasswordData,
    current_user: User = Depends(require_auth("patch:user-details")),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    if not data.current_password or not data.new_password:
        raise AppError(
            "Please provide your current and new password",
            status.HTTP_400_BAD_REQUEST,
        )
    if not verify_password(data.current_password, current_user.password_hash):
        raise AppError("Your current password is wrong", status.HTTP_401_UNAUTHORIZED)
    check_password_policy(data.new_password)

    current_user.set_password_hash(hash_password(data.new_password))
    db.commit()
    db.refresh(current_user)

    logger.info("Password updated for user %s", current_user.user_id)
    return create_send_token(current_user, status.HTTP_200_OK, settings)


@router.get("/me")
def get_me(current_user: User = Depends(require_auth("get:user-details"))):
    return {"status": "success", "data": {"user": current_user.public_dict()}}


@router.get("")
def list_users(
    _: User = Depends(require_auth("get:user")),
    db: Session = Depends(get_db),
):
    users = db.query(User).order_by(User.created_at.asc()).all()
    return {
        "status": "success",
        "results": len(users),
        "data": {"users": [u.public_dict() for u in users]},
    }


@router.get("/{user_id}")
def get_user(user_id: str, db: Session = Depends(get_db)):
    user = db.get(User, user_id)
    if user is None:
        raise AppError("No user found with that ID", status.HTTP_404_NOT_FOUND)
    return {"status": "success", "data": {"user": user.public_dict()}}


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: str,
    current_user: User = Depends(require_auth("delete:user-details")),
    db: Session = Depends(get_db),
):
    user = _target_user(db, current_user, user_id, "delete:admin-user")

    db.delete(user)
    db.commit()
    logger.info("User %s deleted by %s", user_id, current_user.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{user_id}")
def update_user(
    user_id: str,
    data: UpdateUserData,
    current_user: User = Depends(require_auth("patch:user-details")),
    db: Session = Depends(get_db),
):
    user = _target_user(db, current_user, user_id, "patch:admin-user")

    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if isinstance(value, str):
            value = value.strip()
        if field == "other_names":
            value = value or None
        elif value is None or value == "":
            raise AppError(f"{field} cannot be empty", status.HTTP_400_BAD_REQUEST)
        changes[field] = value

    display_name = changes.get("display_name")
    if display_name and display_name != user.display_name:
        taken = (
            db.query(User)
            .filter(User.display_name == display_name, User.user_id != user.user_id)
            .first()
        )
        if taken is not None:
            raise AppError("User may already exist", status.HTTP_409_CONFLICT)

    for field, value in changes.items():
        setattr(user, field, value)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AppError("User may already exist", status.HTTP_409_CONFLICT)
    db.refresh(user)

    logger.info("User %s updated by %s: %s", user_id, current_user.user_id, sorted(changes))
    return {"status": "success", "data": {"user": user.public_dict()}}


@router.patch("/{user_id}/profile-picture")
def update_profile_picture(
    user_id: str,
    profile_picture: Optional[UploadFile] = File(None),
    current_user: User = Depends(require_auth("patch:user-details")),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    image_store: LocalImageStore = Depends(get_image_store),
):
    user = _target_user(db, current_user, user_id, "patch:admin-user")

    if profile_picture is None or not profile_picture.filename:
        raise AppError("Profile picture not found.", status.HTTP_400_BAD_REQUEST)
    if not is_image(profile_picture):
        raise AppError("Please upload only images.", status.HTTP_400_BAD_REQUEST)

    temp_path = save_temp_upload(profile_picture, settings.UPLOAD_TMP_DIR, user.user_id)
    try:
        new_url = image_store.upload_image(temp_path)
    finally:
        image_store.delete_local(temp_path)

    old_url = user.profile_picture
    user.profile_picture = new_url
    db.commit()
    db.refresh(user)
    image_store.delete_image(old_url)

    logger.info("Profile picture for user %s replaced by %s", user_id, current_user.user_id)
    return {"status": "success", "data": {"user": user.public_dict()}}
