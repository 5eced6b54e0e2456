# sellz_auth/routers/auth.py
import logging
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from pydantic import EmailStr
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..database import get_db
from ..deps import require_auth
from ..errors import AppError
from ..models import User
from ..responses import create_send_token
from ..schemas import SignInData
from ..security import check_password_policy, hash_password, verify_password
from ..storage import LocalImageStore, get_image_store, is_image, save_temp_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

INCORRECT_CREDENTIALS = "Incorrect email or password"


@router.post("/signin", status_code=status.HTTP_201_CREATED)
def sign_in(
    data: SignInData,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    logger.info("Signing user in...")
    email = (data.email or "").strip().lower()
    if not email or not data.password:
        raise AppError("Please provide email and password!", status.HTTP_400_BAD_REQUEST)

    # Unknown email and wrong password get the same answer.
    user = db.query(User).filter(User.email == email).first()
    if user is None or not verify_password(data.password, user.password_hash):
        raise AppError(INCORRECT_CREDENTIALS, status.HTTP_401_UNAUTHORIZED)

    logger.info("User %s signed in successfully", user.user_id)
    return create_send_token(user, status.HTTP_201_CREATED, settings)


def register_user(role: str):
    """Build a signup handler that creates accounts with the given ``role``."""

    def signup(
        first_name: str = Form(...),
        last_name: str = Form(...),
        other_names: Optional[str] = Form(None),
        display_name: str = Form(...),
        birthdate: date = Form(...),
        gender: Literal["M", "F"] = Form(...),
        country: str = Form(...),
        email: EmailStr = Form(...),
        phone_number: str = Form(...),
        address: str = Form(...),
        password: str = Form(...),
        profile_picture: Optional[UploadFile] = File(None),
        db: Session = Depends(get_db),
        settings: Settings = Depends(get_settings),
        image_store: LocalImageStore = Depends(get_image_store),
    ):
        logger.info("Creating a new %s user...", role)

        if profile_picture is None or not profile_picture.filename:
            raise AppError("Profile picture not found.", status.HTTP_400_BAD_REQUEST)
        if not is_image(profile_picture):
            raise AppError("Please upload only images.", status.HTTP_400_BAD_REQUEST)

        check_password_policy(password)

        email = str(email).strip().lower()
        display_name = display_name.strip()
        existing = (
            db.query(User)
            .filter(or_(User.email == email, User.display_name == display_name))
            .first()
        )
        if existing is not None:
            raise AppError("User may already exist", status.HTTP_409_CONFLICT)

        temp_path = save_temp_upload(profile_picture, settings.UPLOAD_TMP_DIR, email.split("@")[0])
        picture_url = None
        try:
            password_hash = hash_password(password)
            picture_url = image_store.upload_image(temp_path)
            user = User(
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                other_names=other_names.strip() if other_names else None,
                display_name=display_name,
                birthdate=birthdate,
                gender=gender,
                country=country.strip(),
                email=email,
                phone_number=phone_number.strip(),
                address=address.strip(),
                profile_picture=picture_url,
                role=role,
                password_hash=password_hash,
            )
            db.add(user)
            db.commit()
        except IntegrityError:
            db.rollback()
            image_store.delete_image(picture_url)
            raise AppError("User may already exist", status.HTTP_409_CONFLICT)
        finally:
            image_store.delete_local(temp_path)

        db.refresh(user)
        logger.info("Created %s user %s", role, user.user_id)
        return create_send_token(user, status.HTTP_201_CREATED, settings)

    signup.__name__ = f"signup_{role}"
    return signup


router.add_api_route(
    "/signup",
    register_user("user"),
    methods=["POST"],
    status_code=status.HTTP_201_CREATED,
)
router.add_api_route(
    "/signup/admin",
    register_user("admin"),
    methods=["POST"],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_auth("create:admin"))],
)
