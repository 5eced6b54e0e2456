# tests/conftest.py
import os
import sys
import tempfile
from datetime import date, timedelta

# Ensure root import
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Settings are read once, so the environment must be in place before import.
_TEST_DIR = tempfile.mkdtemp(prefix="sellz-tests-")
os.environ["JWT_SECRET"] = "test-secret-do-not-use"
os.environ["JWT_EXPIRES_IN_HOURS"] = "24"
os.environ["JWT_COOKIE_EXPIRES_IN_HOURS"] = "24"
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["MEDIA_DIR"] = os.path.join(_TEST_DIR, "media")
os.environ["UPLOAD_TMP_DIR"] = os.path.join(_TEST_DIR, "tmp")
os.environ.pop("SENDGRID_API_KEY", None)
os.environ.pop("MAIL_FROM_EMAIL", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sellz_auth.app import app
from sellz_auth.config import get_settings
from sellz_auth.database import Base, get_db
from sellz_auth.mailer import EmailDeliveryError, get_email_sender
from sellz_auth.models import User, utcnow
from sellz_auth.security import hash_password, issue_token
from sellz_auth.storage import LocalImageStore, get_image_store

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class FakeEmailSender:
    def __init__(self):
        self.outbox = []
        self.fail = False

    async def send(self, to, subject, message):
        if self.fail:
            raise EmailDeliveryError("smtp down")
        self.outbox.append({"to": to, "subject": subject, "message": message})


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def mailer():
    return FakeEmailSender()


@pytest.fixture
def image_store(tmp_path):
    return LocalImageStore(str(tmp_path / "media"), "/media")


@pytest.fixture
def client(db_session, mailer, image_store):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_sender] = lambda: mailer
    app.dependency_overrides[get_image_store] = lambda: image_store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make_user(
        email=None,
        password="secret123",
        role="user",
        display_name=None,
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            first_name="Ada",
            last_name="Lovelace",
            display_name=display_name or f"ada{n}",
            birthdate=date(1990, 12, 10),
            gender="F",
            country="UK",
            email=email or f"ada{n}@example.com",
            phone_number="0123456789",
            address="12 St James's Square",
            profile_picture="/media/ada.png",
            role=role,
            password_hash=hash_password(password),
            # Far enough back that tokens minted "a few minutes ago" are still fresh.
            password_changed_at=utcnow() - timedelta(days=1),
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def auth_header(settings):
    def _auth_header(user: User, now=None) -> dict:
        token = issue_token(user.user_id, user.role, settings, now=now)
        return {"Authorization": f"Bearer {token}"}

    return _auth_header


@pytest.fixture
def signup_form():
    def _signup_form(**overrides) -> dict:
        form = {
            "first_name": "Grace",
            "last_name": "Hopper",
            "display_name": "amazing-grace",
            "birthdate": "1986-12-09",
            "gender": "F",
            "country": "US",
            "email": "grace@example.com",
            "phone_number": "5551234",
            "address": "1 Navy Way",
            "password": "cobol-rules",
        }
        form.update(overrides)
        return form

    return _signup_form


@pytest.fixture
def picture():
    return {"profile_picture": ("me.png", PNG_BYTES, "image/png")}
