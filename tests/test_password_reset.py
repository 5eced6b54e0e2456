# tests/test_password_reset.py
import re
from datetime import timedelta

from sellz_auth.models import utcnow
from sellz_auth.security import hash_reset_token, verify_password, verify_token

FORGOT = "/api/v1/users/forgotPassword"
RESET_URL_RE = re.compile(r"(https?://[^/\s]+)/api/v1/users/resetPassword/([0-9a-f]{64})")


def _request_reset(client, mailer, email):
    resp = client.post(FORGOT, json={"email": email})
    assert resp.status_code == 200, resp.text
    match = RESET_URL_RE.search(mailer.outbox[-1]["message"])
    assert match, mailer.outbox[-1]["message"]
    return match.group(2)


def _reset(client, token, password):
    return client.patch(f"/api/v1/users/resetPassword/{token}", json={"password": password})


def test_forgot_password_emails_a_reset_link(client, make_user, mailer, db_session):
    user = make_user(email="a@x.com")

    resp = client.post(FORGOT, json={"email": "a@x.com"})

    assert resp.status_code == 200
    assert resp.json() == {"status": "success", "message": "Token sent to email!"}
    assert len(mailer.outbox) == 1
    sent = mailer.outbox[0]
    assert sent["to"] == "a@x.com"
    assert "valid for 10 min" in sent["subject"]
    assert sent["message"].startswith("Hi Lovelace Ada,")

    match = RESET_URL_RE.search(sent["message"])
    assert match.group(1) == "http://testserver"
    token = match.group(2)
    db_session.refresh(user)
    assert user.password_reset_token == hash_reset_token(token)
    assert user.password_reset_token != token
    assert user.password_reset_expires > utcnow()


def test_forgot_password_unknown_email(client, mailer):
    resp = client.post(FORGOT, json={"email": "ghost@x.com"})

    assert resp.status_code == 404
    assert resp.json()["message"] == "User not found!"
    assert mailer.outbox == []


def test_forgot_password_requires_email(client):
    resp = client.post(FORGOT, json={})

    assert resp.status_code == 400
    assert resp.json()["message"] == "Please provide user email"


def test_email_failure_rolls_back_the_reset_token(client, make_user, mailer, db_session):
    user = make_user(email="a@x.com")
    mailer.fail = True

    resp = client.post(FORGOT, json={"email": "a@x.com"})

    assert resp.status_code == 500
    assert resp.json() == {
        "status": "error",
        "message": "There was an error sending the email. Try again later!",
    }
    db_session.refresh(user)
    assert user.password_reset_token is None
    assert user.password_reset_expires is None


def test_reset_round_trip(client, make_user, mailer, settings, db_session):
    user = make_user(email="a@x.com", password="secret123")
    token = _request_reset(client, mailer, "a@x.com")

    resp = _reset(client, token, "new-secret-456")

    assert resp.status_code == 200, resp.text
    claims = verify_token(resp.json()["token"], settings)
    assert claims["sub"] == user.user_id

    db_session.refresh(user)
    assert verify_password("new-secret-456", user.password_hash)
    assert user.password_reset_token is None
    assert user.password_reset_expires is None

    old = client.post("/api/v1/auth/signin", json={"email": "a@x.com", "password": "secret123"})
    assert old.status_code == 401
    new = client.post("/api/v1/auth/signin", json={"email": "a@x.com", "password": "new-secret-456"})
    assert new.status_code == 201

    # The fresh token is not stale against the new password_changed_at.
    me = client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {resp.json()['token']}"})
    assert me.status_code == 200


def test_reset_token_is_single_use(client, make_user, mailer):
    make_user(email="a@x.com")
    token = _request_reset(client, mailer, "a@x.com")

    assert _reset(client, token, "new-secret-456").status_code == 200
    again = _reset(client, token, "another-secret-789")

    assert again.status_code == 400
    assert again.json()["message"] == "Token is invalid or has expired"


def test_expired_reset_token_is_rejected(client, make_user, mailer, db_session):
    user = make_user(email="a@x.com")
    token = _request_reset(client, mailer, "a@x.com")
    user.password_reset_expires = utcnow() - timedelta(seconds=1)
    db_session.commit()

    resp = _reset(client, token, "new-secret-456")

    assert resp.status_code == 400
    assert resp.json()["message"] == "Token is invalid or has expired"


def test_tampered_reset_token_is_rejected(client, make_user, mailer):
    make_user(email="a@x.com")
    token = _request_reset(client, mailer, "a@x.com")
    tampered = token[:-1] + ("0" if token[-1] != "0" else "1")

    resp = _reset(client, tampered, "new-secret-456")

    assert resp.status_code == 400
    assert resp.json()["message"] == "Token is invalid or has expired"


def test_reset_rejects_same_password(client, make_user, mailer):
    make_user(email="a@x.com", password="secret123")
    token = _request_reset(client, mailer, "a@x.com")

    resp = _reset(client, token, "secret123")

    assert resp.status_code == 400
    assert resp.json()["message"] == "New password cannot be same as previous password"


def test_reset_enforces_password_policy(client, make_user, mailer):
    make_user(email="a@x.com")
    token = _request_reset(client, mailer, "a@x.com")

    assert _reset(client, token, "short").status_code == 400
    missing = client.patch(f"/api/v1/users/resetPassword/{token}", json={})
    assert missing.status_code == 400
    assert missing.json()["message"] == "New password is required"


def test_update_my_password(client, make_user, auth_header, settings, db_session):
    user = make_user(password="secret123")
    headers = auth_header(user, now=None)

    resp = client.patch(
        "/api/v1/users/updateMyPassword",
        json={"current_password": "secret123", "new_password": "even-better-1"},
        headers=headers,
    )

    assert resp.status_code == 200, resp.text
    db_session.refresh(user)
    assert verify_password("even-better-1", user.password_hash)
    assert verify_token(resp.json()["token"], settings)["sub"] == user.user_id


def test_update_my_password_wrong_current_password(client, make_user, auth_header):
    user = make_user(password="secret123")

    resp = client.patch(
        "/api/v1/users/updateMyPassword",
        json={"current_password": "nope-nope", "new_password": "even-better-1"},
        headers=auth_header(user),
    )

    assert resp.status_code == 401
    assert resp.json()["message"] == "Your current password is wrong"


def test_update_my_password_enforces_policy(client, make_user, auth_header):
    user = make_user(password="secret123")

    resp = client.patch(
        "/api/v1/users/updateMyPassword",
        json={"current_password": "secret123", "new_password": "short"},
        headers=auth_header(user),
    )

    assert resp.status_code == 400
