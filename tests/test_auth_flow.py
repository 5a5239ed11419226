from __future__ import annotations

from datetime import datetime, timedelta, timezone
from http.cookies import SimpleCookie

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from archive_api.config import settings
from archive_api.db.session import SessionLocal
from archive_api.models import User, UserSession
from archive_api.services.auth import AuthService


def test_login_returns_public_projection(client, student):
    response = client.post("/api/login", json={"email": student["email"], "password": student["password"]})

    assert response.status_code == 200
    payload = response.json()
    assert payload["message"] == "Login successful"
    assert payload["user"] == {
        "id": student["id"],
        "name": student["name"],
        "email": student["email"],
        "role": "student",
    }
    assert settings.cookie_name in client.cookies


def test_login_identifier_is_case_insensitive(client, student):
    response = client.post("/api/login", json={"email": "  1AB21CS001 ", "password": student["password"]})
    assert response.status_code == 200
    assert response.json()["user"]["id"] == student["id"]


def test_login_rejects_wrong_password(client, student):
    response = client.post("/api/login", json={"email": student["email"], "password": "wrong"})

    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid email or password"}
    assert settings.cookie_name not in client.cookies


def test_login_rejects_unknown_identifier(client):
    response = client.post("/api/login", json={"email": "nobody@college.edu", "password": "whatever"})
    assert response.status_code == 401
    assert "user" not in response.json()


def test_password_is_not_stored_in_plaintext(student):
    with SessionLocal() as session:
        user = session.query(User).filter(User.id == student["id"]).one()
        assert user.password_hash != student["password"]
        assert AuthService.verify_password(student["password"], user.password_hash)


def test_me_returns_session_user(student_client, student):
    response = student_client.get("/api/me")
    assert response.status_code == 200
    assert response.json()["user"]["email"] == student["email"]


def test_bearer_header_is_accepted(client, student):
    login = client.post("/api/login", json={"email": student["email"], "password": student["password"]})
    assert login.status_code == 200
    token = client.cookies.get(settings.cookie_name)
    client.cookies.clear()

    response = client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["user"]["id"] == student["id"]


def test_logout_revokes_session(client, student):
    login = client.post("/api/login", json={"email": student["email"], "password": student["password"]})
    token = client.cookies.get(settings.cookie_name)
    assert login.status_code == 200 and token

    response = client.post("/api/logout")
    assert response.status_code == 200
    assert response.json() == {"status": "logged_out"}

    cookies = SimpleCookie()
    cookies.load(response.headers.get("set-cookie", ""))
    morsel = cookies.get(settings.cookie_name)
    assert morsel is not None
    assert morsel["max-age"] == "0"

    with SessionLocal() as session:
        persisted = session.query(UserSession).filter(UserSession.user_id == student["id"]).one()
        assert persisted.revoked_at is not None

    client.cookies.clear()
    reuse = client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
    assert reuse.status_code == 401


def test_expired_session_is_rejected(client, student):
    login = client.post("/api/login", json={"email": student["email"], "password": student["password"]})
    assert login.status_code == 200

    with SessionLocal() as session:
        persisted = session.query(UserSession).filter(UserSession.user_id == student["id"]).one()
        persisted.expires_at = datetime.now(timezone.utc) - timedelta(hours=1)
        session.commit()

    response = client.get("/api/me")
    assert response.status_code == 401
    assert response.json() == {"detail": "Authentication required"}


def test_overlong_credentials_are_plain_login_failures(client, student):
    for payload in (
        {"email": "x" * 300, "password": "nope"},
        {"email": student["email"], "password": "p" * 5000},
    ):
        response = client.post("/api/login", json=payload)
        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid email or password"}


def test_database_failure_on_login_is_a_generic_server_error(client, student, monkeypatch):
    def failing_commit(self):
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(Session, "commit", failing_commit)
    response = client.post("/api/login", json={"email": student["email"], "password": student["password"]})
    monkeypatch.undo()

    assert response.status_code == 500
    assert response.json() == {"detail": "Database error"}
    assert settings.cookie_name not in client.cookies
    with SessionLocal() as session:
        assert session.query(UserSession).count() == 0
