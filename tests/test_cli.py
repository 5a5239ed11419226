from __future__ import annotations

from typer.testing import CliRunner

from archive_api.cli import app
from archive_api.db.session import SessionLocal
from archive_api.models import User, UserRole
from archive_api.services.auth import AuthService

runner = CliRunner()


def test_create_user_then_login(client):
    result = runner.invoke(
        app,
        ["create-user", "1AB21CS042", "Rohan Das", "--role", "student", "--password", "s3cret"],
    )
    assert result.exit_code == 0, result.output
    assert "Created student 1ab21cs042" in result.output

    response = client.post("/api/login", json={"email": "1ab21cs042", "password": "s3cret"})
    assert response.status_code == 200
    assert response.json()["user"]["name"] == "Rohan Das"


def test_create_user_rejects_duplicates(make_user):
    existing = make_user(UserRole.STAFF)
    result = runner.invoke(app, ["create-user", existing["email"], "Dup", "--password", "x"])
    assert result.exit_code == 1


def test_set_role_and_reset_password(make_user):
    user = make_user(UserRole.STUDENT)

    result = runner.invoke(app, ["set-role", user["email"], "admin"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["reset-password", user["email"], "--password", "new-pass"])
    assert result.exit_code == 0, result.output

    with SessionLocal() as session:
        stored = session.query(User).filter(User.id == user["id"]).one()
        assert stored.role == UserRole.ADMIN
        assert AuthService.verify_password("new-pass", stored.password_hash)


def test_set_role_for_unknown_user_fails():
    result = runner.invoke(app, ["set-role", "ghost@college.edu", "staff"])
    assert result.exit_code == 1


def test_list_users(make_user):
    make_user(UserRole.STAFF, email="reviewer@college.edu")
    result = runner.invoke(app, ["list-users"])
    assert result.exit_code == 0
    assert "reviewer@college.edu" in result.output
