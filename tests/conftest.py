from __future__ import annotations

import io
import itertools
import os
import pathlib
import shutil
import sys
import tempfile
from typing import Callable, Iterator

import pytest

ROOT_DIR = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

# Settings are read once at import time, so point them at scratch storage first.
_SCRATCH_DIR = pathlib.Path(tempfile.mkdtemp(prefix="doc-archive-tests-"))
UPLOAD_DIR = _SCRATCH_DIR / "uploads"
os.environ["DATABASE_URL"] = os.getenv("TEST_DATABASE_URL", f"sqlite:///{_SCRATCH_DIR / 'archive.db'}")
os.environ["UPLOAD_DIR"] = str(UPLOAD_DIR)
os.environ["APP_ENV"] = "test"
os.environ.pop("SENTRY_DSN", None)

from fastapi.testclient import TestClient
from sqlalchemy import delete

from archive_api.db.session import SessionLocal, engine
from archive_api.main import app
from archive_api.models import Base, Event, Proof, User, UserRole, UserSession
from archive_api.services.auth import AuthService


DEFAULT_PASSWORD = "correct-horse"
PDF_BYTES = b"%PDF-1.7\n" + b"A" * 256 + b"\n%%EOF"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture(scope="session", autouse=True)
def database_schema() -> Iterator[None]:
    """Create the schema once for the whole run."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    shutil.rmtree(_SCRATCH_DIR, ignore_errors=True)


@pytest.fixture(autouse=True)
def cleanup_database() -> Iterator[None]:
    """Delete every row and stored blob after each test."""
    yield
    with SessionLocal() as session:
        for model in (Proof, Event, UserSession, User):
            session.execute(delete(model))
        session.commit()
    if UPLOAD_DIR.exists():
        for path in UPLOAD_DIR.iterdir():
            path.unlink()


@pytest.fixture()
def upload_dir() -> pathlib.Path:
    return UPLOAD_DIR


@pytest.fixture()
def client() -> Iterator[TestClient]:
    """An anonymous TestClient."""
    with TestClient(app) as _client:
        yield _client


_emails = itertools.count(1)


@pytest.fixture()
def make_user() -> Callable[..., dict]:
    """Create a user directly in the store and return its public fields plus password."""

    def _make_user(role: UserRole = UserRole.STUDENT, email: str | None = None, name: str | None = None) -> dict:
        email = email or f"{role.value}{next(_emails)}@college.edu"
        with SessionLocal() as session:
            user = AuthService(session).create_user(email, name or email.split("@")[0].title(), DEFAULT_PASSWORD, role)
            session.commit()
            return {
                "id": user.id,
                "name": user.name,
                "email": user.email,
                "role": user.role.value,
                "password": DEFAULT_PASSWORD,
            }

    return _make_user


@pytest.fixture()
def login_client() -> Iterator[Callable[[dict], TestClient]]:
    """Return a fresh TestClient carrying a session for the given user."""
    opened: list[TestClient] = []

    def _login_client(user: dict) -> TestClient:
        _client = TestClient(app)
        opened.append(_client)
        response = _client.post("/api/login", json={"email": user["email"], "password": user["password"]})
        assert response.status_code == 200, response.text
        return _client

    yield _login_client
    for _client in opened:
        _client.close()


@pytest.fixture()
def student(make_user) -> dict:
    return make_user(UserRole.STUDENT, email="1ab21cs001", name="Asha Rao")


@pytest.fixture()
def staff(make_user) -> dict:
    return make_user(UserRole.STAFF)


@pytest.fixture()
def admin(make_user) -> dict:
    return make_user(UserRole.ADMIN)


@pytest.fixture()
def student_client(login_client, student) -> TestClient:
    return login_client(student)


@pytest.fixture()
def staff_client(login_client, staff) -> TestClient:
    return login_client(staff)


@pytest.fixture()
def admin_client(login_client, admin) -> TestClient:
    return login_client(admin)


def upload_proof(
    client: TestClient,
    file_name: str = "report.pdf",
    content: bytes = PDF_BYTES,
    content_type: str = "application/pdf",
    **fields: str,
):
    data = {
        "eventName": "Tech Fest",
        "eventType": "Technical",
        "department": "CSE",
        "academicYear": "2024-25",
        "proofType": "Certificate",
        "description": "Paper presentation",
    }
    data.update(fields)
    return client.post(
        "/api/upload",
        data=data,
        files={"file": (file_name, io.BytesIO(content), content_type)},
    )


@pytest.fixture()
def upload() -> Callable[..., object]:
    """The multipart upload helper, for tests that vary the payload."""
    return upload_proof


@pytest.fixture()
def uploaded_proof(student_client) -> dict:
    response = upload_proof(student_client)
    assert response.status_code == 200, response.text
    return response.json()
