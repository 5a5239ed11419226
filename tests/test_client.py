from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from archive_api.client import ArchiveAPIError, ArchiveClient
from archive_api.main import app
from archive_api.models import UserRole


@pytest.fixture()
def archive_client():
    """Client factory; each one has its own cookie jar."""
    opened: list[TestClient] = []

    def _archive_client() -> ArchiveClient:
        http = TestClient(app)
        opened.append(http)
        return ArchiveClient(http)

    yield _archive_client
    for http in opened:
        http.close()


def test_student_and_staff_workflow(archive_client, student, staff):
    student_view = archive_client()
    user = student_view.login(student["email"], student["password"])
    assert user["role"] == "student"
    assert student_view.state.can_upload and not student_view.state.can_review

    created = student_view.upload_proof(
        "certificate.pdf",
        b"%PDF-1.7\n%%EOF",
        event_name="Quiz Night",
        proof_type="Certificate",
        department="CSE",
        content_type="application/pdf",
    )
    assert created["status"] == "pending"
    assert [row["id"] for row in student_view.list_proofs()] == [created["proofId"]]
    assert student_view.state.proofs[0]["event_name"] == "Quiz Night"

    staff_view = archive_client()
    staff_view.login(staff["email"], staff["password"])
    results = staff_view.search("cs001")
    assert [row["id"] for row in results] == [created["proofId"]]

    staff_view.review(created["proofId"], "rejected", "Wrong event")
    assert student_view.list_proofs(status="rejected")[0]["rejection_reason"] == "Wrong event"

    preview = staff_view.preview(results[0]["file_path"])
    assert preview.headers["content-type"] == "application/pdf"


def test_errors_raise_instead_of_returning_empty(archive_client, student):
    view = archive_client()
    view.login(student["email"], student["password"])

    with pytest.raises(ArchiveAPIError) as excinfo:
        view.search("anything")

    assert excinfo.value.status_code == 403
    assert excinfo.value.detail == "Students cannot search other documents"
    assert view.state.last_error == "Students cannot search other documents"
    assert view.state.search_results == []


def test_failed_login_leaves_state_empty(archive_client, student):
    view = archive_client()
    with pytest.raises(ArchiveAPIError) as excinfo:
        view.login(student["email"], "nope")

    assert excinfo.value.status_code == 401
    assert view.state.user is None


def test_logout_clears_state_and_session(archive_client, admin):
    view = archive_client()
    view.login(admin["email"], admin["password"])
    view.admin_stats()
    assert view.state.stats is not None and view.state.is_admin

    view.logout()

    assert view.state.user is None
    assert view.state.stats is None
    with pytest.raises(ArchiveAPIError) as excinfo:
        view.me()
    assert excinfo.value.status_code == 401


def test_update_role_refreshes_cached_directory(archive_client, admin, make_user):
    target = make_user(UserRole.STUDENT)
    view = archive_client()
    view.login(admin["email"], admin["password"])
    view.admin_users()

    view.update_role(target["id"], "staff")

    cached = {row["id"]: row["role"] for row in view.state.users}
    assert cached[target["id"]] == "staff"
