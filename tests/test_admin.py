from __future__ import annotations

from archive_api.db.session import SessionLocal
from archive_api.models import User, UserRole


def test_stats_counts_users_proofs_and_events(admin_client, student_client, staff_client, upload):
    first = upload(student_client).json()
    upload(student_client, eventName="Sports Day")
    staff_client.put(f"/api/proofs/{first['proofId']}/status", json={"status": "approved"})

    response = admin_client.get("/api/admin/stats")

    assert response.status_code == 200
    assert response.json() == {
        "totalUsers": 3,
        "totalProofs": 2,
        "totalEvents": 2,
        "pendingProofs": 1,
        "approvedProofs": 1,
        "rejectedProofs": 0,
    }


def test_admin_views_require_admin(student_client, staff_client):
    for role_client in (student_client, staff_client):
        assert role_client.get("/api/admin/stats").status_code == 403
        assert role_client.get("/api/admin/users").status_code == 403
        assert role_client.put("/api/admin/users/1/role", json={"role": "admin"}).status_code == 403


def test_user_listing_is_newest_first(admin_client, admin, make_user):
    staff = make_user(UserRole.STAFF)
    student = make_user(UserRole.STUDENT)

    response = admin_client.get("/api/admin/users")

    assert response.status_code == 200
    rows = response.json()
    assert [row["id"] for row in rows] == [student["id"], staff["id"], admin["id"]]
    assert set(rows[0]) == {"id", "name", "email", "role", "created_at"}
    assert rows[0]["role"] == "student"
    assert rows[0]["created_at"]


def test_role_update(admin_client, make_user):
    target = make_user(UserRole.STUDENT)

    response = admin_client.put(f"/api/admin/users/{target['id']}/role", json={"role": "staff"})

    assert response.status_code == 200
    assert response.json() == {
        "message": "User role updated successfully",
        "userId": target["id"],
        "newRole": "staff",
    }
    with SessionLocal() as session:
        assert session.query(User).filter(User.id == target["id"]).one().role == UserRole.STAFF


def test_role_update_rejects_unknown_role(admin_client, make_user):
    target = make_user(UserRole.STUDENT)

    for bad_role in ("superuser", "", None, "Students"):
        response = admin_client.put(f"/api/admin/users/{target['id']}/role", json={"role": bad_role})
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid role"

    with SessionLocal() as session:
        assert session.query(User).filter(User.id == target["id"]).one().role == UserRole.STUDENT


def test_role_update_for_unknown_user(admin_client):
    response = admin_client.put("/api/admin/users/424242/role", json={"role": "staff"})
    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


def test_promoted_user_gains_access_on_next_request(admin_client, login_client, make_user):
    target = make_user(UserRole.STAFF)
    target_client = login_client(target)
    assert target_client.get("/api/admin/stats").status_code == 403

    admin_client.put(f"/api/admin/users/{target['id']}/role", json={"role": "admin"})

    assert target_client.get("/api/admin/stats").status_code == 200
