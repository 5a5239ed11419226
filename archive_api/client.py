"""Typed HTTP client for the archive API.

``ArchiveClient`` owns a ``ClientState`` holding what the web views keep
between requests: the signed-in user, the last fetched proof lists, admin
stats and the user directory. Each call writes only its own slice of state.
Failures raise ``ArchiveAPIError`` and never masquerade as empty results.

Works against a running server::

    client = ArchiveClient(httpx.Client(base_url="http://localhost:8000"))

or in-process with ``fastapi.testclient.TestClient(app)``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, List, Optional, Union

import httpx


class ArchiveAPIError(Exception):
    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


@dataclass
class ClientState:
    user: Optional[Dict[str, Any]] = None
    proofs: List[Dict[str, Any]] = field(default_factory=list)
    search_results: List[Dict[str, Any]] = field(default_factory=list)
    stats: Optional[Dict[str, int]] = None
    users: List[Dict[str, Any]] = field(default_factory=list)
    last_error: Optional[str] = None

    @property
    def role(self) -> Optional[str]:
        return self.user["role"] if self.user else None

    @property
    def can_upload(self) -> bool:
        return self.role == "student"

    @property
    def can_review(self) -> bool:
        return self.role in ("staff", "admin")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("error")
        if detail is not None:
            return detail if isinstance(detail, str) else str(detail)
    return response.reason_phrase


class ArchiveClient:
    def __init__(self, http: httpx.Client) -> None:
        self.http = http
        self.state = ClientState()

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        response = self.http.request(method, url, **kwargs)
        if response.status_code >= 400:
            detail = _error_detail(response)
            self.state.last_error = detail
            raise ArchiveAPIError(response.status_code, detail)
        self.state.last_error = None
        return response

    # --- Session ---------------------------------------------------------
    def login(self, email: str, password: str) -> Dict[str, Any]:
        response = self._request("POST", "/api/login", json={"email": email, "password": password})
        self.state.user = response.json()["user"]
        return self.state.user

    def me(self) -> Dict[str, Any]:
        self.state.user = self._request("GET", "/api/me").json()["user"]
        return self.state.user

    def logout(self) -> None:
        try:
            self._request("POST", "/api/logout")
        finally:
            self.http.cookies.clear()
            self.state = ClientState()

    # --- Student ---------------------------------------------------------
    def upload_proof(
        self,
        file_name: str,
        content: Union[bytes, BinaryIO],
        *,
        event_name: str,
        proof_type: str,
        event_type: str = "",
        department: str = "",
        academic_year: str = "",
        description: str = "",
        content_type: str = "application/octet-stream",
    ) -> Dict[str, Any]:
        data = {
            "eventName": event_name,
            "eventType": event_type,
            "department": department,
            "academicYear": academic_year,
            "proofType": proof_type,
            "description": description,
        }
        files = {"file": (file_name, content, content_type)}
        return self._request("POST", "/api/upload", data=data, files=files).json()

    def list_proofs(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"status": status} if status else None
        self.state.proofs = self._request("GET", "/api/proofs", params=params).json()
        return self.state.proofs

    # --- Staff -----------------------------------------------------------
    def search(self, student_usn: str = "", status: Optional[str] = None) -> List[Dict[str, Any]]:
        params: Dict[str, str] = {}
        if student_usn:
            params["studentUSN"] = student_usn
        if status:
            params["status"] = status
        self.state.search_results = self._request("GET", "/api/search", params=params).json()
        return self.state.search_results

    def review(self, proof_id: int, status: str, rejection_reason: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"status": status}
        if rejection_reason is not None:
            body["rejection_reason"] = rejection_reason
        return self._request("PUT", f"/api/proofs/{proof_id}/status", json=body).json()

    def preview(self, file_path: str) -> httpx.Response:
        return self._request("GET", f"/api/preview/{file_path}")

    # --- Admin -----------------------------------------------------------
    def admin_stats(self) -> Dict[str, int]:
        self.state.stats = self._request("GET", "/api/admin/stats").json()
        return self.state.stats

    def admin_users(self) -> List[Dict[str, Any]]:
        self.state.users = self._request("GET", "/api/admin/users").json()
        return self.state.users

    def update_role(self, user_id: int, role: str) -> Dict[str, Any]:
        result = self._request("PUT", f"/api/admin/users/{user_id}/role", json={"role": role}).json()
        for entry in self.state.users:
            if entry["id"] == user_id:
                entry["role"] = result["newRole"]
        return result
