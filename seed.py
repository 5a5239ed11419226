from __future__ import annotations

import io
import logging
import os
from typing import Any

from dotenv import load_dotenv

load_dotenv()

from archive_api.db.session import SessionLocal
from archive_api.models import Event, Proof, ProofStatus, User, UserRole
from archive_api.services.auth import AuthService
from archive_api.services.proofs import UploadMetadata, create_proof_upload, review_proof
from archive_api.services.storage import LocalStorageService

logger = logging.getLogger(__name__)

DEMO_PASSWORD = os.getenv("SEED_PASSWORD", "archive123")

DEMO_USERS: list[dict[str, Any]] = [
    {"email": "admin@college.edu", "name": "Archive Admin", "role": UserRole.ADMIN},
    {"email": "staff@college.edu", "name": "Review Staff", "role": UserRole.STAFF},
    {"email": "1ab21cs001", "name": "Asha Rao", "role": UserRole.STUDENT},
    {"email": "1ab21cs002", "name": "Vikram Shetty", "role": UserRole.STUDENT},
    {"email": "1ab21ec014", "name": "Meera Nair", "role": UserRole.STUDENT},
]

# minimal but valid payloads so previews render
_PDF_BYTES = b"%PDF-1.4\n1 0 obj<</Type/Catalog>>endobj\ntrailer<</Root 1 0 R>>\n%%EOF\n"
_PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
    b"\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)

DEMO_PROOFS: list[dict[str, Any]] = [
    {
        "owner": "1ab21cs001",
        "file_name": "hackathon-certificate.pdf",
        "content": _PDF_BYTES,
        "metadata": UploadMetadata(
            event_name="Inter-college Hackathon",
            event_type="Technical",
            department="CSE",
            academic_year="2024-25",
            proof_type="Certificate",
            description="Second place, 24h hackathon",
        ),
        "review": (ProofStatus.APPROVED, None),
    },
    {
        "owner": "1ab21cs002",
        "file_name": "nss-camp.png",
        "content": _PNG_BYTES,
        "metadata": UploadMetadata(
            event_name="NSS Village Camp",
            event_type="Social",
            department="CSE",
            academic_year="2024-25",
            proof_type="Photo",
            description="Week-long NSS camp",
        ),
        "review": (ProofStatus.REJECTED, "Photo does not show the participant"),
    },
    {
        "owner": "1ab21ec014",
        "file_name": "workshop-report.pdf",
        "content": _PDF_BYTES,
        "metadata": UploadMetadata(
            event_name="IoT Workshop",
            event_type="Workshop",
            department="ECE",
            academic_year="2024-25",
            proof_type="Report",
            description="Two-day hands-on workshop",
        ),
        "review": None,
    },
]


def seed_users(session) -> dict[str, User]:
    service = AuthService(session)
    users: dict[str, User] = {}
    for payload in DEMO_USERS:
        user = service.get_user_by_identifier(payload["email"])
        if user is None:
            user = service.create_user(payload["email"], payload["name"], DEMO_PASSWORD, payload["role"])
        else:
            logger.debug("Seed user exists: %s", payload["email"])
        users[payload["email"]] = user
    session.commit()
    return users


def seed_proofs(session, users: dict[str, User], storage: LocalStorageService) -> int:
    reviewer = users["staff@college.edu"]
    created = 0
    for payload in DEMO_PROOFS:
        owner = users[payload["owner"]]
        exists = (
            session.query(Proof)
            .join(Event, Event.id == Proof.event_id)
            .filter(Proof.uploaded_by == owner.id, Event.event_name == payload["metadata"].event_name)
            .first()
        )
        if exists:
            continue

        _, proof = create_proof_upload(
            session,
            storage,
            owner,
            payload["metadata"],
            io.BytesIO(payload["content"]),
            payload["file_name"],
        )
        if payload["review"]:
            status, reason = payload["review"]
            review_proof(session, proof.id, status, reviewer, reason)
        created += 1
    return created


def run_seed() -> None:
    storage = LocalStorageService()
    with SessionLocal() as session:
        users = seed_users(session)
        created = seed_proofs(session, users, storage)
    logger.info("Seed applied (users=%s new_proofs=%s)", len(users), created)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_seed()
