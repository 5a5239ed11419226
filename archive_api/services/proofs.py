from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, BinaryIO, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..models import (
    ALLOWED_TRANSITIONS,
    EVENT_PROOF_DOCUMENT_TYPE,
    Event,
    Proof,
    ProofStatus,
    User,
    UserRole,
)
from .metrics import record_review, record_upload
from .preview import resolve_delivery
from .storage import LocalStorageService

logger = logging.getLogger(__name__)

DEFAULT_ACADEMIC_YEAR = "2024-25"

# Placeholders for proofs that were uploaded without an event.
LISTING_PLACEHOLDERS = {
    "event_name": "My Document",
    "event_type": "Student Upload",
    "department": "Student Department",
    "academic_year": DEFAULT_ACADEMIC_YEAR,
    "event_description": "Student uploaded document",
}

SEARCH_PLACEHOLDERS = {
    "event_name": "Student Document",
    "event_type": "Student Upload",
    "department": "Student Department",
    "academic_year": DEFAULT_ACADEMIC_YEAR,
    "description": "Student uploaded document",
}


class ProofError(Exception):
    pass


class ProofNotFound(ProofError):
    pass


class InvalidStatus(ProofError):
    pass


class InvalidTransition(ProofError):
    pass


@dataclass
class UploadMetadata:
    event_name: str
    proof_type: str
    event_type: Optional[str] = None
    department: Optional[str] = None
    academic_year: Optional[str] = None
    description: Optional[str] = None


def parse_status(value: Optional[str]) -> ProofStatus:
    try:
        return ProofStatus((value or "").strip().lower())
    except ValueError as exc:
        raise InvalidStatus("Invalid status") from exc


def parse_status_filter(value: Optional[str]) -> Optional[ProofStatus]:
    """``None``, empty and ``all`` mean no filter."""
    if value is None or value.strip().lower() in ("", "all"):
        return None
    return parse_status(value)


# --- Upload ---------------------------------------------------------------
def create_proof_upload(
    db: Session,
    storage: LocalStorageService,
    uploader: User,
    metadata: UploadMetadata,
    file_obj: BinaryIO,
    filename: str,
) -> tuple[Event, Proof]:
    """Store the blob, then write the Event and its Proof in one transaction.

    If the database write fails the blob is removed, so a failed upload
    leaves neither rows nor files behind.
    """
    stored = storage.save(file_obj, filename)

    try:
        event = Event(
            event_name=metadata.event_name,
            event_type=metadata.event_type,
            department=metadata.department,
            academic_year=metadata.academic_year,
            description=metadata.description,
            created_by=uploader.id,
        )
        db.add(event)
        db.flush()

        proof = Proof(
            event_id=event.id,
            proof_type=metadata.proof_type,
            file_name=filename,
            file_path=stored.key,
            uploaded_by=uploader.id,
            document_type=EVENT_PROOF_DOCUMENT_TYPE,
            status=ProofStatus.PENDING,
            rejection_reason=None,
        )
        db.add(proof)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        storage.delete(stored.key)
        logger.exception("proof_upload_failed user_id=%s storage_key=%s", uploader.id, stored.key)
        raise

    db.refresh(event)
    db.refresh(proof)
    record_upload(resolve_delivery(filename).mode.value)
    logger.info(
        "proof_uploaded proof_id=%s event_id=%s user_id=%s storage_key=%s bytes=%s",
        proof.id,
        event.id,
        uploader.id,
        stored.key,
        stored.size,
    )
    return event, proof


# --- Review ---------------------------------------------------------------
def review_proof(
    db: Session,
    proof_id: int,
    target: ProofStatus,
    reviewer: User,
    rejection_reason: Optional[str] = None,
) -> Proof:
    proof = db.query(Proof).filter(Proof.id == proof_id).with_for_update().one_or_none()
    if proof is None:
        raise ProofNotFound("Document not found")

    current = ProofStatus(proof.status)
    if target not in ALLOWED_TRANSITIONS[current]:
        db.rollback()
        raise InvalidTransition(f"Invalid status transition from {current.value} to {target.value}")

    reason = (rejection_reason or "").strip()
    proof.status = target
    proof.rejection_reason = reason if target is ProofStatus.REJECTED and reason else None
    proof.reviewed_by = reviewer.id
    proof.reviewed_at = datetime.now(timezone.utc)
    db.add(proof)
    db.commit()
    db.refresh(proof)

    record_review(target)
    logger.info(
        "proof_reviewed proof_id=%s status=%s reviewer_id=%s",
        proof.id,
        target.value,
        reviewer.id,
    )
    return proof


# --- Listing & search -----------------------------------------------------
def _joined_proofs(db: Session) -> Query:
    return (
        db.query(Proof, User, Event)
        .join(User, User.id == Proof.uploaded_by)
        .outerjoin(Event, Event.id == Proof.event_id)
    )


def _newest_first(query: Query) -> Query:
    return query.order_by(Proof.uploaded_at.desc(), Proof.id.desc())


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def list_proofs_for(db: Session, viewer: User, status: Optional[ProofStatus] = None) -> List[Dict[str, Any]]:
    query = _joined_proofs(db)
    if viewer.role is UserRole.STUDENT:
        query = query.filter(Proof.uploaded_by == viewer.id)
    if status is not None:
        query = query.filter(Proof.status == status)

    rows = _newest_first(query).all()
    logger.info("proofs_listed viewer_id=%s role=%s count=%s", viewer.id, viewer.role.value, len(rows))
    return [serialize_listing_row(proof, user, event) for proof, user, event in rows]


def search_student_proofs(
    db: Session,
    student_usn: Optional[str] = None,
    status: Optional[ProofStatus] = None,
) -> List[Dict[str, Any]]:
    query = _joined_proofs(db).filter(User.role == UserRole.STUDENT)

    term = (student_usn or "").strip()
    if term:
        query = query.filter(User.email.ilike(f"%{_escape_like(term)}%", escape="\\"))
    if status is not None:
        query = query.filter(Proof.status == status)

    rows = _newest_first(query).all()
    logger.info("proofs_searched term=%r status=%s count=%s", term, status.value if status else "all", len(rows))
    return [serialize_search_row(proof, user, event) for proof, user, event in rows]


# --- Serialization --------------------------------------------------------
def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_proof(proof: Proof) -> Dict[str, Any]:
    return {
        "id": proof.id,
        "event_id": proof.event_id,
        "proof_type": proof.proof_type,
        "file_name": proof.file_name,
        "file_path": proof.file_path,
        "uploaded_by": proof.uploaded_by,
        "document_type": proof.document_type,
        "status": ProofStatus(proof.status).value,
        "rejection_reason": proof.rejection_reason,
        "reviewed_by": proof.reviewed_by,
        "reviewed_at": _isoformat(proof.reviewed_at),
        "uploaded_at": _isoformat(proof.uploaded_at),
    }


def _event_fields(event: Optional[Event], placeholders: Dict[str, str], description_key: str) -> Dict[str, Any]:
    if event is None:
        return dict(placeholders)
    return {
        "event_name": event.event_name or placeholders["event_name"],
        "event_type": event.event_type or placeholders["event_type"],
        "department": event.department or placeholders["department"],
        "academic_year": event.academic_year or placeholders["academic_year"],
        description_key: event.description or placeholders[description_key],
    }


def serialize_listing_row(proof: Proof, user: User, event: Optional[Event]) -> Dict[str, Any]:
    payload = serialize_proof(proof)
    payload.update(_event_fields(event, LISTING_PLACEHOLDERS, "event_description"))
    payload["uploaded_by_name"] = user.name
    payload["student_email"] = user.email
    return payload


def serialize_search_row(proof: Proof, user: User, event: Optional[Event]) -> Dict[str, Any]:
    payload = serialize_proof(proof)
    payload.update(_event_fields(event, SEARCH_PLACEHOLDERS, "description"))
    payload["uploaded_by_name"] = user.name
    payload["student_usn"] = user.email
    payload["uploaded_by_role"] = user.role.value
    return payload
