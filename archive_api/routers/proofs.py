from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..dependencies.auth import AuthContext, require_auth
from ..dependencies.db import get_db
from ..models import UserRole
from ..services.proofs import (
    InvalidStatus,
    InvalidTransition,
    ProofNotFound,
    UploadMetadata,
    create_proof_upload,
    list_proofs_for,
    parse_status,
    parse_status_filter,
    review_proof,
    search_student_proofs,
)
from ..services.storage import FileTooLarge, StorageError, UnsupportedFileType, get_storage_service

router = APIRouter(prefix="/api", tags=["proofs"])

logger = logging.getLogger(__name__)


class StatusUpdateRequest(BaseModel):
    status: Optional[str] = None
    rejection_reason: Optional[str] = None


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _status_filter(value: Optional[str]):
    try:
        return parse_status_filter(value)
    except InvalidStatus as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post("/upload")
def upload_proof(
    event_name: Optional[str] = Form(default=None, alias="eventName"),
    event_type: Optional[str] = Form(default=None, alias="eventType"),
    department: Optional[str] = Form(default=None),
    academic_year: Optional[str] = Form(default=None, alias="academicYear"),
    proof_type: Optional[str] = Form(default=None, alias="proofType"),
    description: Optional[str] = Form(default=None),
    file: Optional[UploadFile] = File(default=None),
    context: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
) -> dict:
    if not context.has_role(UserRole.STUDENT):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only students can upload documents")

    if file is None or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")

    metadata = UploadMetadata(
        event_name=_clean(event_name) or "",
        proof_type=_clean(proof_type) or "",
        event_type=_clean(event_type),
        department=_clean(department),
        academic_year=_clean(academic_year),
        description=_clean(description),
    )
    if not metadata.event_name or not metadata.proof_type:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")

    try:
        event, proof = create_proof_upload(
            db,
            get_storage_service(),
            context.user,
            metadata,
            file.file,
            file.filename,
        )
    except (UnsupportedFileType, FileTooLarge) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StorageError as exc:
        logger.error("proof_upload_storage_failed user_id=%s", context.user.id, exc_info=exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to store upload") from exc

    return {
        "message": "Document uploaded successfully! Awaiting approval.",
        "proofId": proof.id,
        "eventId": event.id,
        "fileName": proof.file_name,
        "status": proof.status.value,
    }


@router.put("/proofs/{proof_id}/status")
def update_proof_status(
    proof_id: int,
    payload: StatusUpdateRequest,
    context: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
) -> dict:
    if not context.has_role(UserRole.STAFF, UserRole.ADMIN):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only staff/admin can update document status")

    try:
        target = parse_status(payload.status)
        proof = review_proof(db, proof_id, target, context.user, payload.rejection_reason)
    except InvalidStatus as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ProofNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvalidTransition as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return {
        "message": f"Document {target.value} successfully",
        "proofId": proof.id,
        "status": target.value,
        "rejection_reason": proof.rejection_reason,
    }


@router.get("/proofs")
def list_proofs(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    context: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
) -> list[dict]:
    return list_proofs_for(db, context.user, _status_filter(status_filter))


@router.get("/search")
def search_proofs(
    student_usn: Optional[str] = Query(default=None, alias="studentUSN"),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    context: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
) -> list[dict]:
    if context.has_role(UserRole.STUDENT):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Students cannot search other documents")

    return search_student_proofs(db, student_usn, _status_filter(status_filter))
