from __future__ import annotations

import logging
from pathlib import PurePath

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from ..dependencies.auth import AuthContext, require_auth
from ..dependencies.db import get_db
from ..models import Proof, UserRole
from ..services.preview import DeliveryMode, resolve_delivery
from ..services.storage import get_storage_service

router = APIRouter(tags=["files"])

logger = logging.getLogger(__name__)


def _load_stored_proof(filename: str, context: AuthContext, db: Session):
    """Find the proof owning ``filename`` and its blob, enforcing who may read it."""
    proof = db.query(Proof).filter(Proof.file_path == filename).one_or_none()
    path = get_storage_service().path_for(filename) if proof is not None else None
    if proof is None or path is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    if proof.uploaded_by != context.user.id and not context.has_role(UserRole.STAFF, UserRole.ADMIN):
        logger.warning("file_access_denied proof_id=%s user_id=%s", proof.id, context.user.id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to view this document")
    return proof, path


@router.get("/api/preview/{filename}")
def preview_file(
    filename: str,
    context: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
) -> FileResponse:
    proof, path = _load_stored_proof(filename, context, db)
    delivery = resolve_delivery(proof.file_path)
    logger.info("file_preview proof_id=%s mode=%s user_id=%s", proof.id, delivery.mode.value, context.user.id)

    if delivery.mode is DeliveryMode.IMAGE:
        return FileResponse(path, media_type=delivery.media_type)
    return FileResponse(
        path,
        media_type=delivery.media_type,
        filename=PurePath(proof.file_name).name or proof.file_path,
        content_disposition_type=delivery.disposition,
    )


@router.get("/uploads/{filename}")
def download_stored_file(
    filename: str,
    context: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
) -> FileResponse:
    proof, path = _load_stored_proof(filename, context, db)
    return FileResponse(path, media_type=resolve_delivery(proof.file_path).media_type)
