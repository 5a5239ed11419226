from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..dependencies.auth import AuthContext, require_admin
from ..dependencies.db import get_db
from ..services.admin import InvalidRole, UserNotFound, collect_stats, list_users, parse_role, update_user_role

router = APIRouter(prefix="/api/admin", tags=["admin"])


class RoleUpdateRequest(BaseModel):
    role: Optional[str] = None


@router.get("/stats")
def admin_stats(
    _: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict[str, int]:
    return collect_stats(db)


@router.get("/users")
def admin_users(
    _: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
) -> list[dict]:
    return list_users(db)


@router.put("/users/{user_id}/role")
def admin_update_role(
    user_id: int,
    payload: RoleUpdateRequest,
    context: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict:
    try:
        role = parse_role(payload.role)
        user = update_user_role(db, user_id, role, actor=context.user)
    except InvalidRole as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except UserNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return {"message": "User role updated successfully", "userId": user.id, "newRole": user.role.value}
