from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..dependencies.auth import (
    AuthContext,
    attach_session_cookie,
    clear_session_cookie,
    require_auth,
    session_token_from_request,
)
from ..dependencies.db import get_db
from ..models import User
from ..services.auth import AuthService
from ..services.metrics import record_login

router = APIRouter(prefix="/api", tags=["auth"])

logger = logging.getLogger(__name__)


class LoginRequest(BaseModel):
    # USN for students, email address for staff
    email: str = ""
    password: str = ""


# longer credentials cannot match a stored user
MAX_IDENTIFIER_LENGTH = 255
MAX_PASSWORD_LENGTH = 1024


def serialize_public_user(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
    }


@router.post("/login")
def login(payload: LoginRequest, request: Request, response: Response, db: Session = Depends(get_db)) -> dict:
    service = AuthService(db)
    if len(payload.email) > MAX_IDENTIFIER_LENGTH or len(payload.password) > MAX_PASSWORD_LENGTH:
        user = None
    else:
        user = service.authenticate(payload.email, payload.password)
    record_login(user is not None)
    if user is None:
        logger.info("login_failed identifier=%s", payload.email.strip().lower()[:MAX_IDENTIFIER_LENGTH])
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")

    token = service.issue_session(
        user,
        request_ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    attach_session_cookie(response, token)
    return {"message": "Login successful", "user": serialize_public_user(user)}


@router.get("/me")
def get_current_user(context: AuthContext = Depends(require_auth)) -> dict:
    return {"user": serialize_public_user(context.user)}


@router.post("/logout")
def logout(request: Request, response: Response, db: Session = Depends(get_db)) -> dict:
    raw_token = session_token_from_request(request)
    if raw_token:
        AuthService(db).revoke_session(raw_token)
    clear_session_cookie(response)
    return {"status": "logged_out"}
