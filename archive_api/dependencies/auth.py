from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from ..config import settings
from ..models import User, UserRole, UserSession
from ..services.auth import AuthService
from .db import get_db


@dataclass
class AuthContext:
    user: User
    session: UserSession

    @property
    def role(self) -> UserRole:
        return self.user.role

    def has_role(self, *roles: UserRole) -> bool:
        return self.user.role in roles


def session_token_from_request(request: Request) -> str:
    raw_token = request.cookies.get(settings.cookie_name)
    if raw_token:
        return raw_token
    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return ""


def require_auth(request: Request, db: Session = Depends(get_db)) -> AuthContext:
    row = AuthService(db).session_from_token(session_token_from_request(request))
    if not row:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    session, user = row
    request.state.user_id = str(user.id)
    request.state.user_role = user.role.value
    return AuthContext(user=user, session=session)


def require_admin(context: AuthContext = Depends(require_auth)) -> AuthContext:
    if not context.has_role(UserRole.ADMIN):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return context


def attach_session_cookie(response: Response, signed_token: str) -> None:
    response.set_cookie(
        key=settings.cookie_name,
        value=signed_token,
        httponly=True,
        secure=settings.environment == "production",
        samesite="lax",
        domain=settings.cookie_domain,
        path="/",
        max_age=int(timedelta(hours=settings.session_ttl_hours).total_seconds()),
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.cookie_name,
        domain=settings.cookie_domain,
        path="/",
    )
