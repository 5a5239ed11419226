from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from passlib.context import CryptContext
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import settings
from ..models import User, UserRole, UserSession

logger = logging.getLogger(__name__)

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class AuthError(Exception):
    pass


class AuthService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.serializer = URLSafeTimedSerializer(settings.session_secret, salt="session")

    # --- Credentials -----------------------------------------------------
    def authenticate(self, identifier: str, password: str) -> Optional[User]:
        """Return the user matching identifier and password, or None."""
        user = self.get_user_by_identifier(identifier)
        if user is None:
            # keep the failure path as slow as a real verify
            _pwd_context.dummy_verify()
            return None
        if not self.verify_password(password, user.password_hash):
            return None
        return user

    def create_user(self, email: str, name: str, password: str, role: UserRole = UserRole.STUDENT) -> User:
        normalized_email = email.strip().lower()
        if not normalized_email:
            raise AuthError("Email required")
        if not password:
            raise AuthError("Password required")
        if self.get_user_by_identifier(normalized_email) is not None:
            raise AuthError(f"User {normalized_email} already exists")

        user = User(
            email=normalized_email,
            name=name.strip() or normalized_email,
            password_hash=self.hash_password(password),
            role=role,
        )
        self.db.add(user)
        self.db.flush()
        logger.info("user_created user_id=%s role=%s", user.id, role.value)
        return user

    def set_password(self, user: User, password: str) -> None:
        if not password:
            raise AuthError("Password required")
        user.password_hash = self.hash_password(password)
        self.db.add(user)

    # --- Session flow ----------------------------------------------------
    def issue_session(
        self,
        user: User,
        request_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> str:
        """Persist a new session for ``user`` and return the signed token."""
        raw_token = secrets.token_urlsafe(32)
        session = UserSession(
            user_id=user.id,
            session_token_hash=self.hash_token(raw_token),
            user_agent=user_agent,
            ip_address=request_ip,
            expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.session_ttl_hours),
        )
        self.db.add(session)
        self.db.commit()

        logger.info("user_login user_id=%s role=%s request_ip=%s", user.id, user.role.value, request_ip)
        return self.serializer.dumps(raw_token)

    def session_from_token(self, signed_token: str) -> Optional[tuple[UserSession, User]]:
        raw_token = self._unsign(signed_token)
        if not raw_token:
            return None
        now = datetime.now(timezone.utc)
        row = (
            self.db.query(UserSession, User)
            .join(User, User.id == UserSession.user_id)
            .filter(
                UserSession.session_token_hash == self.hash_token(raw_token),
                UserSession.revoked_at.is_(None),
                UserSession.expires_at > now,
            )
            .one_or_none()
        )
        return row

    def revoke_session(self, signed_token: str) -> None:
        raw_token = self._unsign(signed_token)
        if not raw_token:
            return
        hashed = self.hash_token(raw_token)
        updated = (
            self.db.query(UserSession)
            .filter(UserSession.session_token_hash == hashed, UserSession.revoked_at.is_(None))
            .update({"revoked_at": datetime.now(timezone.utc)})
        )
        if updated:
            logger.info("session_revoked hash=%s", hashed[:8])
        self.db.commit()

    def _unsign(self, signed_token: str) -> Optional[str]:
        if not signed_token:
            return None
        try:
            return self.serializer.loads(signed_token, max_age=settings.session_ttl_hours * 3600)
        except SignatureExpired:
            return None
        except BadSignature:
            logger.warning("session_bad_signature")
            return None

    # --- Helpers ---------------------------------------------------------
    @staticmethod
    def hash_token(value: str) -> str:
        return hashlib.sha256(value.encode("utf-8")).hexdigest()

    @staticmethod
    def hash_password(plain: str) -> str:
        return _pwd_context.hash(plain)

    @staticmethod
    def verify_password(plain: str, hashed: str) -> bool:
        return _pwd_context.verify(plain, hashed)

    def get_user_by_identifier(self, identifier: str) -> Optional[User]:
        normalized = (identifier or "").strip().lower()
        if not normalized:
            return None
        return (
            self.db.query(User)
            .filter(func.lower(User.email) == normalized)
            .one_or_none()
        )
