from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..models import Event, Proof, ProofStatus, User, UserRole

logger = logging.getLogger(__name__)


class AdminError(Exception):
    pass


class InvalidRole(AdminError):
    pass


class UserNotFound(AdminError):
    pass


def parse_role(value: Optional[str]) -> UserRole:
    try:
        return UserRole((value or "").strip().lower())
    except ValueError as exc:
        raise InvalidRole("Invalid role") from exc


def _count(model, *criteria):
    stmt = select(func.count(model.id))
    if criteria:
        stmt = stmt.where(*criteria)
    return stmt.scalar_subquery()


def collect_stats(db: Session) -> Dict[str, int]:
    """All counters in one statement so they come from the same snapshot."""
    row = db.execute(
        select(
            _count(User).label("total_users"),
            _count(Proof).label("total_proofs"),
            _count(Event).label("total_events"),
            _count(Proof, Proof.status == ProofStatus.PENDING).label("pending_proofs"),
            _count(Proof, Proof.status == ProofStatus.APPROVED).label("approved_proofs"),
            _count(Proof, Proof.status == ProofStatus.REJECTED).label("rejected_proofs"),
        )
    ).one()

    stats = {
        "totalUsers": int(row.total_users or 0),
        "totalProofs": int(row.total_proofs or 0),
        "totalEvents": int(row.total_events or 0),
        "pendingProofs": int(row.pending_proofs or 0),
        "approvedProofs": int(row.approved_proofs or 0),
        "rejectedProofs": int(row.rejected_proofs or 0),
    }
    logger.info("admin_stats %s", " ".join(f"{key}={value}" for key, value in stats.items()))
    return stats


def serialize_user(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def list_users(db: Session) -> List[Dict[str, Any]]:
    users = db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()
    return [serialize_user(user) for user in users]


def update_user_role(db: Session, user_id: int, role: UserRole, actor: Optional[User] = None) -> User:
    user = db.query(User).filter(User.id == user_id).one_or_none()
    if user is None:
        raise UserNotFound("User not found")

    previous = user.role
    user.role = role
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(
        "user_role_updated user_id=%s from=%s to=%s actor_id=%s",
        user.id,
        previous.value,
        role.value,
        actor.id if actor else None,
    )
    return user
