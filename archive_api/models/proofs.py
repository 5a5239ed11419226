from __future__ import annotations

import enum

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from .base import Base


class ProofStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Review is a single step out of pending.
ALLOWED_TRANSITIONS: dict[ProofStatus, frozenset[ProofStatus]] = {
    ProofStatus.PENDING: frozenset({ProofStatus.APPROVED, ProofStatus.REJECTED}),
    ProofStatus.APPROVED: frozenset(),
    ProofStatus.REJECTED: frozenset(),
}

EVENT_PROOF_DOCUMENT_TYPE = "event_proof"


class Proof(Base):
    __tablename__ = "proofs"
    __table_args__ = (
        CheckConstraint(
            "rejection_reason IS NULL OR status = 'rejected'",
            name="ck_proofs_rejection_reason_status",
        ),
    )

    id = Column(Integer, primary_key=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=True, index=True)
    proof_type = Column(String, nullable=False)
    file_name = Column(String, nullable=False)  # original client-supplied name, display only
    file_path = Column(String, nullable=False, unique=True)  # opaque storage key
    uploaded_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    document_type = Column(String, nullable=False, default=EVENT_PROOF_DOCUMENT_TYPE)
    status = Column(
        Enum(
            ProofStatus,
            name="proof_status",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=ProofStatus.PENDING,
        index=True,
    )
    rejection_reason = Column(Text, nullable=True)
    reviewed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
