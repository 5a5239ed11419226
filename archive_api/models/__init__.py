from .base import Base
from .events import Event
from .proofs import ALLOWED_TRANSITIONS, EVENT_PROOF_DOCUMENT_TYPE, Proof, ProofStatus
from .user_sessions import UserSession
from .users import User, UserRole

__all__ = [
    "ALLOWED_TRANSITIONS",
    "Base",
    "EVENT_PROOF_DOCUMENT_TYPE",
    "Event",
    "Proof",
    "ProofStatus",
    "User",
    "UserRole",
    "UserSession",
]
