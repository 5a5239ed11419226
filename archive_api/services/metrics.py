from __future__ import annotations

from prometheus_client import Counter

from ..models import ProofStatus


PROOFS_UPLOADED_COUNTER = Counter(
    "archive_proofs_uploaded_total",
    "Proofs uploaded by students",
    ["delivery_mode"],
)

PROOFS_REVIEWED_COUNTER = Counter(
    "archive_proofs_reviewed_total",
    "Review decisions recorded by staff/admin",
    ["status"],
)

LOGIN_ATTEMPTS_COUNTER = Counter(
    "archive_login_attempts_total",
    "Login attempts by outcome",
    ["outcome"],
)


def record_upload(delivery_mode: str) -> None:
    PROOFS_UPLOADED_COUNTER.labels(delivery_mode=delivery_mode).inc()


def record_review(status: ProofStatus) -> None:
    PROOFS_REVIEWED_COUNTER.labels(status=status.value).inc()


def record_login(success: bool) -> None:
    LOGIN_ATTEMPTS_COUNTER.labels(outcome="success" if success else "failure").inc()
