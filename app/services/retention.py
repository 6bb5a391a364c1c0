"""Cleanup: delete expired sessions and expired verification values (PIN bindings included)."""

import logging
from typing import TYPE_CHECKING

from sqlalchemy import delete
from sqlalchemy.orm import Session as DbSession

from app.models import Session, Verification
from app.models.base import utcnow

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


def run_retention(db: DbSession, settings: "Settings") -> tuple[int, int]:
    """
    Delete rows whose expires_at has passed.

    Returns (sessions_deleted, verifications_deleted). Idempotent: safe to run repeatedly.
    """
    if not settings.RETENTION_ENABLED:
        logger.info("Retention is disabled (RETENTION_ENABLED=false); skipping.")
        return (0, 0)

    now = utcnow()
    sessions_deleted = db.execute(delete(Session).where(Session.expires_at < now)).rowcount or 0
    verifications_deleted = (
        db.execute(delete(Verification).where(Verification.expires_at < now)).rowcount or 0
    )
    db.commit()

    if sessions_deleted or verifications_deleted:
        logger.info(
            "Retention run: sessions_deleted=%s, verifications_deleted=%s",
            sessions_deleted,
            verifications_deleted,
        )
    return (sessions_deleted, verifications_deleted)
