"""
Purge expired sessions and PIN-session bindings from the metadata store.

  python -m app.retention

Safe to run from cron at any interval; rows are only removed once expires_at has passed.
"""

import logging
import sys

from app.core.config import get_settings
from app.core.database import session_scope
from app.services.retention import run_retention

logger = logging.getLogger("app.retention")


def main() -> int:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    try:
        with session_scope() as db:
            sessions_deleted, verifications_deleted = run_retention(db, settings)
    except Exception:
        logger.exception("Expired-row cleanup failed")
        return 1
    logger.info(
        "Expired-row cleanup done",
        extra={"sessions_deleted": sessions_deleted, "verifications_deleted": verifications_deleted},
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
