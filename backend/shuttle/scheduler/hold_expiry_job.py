"""
Every minute: expire active holds past expires_at and give their slot units back.
Safe to overlap with itself and with confirm/cancel (conditional updates).
"""
import logging

from shuttle.db.session import SessionLocal
from shuttle.services.holds import expire_holds

logger = logging.getLogger(__name__)


def run_hold_expiry_job() -> int:
    db = SessionLocal()
    try:
        n = expire_holds(db)
        if n:
            logger.info("Hold expiry job: expired %s hold(s)", n)
        return n
    except Exception as e:
        logger.exception("Hold expiry job failed: %s", e)
        db.rollback()
        return 0
    finally:
        db.close()
