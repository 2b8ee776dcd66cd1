"""
Daily: roll active subscriptions into the current month and re-initialize credits.
Only subscriptions not yet on the current period are touched, so daily runs are cheap.
"""
import logging

from shuttle.db.session import SessionLocal
from shuttle.services.subscriptions import run_monthly_reset

logger = logging.getLogger(__name__)


def run_monthly_reset_job() -> dict:
    db = SessionLocal()
    try:
        return run_monthly_reset(db)
    except Exception as e:
        logger.exception("Monthly reset job failed: %s", e)
        db.rollback()
        return {}
    finally:
        db.close()
