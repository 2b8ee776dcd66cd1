"""Daily: expand weekly schedule templates into pending rides for the next EXPANSION_DAYS_AHEAD days."""
import logging

from shuttle.core.constants import EXPANSION_DAYS_AHEAD
from shuttle.db.session import SessionLocal
from shuttle.services.schedule_expander import expand_all_schedules

logger = logging.getLogger(__name__)


def run_schedule_expansion_job(days_ahead: int = EXPANSION_DAYS_AHEAD) -> dict:
    db = SessionLocal()
    try:
        results = expand_all_schedules(db, days_ahead)
        created = sum(r.get("created", 0) for r in results.values())
        logger.info("Schedule expansion job: users=%s created=%s", len(results), created)
        return results
    except Exception as e:
        logger.exception("Schedule expansion job failed: %s", e)
        db.rollback()
        return {}
    finally:
        db.close()
