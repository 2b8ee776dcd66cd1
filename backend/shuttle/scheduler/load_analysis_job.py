"""Nightly: analyze tomorrow's rides (overbooked hours, tight chains) into daily_load_insights."""
import logging
from datetime import date, timedelta

from shuttle.core.clock import to_local, utcnow
from shuttle.db.session import SessionLocal
from shuttle.services.load_balancer import run_daily_load_analysis

logger = logging.getLogger(__name__)


def run_load_analysis_job(day: date | None = None) -> None:
    day = day or (to_local(utcnow()).date() + timedelta(days=1))
    db = SessionLocal()
    try:
        insight = run_daily_load_analysis(db, day)
        logger.info("Load analysis job: %s rides=%s", day, insight.total_rides)
    except Exception as e:
        logger.exception("Load analysis job failed for %s: %s", day, e)
        db.rollback()
    finally:
        db.close()
