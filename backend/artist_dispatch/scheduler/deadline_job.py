"""
Deadline sweep job: every DEADLINE_SWEEP_INTERVAL_SECONDS, resolve OPEN batches whose deadline passed
(escalate unanswered SINGLE offers, otherwise trigger the client email automation).
"""
import logging

from artist_dispatch.db.session import SessionLocal
from artist_dispatch.services.deadline_sweeper import SweepResult, sweep_expired_batches
from artist_dispatch.services.notification_gateway import get_notification_gateway

logger = logging.getLogger(__name__)


def run_deadline_sweep_job() -> SweepResult | None:
    db = SessionLocal()
    try:
        result = sweep_expired_batches(db, get_notification_gateway())
        if result.errors:
            logger.warning("Deadline sweep job: %s errors: %s", len(result.errors), result.errors)
        return result
    except Exception as e:
        logger.exception("Deadline sweep job failed: %s", e)
        db.rollback()
        return None
    finally:
        db.close()
