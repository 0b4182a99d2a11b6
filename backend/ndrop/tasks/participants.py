"""Celery tasks for participant bookkeeping."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ndrop.celery_app import celery_app
from ndrop.db import engine
from ndrop.services.participation import reconcile_participant_counts

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3, default_retry_delay=60)
def reconcile_participant_counts_task(self) -> dict:
    """Recompute current_participants for every event from its confirmed rows."""
    try:
        with Session(engine) as session:
            drift = reconcile_participant_counts(session)
    except SQLAlchemyError as exc:
        logger.error("Participant reconciliation failed: %s", exc)
        raise self.retry(exc=exc)

    if drift:
        logger.info("Reconciled participant counts for %d events", len(drift))
    return {
        "success": True,
        "fixed": {str(event_id): {"stored": stored, "actual": actual} for event_id, (stored, actual) in drift.items()},
    }
