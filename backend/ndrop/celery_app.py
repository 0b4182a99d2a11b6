"""Celery application configuration."""

from __future__ import annotations

from datetime import timedelta

from celery import Celery

from ndrop.core.config import settings

celery_app = Celery(
    "ndrop",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["ndrop.tasks.participants"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    broker_connection_retry_on_startup=True,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_default_retry_delay=60,
    result_expires=3600,
    worker_prefetch_multiplier=1,
)

# Periodic tasks
celery_app.conf.beat_schedule = {
    "reconcile-participant-counts": {
        "task": "ndrop.tasks.participants.reconcile_participant_counts_task",
        "schedule": timedelta(seconds=settings.PARTICIPANT_RECONCILE_INTERVAL_SECONDS),
    },
}
