"""
Celery application initialization.

Uses Redis as both broker and result backend.
"""

from celery import Celery
from api.config.settings import settings


celery_app = Celery(
    "helpdesk_worker",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["api.apps.complaints.tasks"]
)

# ── Configuration ─────────────────────────────────────────────────────────────

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    broker_connection_retry_on_startup=True,
    # Batch results are polled by staff; a day is plenty
    result_expires=86400,
    worker_prefetch_multiplier=1,  # A batch can hold many AI calls
    task_acks_late=True,
    task_default_retry_delay=10,
    task_max_retries=3,
)
