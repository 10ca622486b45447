"""
Celery tasks for complaint enrichment.

Runs batch solution drafting (one AI call per complaint) in a background
worker so staff are not held on an HTTP request for minutes.
"""

import asyncio
import time
from typing import Optional
from celery import Task

from api.core.celery_app import celery_app
from api.apps.auth.models import Department
from api.apps.auth.schemas import CurrentUser
from api.utils.logger import get_logger
from api.utils.metrics import stage_latency

logger = get_logger(__name__)


class EnrichmentTask(Task):
    """
    Base task with lazy-loaded async resources.

    Celery workers are sync processes, so each worker owns one event loop,
    one engine and one oracle, created on first use.
    """
    _loop = None
    _session_factory = None
    _oracle = None

    @property
    def loop(self):
        if self._loop is None or self._loop.is_closed():
            self._loop = asyncio.new_event_loop()
            asyncio.set_event_loop(self._loop)
        return self._loop

    @property
    def session_factory(self):
        if self._session_factory is None:
            from api.config.settings import settings
            from api.db.database import create_engine, create_session_factory
            engine = create_engine(settings.DATABASE_URL)
            self._session_factory = create_session_factory(engine)
        return self._session_factory

    @property
    def oracle(self):
        if self._oracle is None:
            from api.core.dependencies import get_oracle
            self._oracle = get_oracle()
        return self._oracle


@celery_app.task(
    base=EnrichmentTask,
    bind=True,
    name="batch_generate_solutions_task",
    max_retries=3,
    default_retry_delay=10,
    acks_late=True,
)
def batch_generate_solutions_task(
    self: EnrichmentTask,
    actor: dict,
    department: Optional[str] = None,
) -> dict:
    """
    Background task: draft solutions for a department's unresolved complaints.

    Per-item AI failures are part of the result, not task failures. Only
    infrastructure errors (database down) trigger a retry, and a retry only
    touches items that are still unenriched.

    Args:
        actor: The requesting staff member (CurrentUser fields)
        department: Target department; defaults to the actor's own

    Returns:
        BatchResult as a dict
    """
    logger.info(f"[CELERY] Starting batch solutions: dept={department or actor.get('department_name')}")
    start_time = time.time()

    try:
        result = self.loop.run_until_complete(
            _async_batch(self, actor=actor, department=department)
        )
        stage_latency.labels(operation="batch_solutions_task", stage="total").observe(
            time.time() - start_time
        )
        logger.info(
            f"[CELERY] Batch complete: {result['succeeded']}/{result['processed']} "
            f"in {time.time() - start_time:.2f}s"
        )
        return result

    except Exception as exc:
        logger.error(f"[CELERY] Batch failed: {exc}", exc_info=True)
        raise self.retry(exc=exc)


async def _async_batch(
    task: EnrichmentTask,
    actor: dict,
    department: Optional[str],
) -> dict:
    """Fresh session per execution so retries never reuse a broken connection."""
    from api.apps.complaints.services import batch_generate_solutions

    async with task.session_factory() as session:
        result = await batch_generate_solutions(
            session=session,
            oracle=task.oracle,
            actor=CurrentUser(**actor),
            department=Department(department) if department else None,
        )

    return result.model_dump(mode="json")
