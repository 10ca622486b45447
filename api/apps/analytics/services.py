"""
Analytics business logic.

Aggregates are computed in SQL; every known status, department and priority
is present in the output, zero-filled.
"""

from datetime import timedelta
from typing import Any, Dict

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.apps.auth.models import VALID_DEPARTMENTS
from api.apps.auth.schemas import CurrentUser
from api.apps.analytics.schemas import AnalyticsRange, AnalyticsSummary, DailyCount
from api.apps.complaints.models import Complaint, ComplaintStatus, ComplaintPriority
from api.db.base_model import utcnow
from api.utils.exceptions import PermissionDeniedException
from api.utils.logger import get_logger

logger = get_logger(__name__)


async def _grouped_counts(session: AsyncSession, column: Any, where: list) -> Dict[str, int]:
    result = await session.execute(
        select(column, func.count()).where(*where).group_by(column)
    )
    return {str(key): count for key, count in result.all()}


async def get_summary(
    session: AsyncSession,
    actor: CurrentUser,
    range_: AnalyticsRange = AnalyticsRange.LAST_30_DAYS,
) -> AnalyticsSummary:
    """Staff-only overview for the analytics dashboard."""
    if not actor.is_department:
        raise PermissionDeniedException("Analytics are only available to department staff.")

    where = []
    if range_.days is not None:
        where.append(Complaint.created_at >= utcnow() - timedelta(days=range_.days))

    by_status = await _grouped_counts(session, Complaint.status, where)
    by_department = await _grouped_counts(session, Complaint.department, where)
    by_priority = await _grouped_counts(session, Complaint.priority, where)

    day = func.date(Complaint.created_at)
    result = await session.execute(
        select(day, func.count()).where(*where).group_by(day).order_by(day)
    )
    per_day = [DailyCount(date=str(d), count=n) for d, n in result.all()]

    statuses = {s.value: by_status.get(s.value, 0) for s in ComplaintStatus}
    summary = AnalyticsSummary(
        range=range_,
        total=sum(statuses.values()),
        open=statuses[ComplaintStatus.OPEN.value],
        reopened=statuses[ComplaintStatus.REOPENED.value],
        closed=statuses[ComplaintStatus.CLOSED.value],
        by_status=statuses,
        by_department={d: by_department.get(d, 0) for d in VALID_DEPARTMENTS},
        by_priority={p.value: by_priority.get(p.value, 0) for p in ComplaintPriority},
        per_day=per_day,
    )

    logger.info(f"Analytics summary range={range_.value} total={summary.total} by={actor.id}")
    return summary
