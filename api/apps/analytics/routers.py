"""
Analytics router.

Entry/exit only, no logic here.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.apps.analytics.schemas import AnalyticsRange
from api.apps.analytics.services import get_summary
from api.apps.auth.schemas import CurrentUser
from api.apps.auth.services import verify_user
from api.db.database import get_session
from api.utils.responses import success_response

router = APIRouter(prefix="/api/v1/analytics", tags=["Analytics"])


@router.get("/summary")
async def summary(
    range_: AnalyticsRange = Query(default=AnalyticsRange.LAST_30_DAYS, alias="range"),
    user: CurrentUser = Depends(verify_user),
    session: AsyncSession = Depends(get_session),
):
    """Complaint counts by status, department, priority and day."""
    data = await get_summary(session=session, actor=user, range_=range_)
    return success_response(status_code=200, message="Analytics summary", data=data)
