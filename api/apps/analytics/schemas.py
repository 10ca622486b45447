"""
Analytics schemas.
"""

from enum import Enum
from typing import Dict, List

from api.utils.schema_base import APISchema


class AnalyticsRange(str, Enum):
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"
    ALL = "all"

    @property
    def days(self) -> int | None:
        return {"30d": 30, "90d": 90}.get(self.value)


class DailyCount(APISchema):
    date: str
    count: int


class AnalyticsSummary(APISchema):
    """Counts over complaints created inside the range, all departments."""
    range: AnalyticsRange
    total: int
    open: int
    reopened: int
    closed: int
    by_status: Dict[str, int]
    by_department: Dict[str, int]
    by_priority: Dict[str, int]
    per_day: List[DailyCount]
