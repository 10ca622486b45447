"""
Complaint ORM model.

A complaint moves Open → Closed → Reopened → Closed ... and never ends.
`priority`, `complaint_text` and `ai_recommendation` are fixed at creation.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from sqlalchemy import (
    String, Text, Integer, DateTime, ForeignKey, UniqueConstraint, Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column

from api.apps.auth.models import department_enum
from api.db.base_model import BaseModel, time_based_id


class ComplaintStatus(str, Enum):
    OPEN = "Open"
    CLOSED = "Closed"
    REOPENED = "Reopened"


class ComplaintPriority(str, Enum):
    URGENT = "Urgent"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


# Ranks used by the dashboard sort orders
PRIORITY_RANK = {
    ComplaintPriority.URGENT.value: 0,
    ComplaintPriority.HIGH.value: 1,
    ComplaintPriority.MEDIUM.value: 2,
    ComplaintPriority.LOW.value: 3,
}
STATUS_RANK = {
    ComplaintStatus.REOPENED.value: 0,
    ComplaintStatus.OPEN.value: 1,
    ComplaintStatus.CLOSED.value: 2,
}


class Complaint(BaseModel):
    """
    A student complaint routed to one department.

    `version` is bumped by SQLAlchemy on every UPDATE; a stale write raises
    StaleDataError instead of silently overwriting.
    """

    __tablename__ = "complaints"
    __table_args__ = (
        UniqueConstraint("student_id", "idempotency_key", name="uq_complaint_idempotency"),
    )

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: time_based_id("TCKT")
    )
    student_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False, index=True
    )
    student_name: Mapped[str] = mapped_column(String(255), nullable=False)
    department: Mapped[str] = mapped_column(department_enum, nullable=False, index=True)
    complaint_text: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        SAEnum(*[s.value for s in ComplaintStatus], name="complaint_status_enum"),
        default=ComplaintStatus.OPEN.value,
        nullable=False,
        index=True,
    )
    priority: Mapped[str] = mapped_column(
        SAEnum(*[p.value for p in ComplaintPriority], name="complaint_priority_enum"),
        default=ComplaintPriority.MEDIUM.value,
        nullable=False,
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    solution_text: Mapped[str] = mapped_column(Text, default="", nullable=False)
    ai_recommendation: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    idempotency_key: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    __mapper_args__ = {"version_id_col": version}
