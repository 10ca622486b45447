"""
Complaint Pydantic schemas.
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional
from pydantic import ConfigDict, Field, field_validator

from api.apps.auth.models import Department
from api.apps.complaints.models import ComplaintStatus, ComplaintPriority
from api.config.settings import settings
from api.utils.schema_base import APISchema


class ComplaintSort(str, Enum):
    DATE_DESC = "date-desc"
    DATE_ASC = "date-asc"
    PRIORITY = "priority"
    STATUS = "status"


# ── Request Schemas ───────────────────────────────────────────────────────────

class ComplaintCreate(APISchema):
    """
    New complaint. Students file for themselves; staff must name the student.
    """
    department: Department
    complaint_text: str = Field(..., min_length=1, max_length=settings.MAX_COMPLAINT_LENGTH)
    student_id: Optional[str] = Field(default=None, max_length=64)

    @field_validator("complaint_text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Complaint text cannot be empty")
        return v.strip()


class ComplaintUpdate(APISchema):
    """
    Partial update. Only these fields can ever be changed; anything else is
    rejected. `resolved_at` is derived from status, never sent.
    """
    model_config = ConfigDict(extra="forbid")

    department: Optional[Department] = None
    status: Optional[ComplaintStatus] = None
    solution_text: Optional[str] = Field(default=None, max_length=20000)
    expected_version: Optional[int] = Field(default=None, ge=1)

    def changes(self) -> dict[str, Any]:
        """Fields the caller actually supplied, minus the concurrency token."""
        return self.model_dump(exclude_unset=True, exclude={"expected_version"})


class BatchGenerateRequest(APISchema):
    """Defaults to the caller's own department."""
    department: Optional[Department] = None


# ── Response Schemas ──────────────────────────────────────────────────────────

class ComplaintResponse(APISchema):
    id: str
    student_id: str
    student_name: str
    department: str
    complaint_text: str
    status: ComplaintStatus
    priority: ComplaintPriority
    created_at: datetime
    resolved_at: Optional[datetime] = None
    solution_text: str = ""
    ai_recommendation: Optional[str] = None
    version: int


class BatchResult(APISchema):
    department: str
    processed: int
    succeeded: int
    failed: int
    failed_ids: List[str] = Field(default_factory=list)


class TaskAccepted(APISchema):
    task_id: str
    status: str = "queued"


class TaskStatusResponse(APISchema):
    task_id: str
    status: str
    result: Optional[BatchResult] = None
    error: Optional[str] = None
