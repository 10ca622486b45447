"""
Advisory AI schemas.
"""

from typing import Optional
from pydantic import Field, field_validator

from api.apps.auth.models import Department
from api.config.settings import settings
from api.utils.schema_base import APISchema


class SuggestDepartmentRequest(APISchema):
    complaint_text: str = Field(..., min_length=1, max_length=settings.MAX_COMPLAINT_LENGTH)

    @field_validator("complaint_text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Complaint text cannot be empty")
        return v.strip()


class SuggestDepartmentResponse(APISchema):
    department: Department
    reason: str
    cached: bool = False


class GenerateSolutionRequest(APISchema):
    """Draft as this department; defaults to the complaint's current one."""
    department: Optional[Department] = None


class SolutionDraftResponse(APISchema):
    solution_text: str


class StudentRecommendationResponse(APISchema):
    recommendation_text: str
