"""
User profile schemas.
"""

from typing import Optional
from pydantic import EmailStr, Field

from api.apps.auth.models import Department
from api.utils.schema_base import APISchema


class ProfileUpdateRequest(APISchema):
    """
    Profile edit. `name` and `email` apply to everyone; the remaining
    fields only apply to the matching role and are ignored otherwise.
    """
    name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    major: Optional[str] = Field(default=None, max_length=255)
    age: Optional[int] = Field(default=None, ge=0, le=150)
    department_name: Optional[Department] = None
