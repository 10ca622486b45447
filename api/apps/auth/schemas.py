"""
Auth Pydantic schemas.

Input validation and output serialization for auth routes.
"""

from datetime import datetime
from typing import Optional
from pydantic import EmailStr, Field, model_validator

from api.apps.auth.models import Department, Role
from api.utils.schema_base import APISchema


# ── Request Schemas ───────────────────────────────────────────────────────────

class LoginRequest(APISchema):
    """Login with email + password for a specific role."""
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    role: Role


class RegisterRequest(APISchema):
    """Sign up as a student or as department staff."""
    name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    role: Role
    major: Optional[str] = Field(default=None, max_length=255)
    age: Optional[int] = Field(default=None, ge=0, le=150)
    department_name: Optional[Department] = None

    @model_validator(mode="after")
    def check_role_attributes(self) -> "RegisterRequest":
        if self.role == Role.STUDENT:
            if not self.major or not self.major.strip():
                raise ValueError("Students must provide a major")
            if self.department_name is not None:
                raise ValueError("Students cannot have a department name")
        else:
            if self.department_name is None:
                raise ValueError("Department staff must provide a department name")
            if self.major is not None or self.age is not None:
                raise ValueError("Department staff cannot have a major or age")
        return self


# ── Response Schemas ──────────────────────────────────────────────────────────

class UserResponse(APISchema):
    """Public user data (never the password hash)."""
    id: str
    name: str
    email: str
    role: Role
    major: Optional[str] = None
    age: Optional[int] = None
    department_name: Optional[str] = None
    created_at: datetime


class LoginResponse(APISchema):
    """Login response: bearer token + user profile."""
    token: str
    token_type: str = "bearer"
    user: UserResponse


class CurrentUser(APISchema):
    """The verified actor behind a request."""
    id: str
    name: str
    email: str
    role: Role
    department_name: Optional[str] = None

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT

    @property
    def is_department(self) -> bool:
        return self.role == Role.DEPARTMENT
