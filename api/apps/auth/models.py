"""
Auth ORM model.

User accounts for students and department staff.
"""

from enum import Enum
from typing import Optional
from sqlalchemy import String, Integer, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from api.db.base_model import BaseModel


class Role(str, Enum):
    STUDENT = "student"
    DEPARTMENT = "department"


class Department(str, Enum):
    """Staff groups that own and resolve complaints."""

    ACADEMIC_SUPPORT = "Academic Support and Resources"
    FINANCIAL_SUPPORT = "Financial Support"
    IT = "IT"
    STUDENT_AFFAIRS = "Student Affairs"


VALID_DEPARTMENTS = [d.value for d in Department]

# Shared column type so PostgreSQL creates the enum once for users and complaints
department_enum = SAEnum(*VALID_DEPARTMENTS, name="department_enum")

# Id prefix per role, e.g. S1718023491000123
ROLE_ID_PREFIX = {Role.STUDENT: "S", Role.DEPARTMENT: "D"}


class User(BaseModel):
    """
    User account.

    `role` decides which profile attribute is meaningful:
    students carry `major`/`age`, department staff carry `department_name`.
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(512), nullable=False)
    role: Mapped[str] = mapped_column(
        SAEnum(*[r.value for r in Role], name="role_enum"),
        nullable=False,
        index=True,
    )
    major: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    department_name: Mapped[Optional[str]] = mapped_column(
        department_enum,
        nullable=True,
        index=True,
    )
