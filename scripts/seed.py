"""
Seed database script.

Creates the four department staff accounts, one sample student and a few
sample complaints. Runs only against an empty users table.

    python -m scripts.seed
"""

import asyncio
from datetime import timedelta

from api.apps.auth.models import User, Role, ROLE_ID_PREFIX
from api.apps.complaints.models import Complaint, ComplaintStatus, ComplaintPriority
from api.config.settings import settings
from api.db.base_model import time_based_id, utcnow
from api.db.database import create_engine, create_session_factory, init_models
from api.utils.security import hash_password
from api.utils.logger import get_logger

logger = get_logger(__name__)

SEED_PASSWORD = "password"

STAFF_TO_SEED = [
    {"name": "Dr. Eleanor Vance", "email": "eleanor@university.edu", "department_name": "Academic Support and Resources"},
    {"name": "Mr. Benjamin Carter", "email": "ben@university.edu", "department_name": "Financial Support"},
    {"name": "Ms. Chloe Davis", "email": "chloe@university.edu", "department_name": "IT"},
    {"name": "Mr. David Chen", "email": "david@university.edu", "department_name": "Student Affairs"},
]

STUDENT_TO_SEED = {
    "name": "Sample Student",
    "email": "student@university.edu",
    "major": "Computer Science",
    "age": 21,
}

COMPLAINTS_TO_SEED = [
    {
        "department": "IT",
        "complaint_text": "The campus Wi-Fi drops every few minutes in the library.",
        "priority": ComplaintPriority.HIGH,
        "status": ComplaintStatus.OPEN,
        "days_ago": 3,
    },
    {
        "department": "Financial Support",
        "complaint_text": "My scholarship payment for this semester has not arrived yet.",
        "priority": ComplaintPriority.URGENT,
        "status": ComplaintStatus.OPEN,
        "days_ago": 10,
    },
    {
        "department": "Academic Support and Resources",
        "complaint_text": "The course registration page shows the wrong prerequisites.",
        "priority": ComplaintPriority.MEDIUM,
        "status": ComplaintStatus.CLOSED,
        "solution_text": "The prerequisites were corrected in the catalogue. Please try registering again.",
        "days_ago": 25,
    },
]


async def seed() -> None:
    engine = create_engine(settings.DATABASE_URL)
    await init_models(engine)
    session_factory = create_session_factory(engine)

    async with session_factory() as session:
        try:
            if await User.count(db=session):
                logger.info("Database already contains users. Skipping seed.")
                return

            logger.info("Starting database seed process...")
            hashed = hash_password(SEED_PASSWORD)

            for staff in STAFF_TO_SEED:
                logger.info(f"Creating staff: {staff['email']} in {staff['department_name']}")
                await User.create(
                    db=session,
                    commit=False,
                    id=time_based_id(ROLE_ID_PREFIX[Role.DEPARTMENT]),
                    role=Role.DEPARTMENT.value,
                    hashed_password=hashed,
                    **staff,
                )

            student = await User.create(
                db=session,
                commit=False,
                id=time_based_id(ROLE_ID_PREFIX[Role.STUDENT]),
                role=Role.STUDENT.value,
                hashed_password=hashed,
                **STUDENT_TO_SEED,
            )

            now = utcnow()
            for item in COMPLAINTS_TO_SEED:
                created_at = now - timedelta(days=item["days_ago"])
                closed = item["status"] == ComplaintStatus.CLOSED
                session.add(Complaint(
                    student_id=student.id,
                    student_name=student.name,
                    department=item["department"],
                    complaint_text=item["complaint_text"],
                    status=item["status"].value,
                    priority=item["priority"].value,
                    solution_text=item.get("solution_text", ""),
                    ai_recommendation=settings.FALLBACK_RECOMMENDATION,
                    created_at=created_at,
                    resolved_at=created_at + timedelta(days=2) if closed else None,
                ))

            await session.commit()
            logger.info(
                f"Database seeded: {len(STAFF_TO_SEED)} staff, 1 student "
                f"({student.id}), {len(COMPLAINTS_TO_SEED)} complaints"
            )

        except Exception as e:
            await session.rollback()
            logger.error(f"Failed to seed database: {e}")
            raise
        finally:
            await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
