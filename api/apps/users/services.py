"""
User directory and profile services.
"""

from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.apps.auth.models import User, Role
from api.apps.auth.schemas import CurrentUser, UserResponse
from api.apps.auth.services import email_in_use
from api.apps.users.schemas import ProfileUpdateRequest
from api.utils.exceptions import ResourceNotFoundException, ConflictException
from api.utils.logger import get_logger

logger = get_logger(__name__)

EMAIL_TAKEN = "This email is already in use by another account."


async def list_users(
    session: AsyncSession,
    role: Optional[Role] = None,
    limit: int = 500,
    offset: int = 0,
) -> List[UserResponse]:
    """List accounts, optionally by role. Password hashes never leave this layer."""
    filters = {"role": role.value} if role else None
    users = await User.find_many(
        db=session, filters=filters, limit=limit, offset=offset, order_by="name"
    )
    return [UserResponse.model_validate(u) for u in users]


async def get_user_profile(session: AsyncSession, user_id: str) -> UserResponse:
    user = await User.get_by_id(session, user_id)
    if user is None:
        raise ResourceNotFoundException(f"User '{user_id}' not found.")
    return UserResponse.model_validate(user)


async def update_profile(
    session: AsyncSession,
    actor: CurrentUser,
    data: ProfileUpdateRequest,
) -> UserResponse:
    """
    Update the caller's own profile.

    Guard: the new email must not belong to another account.
    Role-specific fields: students may change major/age, staff their department.
    """
    user = await User.get_by_id(session, actor.id)
    if user is None:
        raise ResourceNotFoundException(f"User '{actor.id}' not found.")

    email = data.email.lower()
    if await email_in_use(session, email, exclude_user_id=user.id):
        raise ConflictException(EMAIL_TAKEN)

    user.name = data.name.strip()
    user.email = email

    if user.role == Role.STUDENT:
        user.major = data.major.strip() if data.major else user.major
        user.age = data.age
    elif data.department_name is not None:
        user.department_name = data.department_name.value

    try:
        await user.save(db=session)
    except IntegrityError:
        # Another account claimed the email after the check above
        await session.rollback()
        raise ConflictException(EMAIL_TAKEN)

    logger.info(f"Profile updated: {user.id}")
    return UserResponse.model_validate(user)
