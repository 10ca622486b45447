"""
Users router.

Entry/exit only, no logic here.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.apps.auth.models import Role
from api.apps.auth.schemas import CurrentUser
from api.apps.auth.services import verify_user
from api.apps.users.schemas import ProfileUpdateRequest
from api.apps.users.services import list_users, update_profile
from api.db.database import get_session
from api.utils.responses import success_response

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("")
async def get_users(
    role: Optional[Role] = Query(default=None),
    limit: int = Query(default=500, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    user: CurrentUser = Depends(verify_user),
    session: AsyncSession = Depends(get_session),
):
    """List users without credentials. Staff use it to look up students by id."""
    users = await list_users(session=session, role=role, limit=limit, offset=offset)
    return success_response(
        status_code=200,
        message=f"{len(users)} users",
        data=users,
    )


@router.put("/profile")
async def put_profile(
    data: ProfileUpdateRequest,
    user: CurrentUser = Depends(verify_user),
    session: AsyncSession = Depends(get_session),
):
    """Update the caller's own profile."""
    profile = await update_profile(session=session, actor=user, data=data)
    return success_response(
        status_code=200,
        message="Profile updated successfully",
        data=profile,
    )
