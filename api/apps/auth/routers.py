"""
Auth router.

Entry/exit only, no logic here. Calls auth services.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.apps.auth.schemas import RegisterRequest, LoginRequest, CurrentUser
from api.apps.auth.services import register_user, login_user, verify_user
from api.apps.users.services import get_user_profile
from api.db.database import get_session
from api.utils.responses import success_response

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])


@router.post("/signup", status_code=201)
async def signup(
    data: RegisterRequest,
    session: AsyncSession = Depends(get_session),
):
    """Register a student or department staff account. Returns the profile."""
    user = await register_user(session=session, data=data)
    return success_response(
        status_code=201,
        message="Account created successfully",
        data=user,
    )


@router.post("/login")
async def login(
    data: LoginRequest,
    session: AsyncSession = Depends(get_session),
):
    """Authenticate and receive a bearer token valid for 8 hours."""
    result = await login_user(session=session, data=data)
    return success_response(
        status_code=200,
        message="Login successful",
        data=result,
    )


@router.get("/me")
async def me(
    user: CurrentUser = Depends(verify_user),
    session: AsyncSession = Depends(get_session),
):
    """Return the currently authenticated user's profile."""
    profile = await get_user_profile(session=session, user_id=user.id)
    return success_response(
        status_code=200,
        message="User profile",
        data=profile,
    )
