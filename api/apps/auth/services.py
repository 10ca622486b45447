"""
Auth business logic.

Handles signup, login, and JWT-based user verification.
The `verify_user` function is the FastAPI dependency used by all secured routes.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.apps.auth.models import User, Role, ROLE_ID_PREFIX
from api.apps.auth.schemas import (
    RegisterRequest,
    LoginRequest,
    UserResponse,
    LoginResponse,
    CurrentUser,
)
from api.db.base_model import time_based_id
from api.db.database import get_session
from api.utils.security import (
    hash_password,
    verify_password,
    create_access_token,
    verify_access_token,
)
from api.utils.exceptions import (
    InvalidCredentialsException,
    InvalidTokenException,
    UnauthorizedException,
    UserAlreadyExistsException,
)
from api.utils.logger import get_logger

logger = get_logger(__name__)

# auto_error=False so a missing header maps to our own 401 instead of FastAPI's
_bearer = HTTPBearer(auto_error=False)


# ── FastAPI Auth Dependency ───────────────────────────────────────────────────

async def verify_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    session: AsyncSession = Depends(get_session),
) -> CurrentUser:
    """
    FastAPI dependency: validates the Bearer token and returns the acting user.

    Raises:
        UnauthorizedException: no token supplied
        InvalidTokenException: bad/expired token, or the user no longer exists
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException()

    claims = verify_access_token(credentials.credentials)

    user = await User.get_by_id(session, claims.user_id)
    if user is None or user.role != claims.role:
        raise InvalidTokenException("User not found")

    logger.debug(f"Authenticated user: {user.id} role={user.role}")
    return CurrentUser(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        department_name=user.department_name,
    )


# ── Auth Services ─────────────────────────────────────────────────────────────

async def email_in_use(
    session: AsyncSession,
    email: str,
    exclude_user_id: Optional[str] = None,
) -> bool:
    """Emails are stored lower-cased, so equality is a case-insensitive match."""
    existing = await User.find_one(db=session, email=email.lower())
    return existing is not None and existing.id != exclude_user_id


async def register_user(
    session: AsyncSession,
    data: RegisterRequest,
) -> UserResponse:
    """
    Create a new student or department account.

    Guard: Reject duplicate emails (case-insensitive). The check runs before
    the insert; a concurrent signup that slips past it trips the unique index.
    Password is hashed before storage and never stored in plaintext.
    """
    email = data.email.lower()
    if await email_in_use(session, email):
        raise UserAlreadyExistsException()

    role = Role(data.role)
    try:
        user = await User.create(
            db=session,
            id=time_based_id(ROLE_ID_PREFIX[role]),
            name=data.name.strip(),
            email=email,
            hashed_password=hash_password(data.password),
            role=role.value,
            major=data.major.strip() if data.major else None,
            age=data.age,
            department_name=data.department_name.value if data.department_name else None,
        )
    except IntegrityError:
        await session.rollback()
        logger.warning(f"Signup lost a race for email {email}")
        raise UserAlreadyExistsException()

    logger.info(f"Registered new user: {user.id}, role={user.role}")
    return UserResponse.model_validate(user)


async def login_user(
    session: AsyncSession,
    data: LoginRequest,
) -> LoginResponse:
    """
    Authenticate by (email, role) and return a signed access token.

    Guard: Reject bad credentials with one generic error (no account enumeration).
    """
    user = await User.find_one(
        db=session, email=data.email.lower(), role=Role(data.role).value
    )

    # Generic error: never reveal whether email exists
    if user is None or not verify_password(data.password, user.hashed_password):
        raise InvalidCredentialsException()

    token = create_access_token(user_id=user.id, role=user.role)

    logger.info(f"User logged in: {user.id}, role={user.role}")
    return LoginResponse(
        token=token,
        user=UserResponse.model_validate(user),
    )
