from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError as JWTError

from pwdlib import PasswordHash

from api.config.settings import settings
from api.utils.exceptions import InvalidTokenException, TokenExpiredException

password_hasher = PasswordHash.recommended()


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried inside a verified access token."""

    user_id: str
    role: str


def hash_password(password: str) -> str:
    """Hash a password using Argon2."""
    return password_hasher.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hashed password."""
    try:
        return password_hasher.verify(plain_password, hashed_password)
    except Exception:
        return False


def create_access_token(
    user_id: str,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed, time-limited JWT access token.

    Defaults to ACCESS_TOKEN_EXPIRE_MINUTES (8 hours).
    """
    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    payload = {
        "sub": user_id,
        "role": role,
        "type": "access",
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(
        payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM
    )


def decode_token(token: str) -> dict[str, Any]:
    """Decode and verify JWT token. Raises the PyJWT error untouched."""
    return jwt.decode(
        token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
    )


def verify_access_token(token: str) -> TokenClaims:
    """
    Verify signature, expiry and type of an access token.

    Raises:
        TokenExpiredException: token is past its `exp`
        InvalidTokenException: malformed, bad signature, wrong type, missing claims
    """
    try:
        payload = decode_token(token)
    except ExpiredSignatureError:
        raise TokenExpiredException()
    except JWTError:
        raise InvalidTokenException()

    if payload.get("type") != "access":
        raise InvalidTokenException("Invalid token type. Expected access")

    user_id = payload.get("sub")
    role = payload.get("role")
    if not user_id or not role:
        raise InvalidTokenException("Token is missing identity claims")

    return TokenClaims(user_id=str(user_id), role=str(role))
