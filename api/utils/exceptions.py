from fastapi import HTTPException, status


class BaseAPIException(HTTPException):
    """Base exception for API errors.
    Carries a stable machine-readable `code` next to the human message."""

    code: str = "internal_error"

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred. Please try again.",
    ):
        super().__init__(status_code=status_code, detail=detail)


# ============== Authentication ==============


class InvalidCredentialsException(BaseAPIException):
    """Triggered when login fails. Never reveals which part was wrong."""

    code = "invalid_credentials"

    def __init__(self, detail: str = "Invalid credentials or role."):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
        )


class UnauthorizedException(BaseAPIException):
    """No bearer token was supplied."""

    code = "unauthorized"

    def __init__(self, detail: str = "Authentication required."):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
        )
        self.headers = {"WWW-Authenticate": "Bearer"}


class InvalidTokenException(BaseAPIException):
    """Token is malformed, has a bad signature, or is the wrong type."""

    code = "invalid_token"

    def __init__(self, detail: str = "Could not validate credentials."):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
        )
        self.headers = {"WWW-Authenticate": "Bearer"}


class TokenExpiredException(InvalidTokenException):
    code = "token_expired"

    def __init__(self, detail: str = "Session has expired. Please sign in again."):
        super().__init__(detail=detail)


# ============== Users & Records ==============


class ConflictException(BaseAPIException):
    """Write would clash with existing state (duplicate or stale version)."""

    code = "conflict"

    def __init__(self, detail: str = "The resource was modified by someone else."):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )


class UserAlreadyExistsException(ConflictException):
    """Prevents duplicate registration by email."""

    def __init__(self, detail: str = "An account with this email already exists."):
        super().__init__(detail=detail)


# ============== Staff & Permissions ==============


class PermissionDeniedException(BaseAPIException):
    """Enforces role and ownership rules for students and department staff."""

    code = "forbidden"

    def __init__(
        self, detail: str = "You do not have the required permissions for this action."
    ):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )


# ============== General Operational Exceptions ==============


class ResourceNotFoundException(BaseAPIException):
    """Generic fallback for missing resources."""

    code = "not_found"

    def __init__(self, detail: str = "The requested information could not be found."):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
        )


class ComplaintNotFoundException(ResourceNotFoundException):
    def __init__(self, complaint_id: str):
        super().__init__(detail=f"Complaint '{complaint_id}' not found.")


class StudentNotFoundException(ResourceNotFoundException):
    def __init__(self, student_id: str):
        super().__init__(
            detail=f'Student with ID "{student_id}" not found. Please check the ID and try again.'
        )


class ValidationException(BaseAPIException):
    """Business rule violation, e.g. closing a complaint without a solution."""

    code = "validation_error"

    def __init__(self, detail: str = "The request could not be processed."):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


# ============== AI Oracle ==============


class OracleError(BaseAPIException):
    """The AI service failed, timed out, or returned nothing usable."""

    code = "oracle_error"

    def __init__(self, detail: str = "Failed to generate a response from the AI service."):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
        )


class OracleMalformedResponse(OracleError):
    """The AI service answered, but not in the requested JSON shape."""

    code = "oracle_malformed_response"

    def __init__(self, detail: str = "The AI service returned an unexpected response."):
        super().__init__(detail=detail)
