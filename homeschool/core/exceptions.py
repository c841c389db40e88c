# homeschool/core/exceptions.py
"""Custom exceptions for the homeschool API.

Every error the API reports carries a machine-readable ``code`` from a fixed
table; the HTTP status is derived from it. Handlers in ``error_handlers``
render these into the ``{success: false, error: {...}}`` envelope.
"""
from fastapi import HTTPException
from typing import Any, Dict, Optional


ERROR_STATUS = {
    "BAD_REQUEST": 400,
    "UNAUTHORIZED": 401,
    "INVALID_CREDENTIALS": 401,
    "TOKEN_EXPIRED": 401,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "DUPLICATE_EMAIL": 409,
    "CONFLICT": 409,
    "VALIDATION_ERROR": 422,
    "RATE_LIMIT_EXCEEDED": 429,
    "INTERNAL_ERROR": 500,
    "SERVICE_UNAVAILABLE": 503,
}

STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "BAD_REQUEST",
    409: "CONFLICT",
    413: "VALIDATION_ERROR",
    422: "VALIDATION_ERROR",
    429: "RATE_LIMIT_EXCEEDED",
    503: "SERVICE_UNAVAILABLE",
}


class HomeschoolException(HTTPException):
    """Base exception for the application."""
    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(status_code=ERROR_STATUS[code], detail=message, headers=headers)


class BadRequestError(HomeschoolException):
    def __init__(self, message: str = "Bad request", details: Optional[Dict[str, Any]] = None):
        super().__init__("BAD_REQUEST", message, details)


class UnauthorizedError(HomeschoolException):
    """Missing, malformed or revoked credentials."""
    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            "UNAUTHORIZED", message, headers={"WWW-Authenticate": "Bearer"}
        )


class InvalidCredentialsError(HomeschoolException):
    def __init__(self):
        super().__init__("INVALID_CREDENTIALS", "Invalid email or password")


class TokenExpiredError(HomeschoolException):
    def __init__(self, message: str = "Token has expired"):
        super().__init__("TOKEN_EXPIRED", message, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(HomeschoolException):
    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__("FORBIDDEN", message)


class NotFoundError(HomeschoolException):
    """Resource not found exception"""
    def __init__(self, resource: str, id: Any = None):
        message = f"{resource} not found"
        if id is not None:
            message += f" with id: {id}"
        super().__init__("NOT_FOUND", message)


class DuplicateEmailError(HomeschoolException):
    def __init__(self, email: str):
        super().__init__(
            "DUPLICATE_EMAIL",
            "An account with this email already exists",
            details={"email": email},
        )


class ConflictError(HomeschoolException):
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__("CONFLICT", message, {"field": field} if field else None)


class ValidationError(HomeschoolException):
    """Exception raised for validation errors."""
    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        if field and details is None:
            details = {field: message}
        super().__init__("VALIDATION_ERROR", message, details)


class RateLimitExceededError(HomeschoolException):
    def __init__(self, headers: Dict[str, str]):
        super().__init__("RATE_LIMIT_EXCEEDED", "Too many requests, slow down", headers=headers)


class ServiceUnavailableError(HomeschoolException):
    def __init__(self, message: str = "Service temporarily unavailable"):
        super().__init__("SERVICE_UNAVAILABLE", message)
