"""
API Errors

Exceptions raised at the REST backend boundary.
"""

from typing import Optional

GENERIC_ERROR_MESSAGE = "Error del servidor. Por favor, intentá nuevamente."


class ApiError(Exception):
    """Base exception for REST backend errors."""

    def __init__(
        self,
        message: str = GENERIC_ERROR_MESSAGE,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TransientApiError(ApiError):
    """Network failure or cold-starting backend; safe to retry."""


class ApiTimeoutError(TransientApiError):
    """The request exceeded the client timeout."""


class AuthenticationError(ApiError):
    """Missing or expired session token."""

    def __init__(self, message: str = "Tu sesión expiró. Iniciá sesión nuevamente."):
        super().__init__(message, status_code=401)


class ApiRejectedError(ApiError):
    """The backend answered with a non-2xx status."""
