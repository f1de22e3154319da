"""
API Module Initialization

Exports the REST backend client components.
"""

from spa_turnos.api.errors import (
    ApiError,
    ApiRejectedError,
    ApiTimeoutError,
    AuthenticationError,
    TransientApiError,
)
from spa_turnos.api.http import AUTH_BEARER, AUTH_QUERY, ApiClient
from spa_turnos.api.session import SessionContext

__all__ = [
    "ApiClient",
    "ApiError",
    "ApiRejectedError",
    "ApiTimeoutError",
    "AuthenticationError",
    "AUTH_BEARER",
    "AUTH_QUERY",
    "SessionContext",
    "TransientApiError",
]
