"""
Application error taxonomy.

Every error the services raise derives from ``AppError``.  The HTTP layer
(``api.errors``) turns them into the ``{error, message, details?}`` envelope
using the class-level ``status_code`` and ``error`` label.
"""

from __future__ import annotations

from typing import Any, Optional


class AppError(Exception):
    """Base class for all application errors."""

    status_code: int = 500
    error: str = "Internal Server Error"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    status_code = 400
    error = "Validation Error"


class AuthenticationError(AppError):
    status_code = 401
    error = "Unauthorized"


class InvalidCredentialsError(AuthenticationError):
    """Unknown email, missing password hash or wrong password."""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class DuplicateEmailError(AppError):
    status_code = 409
    error = "Conflict"

    def __init__(self, message: str = "User with this email already exists"):
        super().__init__(message)


class InvalidStateError(AppError):
    status_code = 400
    error = "Bad Request"

    def __init__(self, message: str = "Invalid state parameter", details: Optional[Any] = None):
        super().__init__(message, details)


class NotFoundError(AppError):
    status_code = 404
    error = "Not Found"


class UserNotFoundError(NotFoundError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message)


# ── Provider (external OAuth) errors ─────────────────────────────────────


class ProviderError(AppError):
    """
    The external provider rejected a call or returned something unusable.

    ``details`` carries the provider's raw response text so operators can
    diagnose failures from the client-visible envelope.
    """

    status_code = 500
    error = "Internal Server Error"

    def __init__(self, message: str, details: Optional[Any] = None, provider: str = ""):
        super().__init__(message, details)
        self.provider = provider


class ProviderExchangeError(ProviderError):
    pass


class ProviderProfileError(ProviderError):
    pass


class ProviderRefreshError(ProviderError):
    pass
