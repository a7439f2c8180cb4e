"""Application error types.

Services and auth dependencies raise these; the handlers registered in
main.create_app() turn them into the standard JSON envelope:

    {"success": false, "message": "...", "errors": [...]}

    ApiError (base)
    ├── ValidationFailedError  → 400
    ├── AuthenticationError    → 401
    ├── AuthorizationError     → 403
    ├── NotFoundError          → 404
    └── ConflictError          → 409

Anything that is not an ApiError is reported as a 500.
"""

from typing import Optional


class ApiError(Exception):
    """Base class for errors that map to an HTTP status."""

    status_code: int = 500

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors


class ValidationFailedError(ApiError):
    status_code = 400


class AuthenticationError(ApiError):
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class AuthorizationError(ApiError):
    status_code = 403

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message)


class NotFoundError(ApiError):
    status_code = 404

    def __init__(self, resource: str = "Resource", *, message: Optional[str] = None):
        super().__init__(message or f"{resource} not found")


class ConflictError(ApiError):
    status_code = 409
