"""Typed failures raised by the service layer and mapped to HTTP responses in main.py."""

from typing import Dict, Optional


class MedboxError(Exception):
    """Base class for errors that carry their own HTTP status."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return None


class ValidationError(MedboxError):
    status_code = 400


class InvalidCredentials(MedboxError):
    status_code = 401

    def __init__(self, message: str = "Invalid username or PIN"):
        super().__init__(message)


class AccountDisabled(MedboxError):
    status_code = 401

    def __init__(self, message: str = "Account is disabled. Contact an administrator."):
        super().__init__(message)


class AccountLocked(MedboxError):
    status_code = 401

    def __init__(self, remaining_seconds: int, message: Optional[str] = None):
        self.remaining_seconds = remaining_seconds
        super().__init__(
            message
            or f"Account locked. Too many failed attempts. Try again in {remaining_seconds} seconds."
        )

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return {"Retry-After": str(self.remaining_seconds)}


class DuplicateUsername(MedboxError):
    status_code = 400

    def __init__(self, message: str = "Username already exists"):
        super().__init__(message)


class DuplicateBoxNumber(MedboxError):
    status_code = 400

    def __init__(self, box_number: str):
        self.box_number = box_number
        super().__init__(f'Box number "{box_number}" already exists')


class UserNotFound(MedboxError):
    status_code = 404

    def __init__(self, message: str = "User not found"):
        super().__init__(message)


class NotFound(MedboxError):
    status_code = 404


class Forbidden(MedboxError):
    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class CannotSelfDeactivate(MedboxError):
    status_code = 400

    def __init__(self, message: str = "Cannot deactivate your own account"):
        super().__init__(message)


class AuthError(MedboxError):
    """Bearer token missing or rejected."""

    status_code = 401

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return {"WWW-Authenticate": "Bearer"}


class MissingToken(AuthError):
    def __init__(self, message: str = "Missing or invalid authorization header"):
        super().__init__(message)


class InvalidToken(AuthError):
    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


class UpstreamUnavailable(MedboxError):
    """Store or token authority did not answer in time; safe to retry."""

    status_code = 503

    def __init__(self, message: str = "Service temporarily unavailable. Please retry."):
        super().__init__(message)

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return {"Retry-After": "1"}
