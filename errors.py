"""
Application errors.

Every failure a request can end with is one of these. Each carries the HTTP
status it maps to, so route handlers never translate them by hand.
"""

from typing import Any, Dict


class AppError(Exception):
    status_code = 500
    code = "INTERNAL_FAILURE"
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}')"


class Unauthorized(AppError):
    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Unauthorized Access!"


class Forbidden(AppError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Forbidden"


class NotFound(AppError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Not found"

    def __init__(self, resource: str = "Resource", message: str = None):
        super().__init__(message or f"{resource} not found")


class InvalidInput(AppError):
    status_code = 400
    code = "INVALID_INPUT"
    default_message = "Invalid input"


class InvalidTransition(AppError):
    status_code = 400
    code = "INVALID_TRANSITION"
    default_message = "Invalid state transition"


class InternalFailure(AppError):
    pass
