from typing import Any, Dict, List, Optional


class AppError(Exception):
    """Base error carrying the HTTP status and envelope code it maps to."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Validation failed", errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors=[{"field": field, "message": message}])


class AuthError(AppError):
    status_code = 401
    code = "INVALID_TOKEN"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"


class UpstreamError(AppError):
    """An external service (vision, text generation) failed or timed out."""

    status_code = 500
    code = "UPSTREAM_ERROR"

    def __init__(self, message: str, service: str = "upstream"):
        super().__init__(message)
        self.service = service


class InternalError(AppError):
    status_code = 500
    code = "INTERNAL_ERROR"
