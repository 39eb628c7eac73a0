from typing import Any, Dict, Optional


class AppException(Exception):
    """Base application exception."""

    code = "app_error"

    def __init__(self, message: str = "", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class NotFoundError(AppException):
    """Resource not found exception."""

    code = "not_found"


class ValidationError(AppException):
    """Validation error exception."""

    code = "validation_error"
