"""
Domain errors raised by the hostel services.

Each error carries the HTTP status it maps to; the API layer renders
them as ``{"detail": message, "code": code}``.
"""
from typing import Any, Dict, Optional


class HostelError(Exception):
    """Base exception for all hostel domain errors"""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"detail": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(HostelError):
    status_code = 400
    code = "VALIDATION_ERROR"


class DuplicateEmailError(ValidationError):
    code = "DUPLICATE_EMAIL"

    def __init__(self, email: str):
        super().__init__("User already exists", {"email": email})


class InvalidIdError(ValidationError):
    code = "INVALID_ID"

    def __init__(self, value: str):
        super().__init__("Invalid id", {"id": value})


class AuthenticationError(HostelError):
    status_code = 401
    code = "AUTH_FAILED"


class InvalidCredentialsError(AuthenticationError):
    """Raised for an unknown email and for a wrong password alike"""

    code = "INVALID_CREDENTIALS"

    def __init__(self):
        super().__init__("Invalid credentials")


class AuthorizationError(HostelError):
    status_code = 403
    code = "NOT_AUTHORIZED"

    def __init__(self, message: str = "Forbidden: insufficient role"):
        super().__init__(message)


class NotFoundError(HostelError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, label: str, record_id: str):
        super().__init__(f"{label} not found", {"id": record_id})


class ConflictError(HostelError):
    status_code = 409
    code = "CONFLICT"
