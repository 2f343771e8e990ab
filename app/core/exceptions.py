"""
Errors raised by the auth workflow.

Each error carries the HTTP status it maps to and the client-facing message.
The handler in ``app.main`` renders them as ``{"message": ..., **extra}``.
Messages are deliberately generic where detail would leak account state;
the workflow logs the precise reason instead.
"""

from typing import Any, Dict, Optional


class PortalError(Exception):
    """Base class for workflow errors"""

    status_code = 500

    def __init__(
        self,
        message: str = "Internal server error",
        status_code: Optional[int] = None,
        extra: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, **self.extra}


class ValidationError(PortalError):
    status_code = 400


class ConflictError(PortalError):
    """Duplicate email or username"""

    status_code = 400


class InvalidOtpError(PortalError):
    status_code = 400

    def __init__(self):
        super().__init__("Invalid or expired verification code")


class AuthenticationError(PortalError):
    status_code = 401

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class AuthorizationError(PortalError):
    status_code = 403

    def __init__(self, message: str = "Admin access required"):
        super().__init__(message)


class VerificationRequiredError(AuthorizationError):
    """Account exists but the email has not been confirmed yet"""

    def __init__(self, email: str):
        super().__init__("Please verify your email before logging in")
        self.extra = {"requiresVerification": True, "email": email}


class NotFoundError(PortalError):
    status_code = 404

    def __init__(self, message: str = "User not found"):
        super().__init__(message)
