"""Error taxonomy shared by the workflow core and the HTTP adapter.

Each error carries a machine-checkable ``kind`` and the HTTP status the API
layer answers with. The core raises these; it never raises ``HTTPException``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class for expected, caller-visible failures."""

    kind = "error"
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "kind": self.kind}


class ValidationError(AppError):
    kind = "validation_error"
    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(AppError):
    kind = "unauthenticated"
    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(AppError):
    kind = "forbidden"
    status_code = 403
    default_message = "You are not allowed to perform this action"


class NotFoundError(AppError):
    kind = "not_found"
    status_code = 404
    default_message = "Not Found Resource"


class ConflictError(AppError):
    kind = "conflict"
    status_code = 409
    default_message = "Resource conflict"


class InvalidTransitionError(ConflictError):
    """The report is not in the status the operation requires."""

    kind = "invalid_transition"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        current: Optional[str] = None,
        target: Optional[str] = None,
    ) -> None:
        if message is None:
            if current and target:
                message = f"Invalid status transition from {current} to {target}"
            else:
                message = "Invalid status transition"
        super().__init__(message)
        self.current = current
        self.target = target

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.current:
            body["current"] = self.current
        if self.target:
            body["target"] = self.target
        return body


class NoWorkersFoundError(ConflictError):
    kind = "no_workers"

    def __init__(self, role: str) -> None:
        super().__init__(f"No workers found for role {role}")
        self.role = role


__all__ = [
    "AppError",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "InvalidTransitionError",
    "NoWorkersFoundError",
    "NotFoundError",
    "ValidationError",
]
