"""
Typed failures raised by the service layer.

Every failure carries a ``kind`` the HTTP layer maps to a status category,
a stable machine ``code``, a human-readable message and optional details.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    BUSINESS_RULE = "business_rule"
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    INFRASTRUCTURE = "infrastructure"


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.BUSINESS_RULE: 400,
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.INFRASTRUCTURE: 503,
}


class ServiceError(Exception):
    kind: ErrorKind = ErrorKind.INFRASTRUCTURE
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def status(self) -> int:
        return STATUS_BY_KIND[self.kind]

    def to_dict(self) -> dict:
        body: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "status": self.status,
        }
        if self.details:
            body["details"] = self.details
        return {"error": body}


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, resource: str, **details: Any):
        super().__init__(f"{resource} not found", {"resource": resource, **details})
        self.resource = resource


class ConflictError(ServiceError):
    kind = ErrorKind.CONFLICT
    code = "CONFLICT"


class BusinessRuleError(ServiceError):
    kind = ErrorKind.BUSINESS_RULE
    code = "BUSINESS_RULE_VIOLATION"


class ValidationError(ServiceError):
    kind = ErrorKind.VALIDATION
    code = "VALIDATION_ERROR"


class AuthenticationError(ServiceError):
    kind = ErrorKind.AUTHENTICATION
    code = "AUTHENTICATION_ERROR"


class InfrastructureError(ServiceError):
    """Datastore unreachable or a statement failed for non-domain reasons.

    The driver exception is kept as ``__cause__`` for logs but never exposed
    in the message.
    """

    kind = ErrorKind.INFRASTRUCTURE
    code = "DATABASE_ERROR"

    def __init__(self, message: str = "Database operation failed", details: Optional[dict[str, Any]] = None):
        super().__init__(message, details)
