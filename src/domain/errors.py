"""
Typed error kinds

Every denial path has its own class so callers can tell them apart without
parsing messages. Codes are stable and safe to expose.
"""

from typing import ClassVar, Optional

from .result import Error


class DomainError(Error):
    default_code: ClassVar[str] = "ERROR"
    default_message: ClassVar[str] = "Operation failed"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        super().__init__(code or self.default_code, message or self.default_message)


class TenantIsolationError(DomainError):
    default_code = "TENANT_ISOLATION"
    default_message = "Cross-tenant access denied"


class InactiveActorError(DomainError):
    default_code = "INACTIVE_ACTOR"
    default_message = "Your account is disabled"


class AuthorizationError(DomainError):
    default_code = "INSUFFICIENT_ROLE"
    default_message = "Your role does not allow this operation"


class ValidationError(DomainError):
    default_code = "VALIDATION_FAILED"
    default_message = "Request violates a domain rule"


class ConflictError(DomainError):
    default_code = "CONFLICT"
    default_message = "Resource already exists"


class ConcurrentModificationError(ConflictError):
    default_code = "CONCURRENT_MODIFICATION"
    default_message = "The resource was modified concurrently, retry the request"


class ExpiredError(DomainError):
    default_code = "INVITATION_EXPIRED"
    default_message = "Invitation token is invalid or has expired"


class InvalidTokenError(DomainError):
    default_code = "INVALID_TOKEN"
    default_message = "Invitation token is invalid or has expired"


class NotFoundError(DomainError):
    default_code = "NOT_FOUND"
    default_message = "Resource not found"
