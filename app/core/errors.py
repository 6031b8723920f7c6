"""
Service error taxonomy.

Services raise these; app.main turns them into JSON responses
({"success": false, "error": ...}) with the matching status code.
"""
from typing import Any, Dict, Optional


class ServiceError(Exception):
    """Base error for the civic issues backend."""

    status_code = 500

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "error": self.message, **self.extra}


class ValidationError(ServiceError):
    """Malformed or missing input, or an invalid enum value."""

    status_code = 400


class NotFoundError(ServiceError):
    """Referenced user, issue, staff member or payment does not exist."""

    status_code = 404


class ForbiddenError(ServiceError):
    """Role-restricted action or ownership mismatch."""

    status_code = 403


class ConflictError(ServiceError):
    """Quota exceeded, already boosted, or wrong issue state for the action."""

    status_code = 409


class ExternalServiceError(ServiceError):
    """Payment gateway unreachable or rejected the request."""

    status_code = 502


class GatewayNotConfiguredError(ExternalServiceError):
    """Payment gateway credentials are missing in this process."""

    status_code = 503


class PersistenceError(ServiceError):
    """Unexpected storage failure, including a compensated entitlement write."""

    status_code = 500
