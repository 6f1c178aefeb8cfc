"""
Atelier ERP exceptions

Every workflow failure carries a stable error code and the HTTP status the
API layer should answer with. Raised by the service layer, translated to JSON
by the exception handler in atelier.main.
"""
from typing import Any, Dict, Optional


class AtelierException(Exception):
    """Base class for all workflow errors."""

    status_code: int = 400
    error_code: str = "ATELIER_ERROR"

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            body["details"] = self.details
        return body


class UnauthorizedError(AtelierException):
    """Actor is missing or does not hold the role the operation needs"""
    status_code = 401
    error_code = "UNAUTHORIZED"


class ForbiddenError(AtelierException):
    """Actor is authenticated but the role is too low for this action"""
    status_code = 403
    error_code = "FORBIDDEN"


class NotFoundError(AtelierException):
    """Referenced order, task or notification does not exist"""
    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            f"{resource} not found",
            details={"resource": resource, "id": resource_id},
        )
        self.resource = resource
        self.resource_id = resource_id


class NoOpTransitionError(AtelierException):
    """Requested status equals the order's current status"""
    status_code = 400
    error_code = "NO_OP_TRANSITION"

    def __init__(self, status: str):
        super().__init__(
            "Order is already in this status",
            details={"status": status},
        )
        self.status = status


class ValidationFailedError(AtelierException):
    """Malformed input, e.g. an unknown status or stage"""
    status_code = 422
    error_code = "VALIDATION_FAILED"
