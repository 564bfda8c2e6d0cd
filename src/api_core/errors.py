"""
Error taxonomy for routed Lambda handlers.

Handlers raise these typed errors (or let unexpected exceptions propagate);
the router converts every error into a response envelope through
``get_http_status_code`` and ``format_error_body``. Operational errors are
expected failures whose message and details are safe to expose. Anything
else is sanitized before it reaches the caller.
"""

import traceback
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

INTERNAL_ERROR_MESSAGE = "Internal server error"


@dataclass(frozen=True)
class Violation:
    """A single schema violation."""

    field: str
    message: str
    code: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class BusinessError:
    """Business rule failure carried by BusinessLogicError."""

    code: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)


class AppError(Exception):
    """Base exception class for typed application errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        is_operational: bool = True,
        context: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.is_operational = is_operational
        self.context = context or {}
        self.error_id = str(uuid.uuid4())

    def details(self) -> Optional[Dict[str, Any]]:
        """Structured details exposed to the caller, if any."""
        return None

    def headers(self) -> Dict[str, str]:
        """Extra response headers for this error."""
        return {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            "error_id": self.error_id,
            "error_code": self.error_code,
            "message": self.message,
            "status_code": self.status_code,
            "is_operational": self.is_operational,
            "context": self.context,
        }


class BadRequestError(AppError):
    """Raised when the request cannot be read, e.g. a malformed body."""

    status_code = 400
    error_code = "BAD_REQUEST"

    def __init__(self, message: str = "Bad request", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context=context)


class ValidationError(AppError):
    """Raised when request data fails its schema."""

    status_code = 400
    error_code = "VALIDATION_ERROR"

    def __init__(
        self,
        violations: List[Violation],
        field_label: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if field_label:
            message = f"Validation failed for {field_label}"
        else:
            message = "Validation failed: " + ", ".join(v.message for v in violations)
        super().__init__(message, context=context)
        self.field_label = field_label
        self.validation_errors = list(violations)

    def details(self) -> Optional[Dict[str, Any]]:
        return {"validationErrors": [v.to_dict() for v in self.validation_errors]}


class UnauthorizedError(AppError):
    """Raised when the caller is not authenticated."""

    status_code = 401
    error_code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized access", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context=context)


class ForbiddenError(AppError):
    """Raised when the caller lacks the required role or permission."""

    status_code = 403
    error_code = "FORBIDDEN"

    def __init__(self, message: str = "Access forbidden", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context=context)


class NotFoundError(AppError):
    """Raised when a requested resource is not found."""

    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(
        self,
        resource: str,
        identifier: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if identifier:
            message = f"{resource} with identifier '{identifier}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(message, context=context)
        self.resource = resource
        self.identifier = identifier


class RouteNotFoundError(NotFoundError):
    """Raised by the router when no route matches the method and path."""

    def __init__(self, method: str, path: str):
        super().__init__("Route")
        self.message = f"Route not found: {method} {path}"
        self.args = (self.message,)
        self.method = method
        self.path = path


class ConflictError(AppError):
    """Raised when the request conflicts with the current resource state."""

    status_code = 409
    error_code = "CONFLICT"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context=context)


class BusinessLogicError(AppError):
    """Raised when a business rule rejects the request."""

    status_code = 422
    error_code = "BUSINESS_LOGIC_ERROR"

    def __init__(self, business_error: BusinessError, context: Optional[Dict[str, Any]] = None):
        super().__init__(business_error.message, context=context, error_code=business_error.code)
        self.business_error = business_error

    def details(self) -> Optional[Dict[str, Any]]:
        return {
            "businessError": {
                "code": self.business_error.code,
                "message": self.business_error.message,
            }
        }


class PayloadTooLargeError(AppError):
    """Raised when the request body exceeds the accepted size."""

    status_code = 413
    error_code = "PAYLOAD_TOO_LARGE"

    def __init__(self, max_size: int, actual_size: int, context: Optional[Dict[str, Any]] = None):
        super().__init__("Request entity too large", context=context)
        self.max_size = max_size
        self.actual_size = actual_size

    def details(self) -> Optional[Dict[str, Any]]:
        return {"maxSize": self.max_size, "actualSize": self.actual_size}


class RateLimitError(AppError):
    """Raised when rate limits are exceeded."""

    status_code = 429
    error_code = "RATE_LIMIT_EXCEEDED"

    def __init__(
        self,
        message: str = "Too many requests",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context=context)
        self.retry_after = retry_after

    def details(self) -> Optional[Dict[str, Any]]:
        if self.retry_after is None:
            return None
        return {"retryAfter": self.retry_after}

    def headers(self) -> Dict[str, str]:
        if self.retry_after is None:
            return {}
        return {"Retry-After": str(self.retry_after)}


class ExternalServiceError(AppError):
    """Raised when a downstream service call fails."""

    status_code = 502
    error_code = "EXTERNAL_SERVICE_ERROR"

    def __init__(self, service: str, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(f"External service error ({service}): {message}", context=context)
        self.service = service

    def details(self) -> Optional[Dict[str, Any]]:
        return {"service": self.service}


class RequestTimeoutError(AppError):
    """Raised when a route handler exceeds its time budget."""

    status_code = 504
    error_code = "REQUEST_TIMEOUT"

    def __init__(self, timeout_seconds: float, context: Optional[Dict[str, Any]] = None):
        super().__init__(f"Request timed out after {timeout_seconds:g} seconds", context=context)
        self.timeout_seconds = timeout_seconds


def is_app_error(error: BaseException) -> bool:
    return isinstance(error, AppError)


def is_operational(error: BaseException) -> bool:
    """Check if an error is safe to describe to the caller."""
    return isinstance(error, AppError) and error.is_operational


def create_business_error(code: str, message: str, context: Optional[Dict[str, Any]] = None) -> BusinessError:
    return BusinessError(code=code, message=message, context=context or {})


def get_http_status_code(error: BaseException) -> int:
    """Get appropriate HTTP status code for error."""
    if isinstance(error, AppError) and error.is_operational:
        return error.status_code
    return 500


def format_error_for_logging(error: BaseException) -> Dict[str, Any]:
    """Full error detail for server-side logs."""
    data: Dict[str, Any] = {
        "name": type(error).__name__,
        "message": str(error),
        "stack": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
    }
    if isinstance(error, AppError):
        data.update({
            "status_code": error.status_code,
            "is_operational": error.is_operational,
            "context": error.context,
            "error_id": error.error_id,
        })
    return data


def sanitize_error(error: BaseException) -> Dict[str, Any]:
    """Caller-safe view of an error."""
    if is_operational(error):
        sanitized: Dict[str, Any] = {
            "message": error.message,
            "statusCode": error.status_code,
        }
        if isinstance(error, ValidationError):
            sanitized["validationErrors"] = [v.to_dict() for v in error.validation_errors]
        return sanitized

    return {
        "message": INTERNAL_ERROR_MESSAGE,
        "statusCode": 500,
    }


def format_error_body(error: BaseException, debug: bool = False) -> Dict[str, Any]:
    """
    Build the error envelope body for an error.

    Args:
        error: Error raised while handling the request
        debug: Expose the raw message and stack of unclassified errors

    Returns:
        Error envelope ``{"success": False, "error", "code", "details"?, "errorId"}``
    """
    if is_operational(error):
        body: Dict[str, Any] = {
            "success": False,
            "error": error.message,
            "code": error.error_code,
        }
        details = error.details()
        if details:
            body["details"] = details
        body["errorId"] = error.error_id
        return body

    error_id = error.error_id if isinstance(error, AppError) else str(uuid.uuid4())
    body = {
        "success": False,
        "error": INTERNAL_ERROR_MESSAGE,
        "code": "INTERNAL_SERVER_ERROR",
        "errorId": error_id,
    }
    if debug:
        body["details"] = {
            "message": str(error),
            "type": type(error).__name__,
            "stack": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
        }
    return body


def get_error_headers(error: BaseException) -> Dict[str, str]:
    """Extra response headers for operational errors."""
    if is_operational(error):
        return error.headers()
    return {}
