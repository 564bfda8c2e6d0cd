"""
Shared HTTP core for API Gateway Lambda microservices.

- routing: path matching, request parsing, validation and dispatch
- errors / responses: error taxonomy and response envelopes
- middleware: before/after/on_error pipeline and built-in middleware
- claims: authorizer claims lookup
- events / dal / clients: EventBridge, DynamoDB and AWS client handle
"""

from api_core.errors import (
    AppError,
    BadRequestError,
    BusinessLogicError,
    ConflictError,
    ExternalServiceError,
    ForbiddenError,
    NotFoundError,
    PayloadTooLargeError,
    RateLimitError,
    RequestTimeoutError,
    UnauthorizedError,
    ValidationError,
)
from api_core.responses import created, no_content, ok
from api_core.routing import HandlerContext, Router, create_router, route

__all__ = [
    'AppError',
    'BadRequestError',
    'BusinessLogicError',
    'ConflictError',
    'ExternalServiceError',
    'ForbiddenError',
    'NotFoundError',
    'PayloadTooLargeError',
    'RateLimitError',
    'RequestTimeoutError',
    'UnauthorizedError',
    'ValidationError',
    'HandlerContext',
    'Router',
    'create_router',
    'route',
    'created',
    'no_content',
    'ok',
]
