"""
Middleware pipeline and built-in middleware.

Each middleware exposes optional ``before``, ``after`` and ``on_error``
phases; ``MiddlewarePipeline`` runs them around a Lambda handler.
"""

from api_core.middleware.auth import JwtAuthMiddleware, RequirePermissionMiddleware, RequireRoleMiddleware
from api_core.middleware.body_parser import BodyParserMiddleware
from api_core.middleware.correlation import CorrelationIdMiddleware
from api_core.middleware.cors import CorsMiddleware, CorsOptions, admin_cors, cors_for_environment
from api_core.middleware.error_handler import ErrorHandlerMiddleware
from api_core.middleware.normalizer import EventNormalizerMiddleware
from api_core.middleware.performance import PerformanceMiddleware
from api_core.middleware.pipeline import (
    FunctionMiddleware,
    Middleware,
    MiddlewarePipeline,
    MiddlewareRequest,
    with_middleware,
)
from api_core.middleware.rate_limiter import FixedWindowRateLimiter, RateLimitMiddleware
from api_core.middleware.request_logging import RequestLoggingMiddleware, mask_sensitive_data
from api_core.middleware.request_size import RequestSizeLimitMiddleware
from api_core.middleware.security_headers import SecurityHeadersMiddleware
from api_core.middleware.stack import (
    MiddlewareStackOptions,
    create_admin_api_handler,
    create_internal_handler,
    create_middleware_stack,
    create_protected_api_handler,
    create_public_api_handler,
    create_webhook_handler,
)
from api_core.middleware.validation import SchemaValidationMiddleware

__all__ = [
    'BodyParserMiddleware',
    'CorrelationIdMiddleware',
    'CorsMiddleware',
    'CorsOptions',
    'ErrorHandlerMiddleware',
    'EventNormalizerMiddleware',
    'FixedWindowRateLimiter',
    'FunctionMiddleware',
    'JwtAuthMiddleware',
    'Middleware',
    'MiddlewarePipeline',
    'MiddlewareRequest',
    'MiddlewareStackOptions',
    'PerformanceMiddleware',
    'RateLimitMiddleware',
    'RequestLoggingMiddleware',
    'RequestSizeLimitMiddleware',
    'RequirePermissionMiddleware',
    'RequireRoleMiddleware',
    'SchemaValidationMiddleware',
    'SecurityHeadersMiddleware',
    'admin_cors',
    'cors_for_environment',
    'create_admin_api_handler',
    'create_internal_handler',
    'create_middleware_stack',
    'create_protected_api_handler',
    'create_public_api_handler',
    'create_webhook_handler',
    'mask_sensitive_data',
    'with_middleware',
]
