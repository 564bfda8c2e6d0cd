"""
Canonical middleware stacks.

``create_middleware_stack`` wraps a handler in the standard order::

    normalization -> correlation id -> performance -> logging
    -> request size limit -> body parsing -> CORS -> validation -> auth
    -> required roles -> error handling

Each stage can be switched off, or configured by passing a middleware
instance instead of ``True``.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union

from api_core.middleware.auth import JwtAuthMiddleware, RequireRoleMiddleware
from api_core.middleware.body_parser import BodyParserMiddleware
from api_core.middleware.correlation import CorrelationIdMiddleware
from api_core.middleware.cors import admin_cors, cors_for_environment
from api_core.middleware.error_handler import ErrorHandlerMiddleware
from api_core.middleware.normalizer import EventNormalizerMiddleware
from api_core.middleware.performance import PerformanceMiddleware
from api_core.middleware.pipeline import LambdaHandler, Middleware, MiddlewarePipeline
from api_core.middleware.request_logging import RequestLoggingMiddleware
from api_core.middleware.request_size import RequestSizeLimitMiddleware
from api_core.middleware.validation import SchemaValidationMiddleware

Stage = Union[bool, Middleware]


@dataclass
class MiddlewareStackOptions:
    normalization: bool = True
    correlation_ids: bool = True
    performance: bool = True
    logging: Stage = True
    request_size_limit: Stage = False
    body_parser: bool = True
    cors: Stage = True
    validation: Optional[SchemaValidationMiddleware] = None
    auth: Stage = False
    roles: Union[str, Sequence[str], None] = None
    error_handler: Stage = True


def _stage(setting: Stage, default_factory) -> Optional[Middleware]:
    if setting is False or setting is None:
        return None
    if setting is True:
        return default_factory()
    return setting


def build_middlewares(options: MiddlewareStackOptions) -> List[Middleware]:
    middlewares: List[Optional[Middleware]] = [
        EventNormalizerMiddleware() if options.normalization else None,
        CorrelationIdMiddleware() if options.correlation_ids else None,
        PerformanceMiddleware() if options.performance else None,
        _stage(options.logging, RequestLoggingMiddleware),
        _stage(options.request_size_limit, RequestSizeLimitMiddleware),
        BodyParserMiddleware() if options.body_parser else None,
        _stage(options.cors, cors_for_environment),
        options.validation,
        _stage(options.auth, JwtAuthMiddleware),
        RequireRoleMiddleware(options.roles) if options.roles else None,
        _stage(options.error_handler, ErrorHandlerMiddleware),
    ]
    return [middleware for middleware in middlewares if middleware is not None]


def create_middleware_stack(
    handler: LambdaHandler,
    options: Optional[MiddlewareStackOptions] = None,
    **overrides: Any,
) -> MiddlewarePipeline:
    """
    Wrap a Lambda handler in the canonical middleware stack.

    Args:
        handler: Lambda handler, typically a Router
        options: Stack options; keyword overrides are applied on top
    """
    options = options or MiddlewareStackOptions()
    for name, value in overrides.items():
        if not hasattr(options, name):
            raise TypeError(f'Unknown middleware stack option: {name}')
        setattr(options, name, value)
    return MiddlewarePipeline(handler, build_middlewares(options))


def create_public_api_handler(handler: LambdaHandler, **overrides: Any) -> MiddlewarePipeline:
    """No authentication, CORS from the environment."""
    return create_middleware_stack(handler, MiddlewareStackOptions(auth=False, cors=True), **overrides)


def create_protected_api_handler(
    handler: LambdaHandler,
    auth: Optional[JwtAuthMiddleware] = None,
    **overrides: Any,
) -> MiddlewarePipeline:
    """Bearer token authentication, CORS from the environment."""
    options = MiddlewareStackOptions(auth=auth or True, cors=True)
    return create_middleware_stack(handler, options, **overrides)


def create_admin_api_handler(
    handler: LambdaHandler,
    roles: Union[str, Sequence[str]] = ('admin',),
    auth: Optional[JwtAuthMiddleware] = None,
    **overrides: Any,
) -> MiddlewarePipeline:
    """Bearer token authentication plus a required role; CORS limited to ADMIN_CORS_ORIGIN."""
    options = MiddlewareStackOptions(auth=auth or True, cors=admin_cors(), roles=roles)
    return create_middleware_stack(handler, options, **overrides)


def create_webhook_handler(
    handler: LambdaHandler,
    validation: SchemaValidationMiddleware,
    **overrides: Any,
) -> MiddlewarePipeline:
    """
    Inbound webhooks: no CORS and no bearer auth, payload validation required.

    Responses are not logged; callers only see a status code.
    """
    options = MiddlewareStackOptions(
        auth=False,
        cors=False,
        validation=validation,
        logging=RequestLoggingMiddleware(log_requests=True, log_responses=False),
    )
    return create_middleware_stack(handler, options, **overrides)


def create_internal_handler(handler: LambdaHandler, **overrides: Any) -> MiddlewarePipeline:
    """Service-to-service handlers: no CORS, no auth, no normalization."""
    options = MiddlewareStackOptions(auth=False, cors=False, normalization=False)
    return create_middleware_stack(handler, options, **overrides)
