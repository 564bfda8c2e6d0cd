"""
CORS middleware.

Answers preflight ``OPTIONS`` requests directly (short-circuiting the rest of
the stack) and adds CORS headers to every other response, including error
responses.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

from api_core.config.env_vars import get_router_env_vars
from api_core.middleware.pipeline import Middleware, MiddlewareRequest, response_headers
from api_core.routing.parser import get_header, get_method_and_path

# "*", an explicit origin, a list of origins, True to reflect any origin, False to deny
OriginSetting = Union[str, List[str], bool]


@dataclass
class CorsOptions:
    origin: OriginSetting = '*'
    methods: List[str] = field(default_factory=lambda: ['GET', 'POST', 'PUT', 'DELETE', 'PATCH', 'OPTIONS'])
    allowed_headers: List[str] = field(default_factory=lambda: [
        'Content-Type',
        'Authorization',
        'X-Requested-With',
        'X-Correlation-ID',
        'X-API-Key',
        'Accept',
    ])
    exposed_headers: List[str] = field(default_factory=lambda: ['X-Correlation-ID', 'X-Response-Time'])
    credentials: bool = False
    max_age: int = 86400
    preflight_status: int = 204


def get_allowed_origin(request_origin: Optional[str], allowed: OriginSetting) -> Optional[str]:
    """Resolve the Access-Control-Allow-Origin value, or None when the origin is not allowed."""
    if not request_origin:
        return '*' if allowed is not False else None
    if allowed is True:
        return request_origin
    if allowed is False:
        return None
    if isinstance(allowed, str):
        if allowed == '*':
            return '*'
        return request_origin if allowed == request_origin else None
    return request_origin if request_origin in allowed else None


class CorsMiddleware(Middleware):
    def __init__(self, options: Optional[CorsOptions] = None):
        self.options = options or CorsOptions()

    def before(self, request: MiddlewareRequest) -> None:
        method, _ = get_method_and_path(request.event)
        if method != 'OPTIONS':
            return

        options = self.options
        headers = {
            'Access-Control-Allow-Methods': ','.join(options.methods),
            'Access-Control-Allow-Headers': ','.join(options.allowed_headers),
            'Access-Control-Max-Age': str(options.max_age),
        }
        request.response = {
            'statusCode': options.preflight_status,
            'headers': headers,
            'body': '',
        }

    def after(self, request: MiddlewareRequest) -> None:
        if request.response is None:
            return

        options = self.options
        headers = response_headers(request)
        allowed_origin = get_allowed_origin(get_header(request.event, 'origin'), options.origin)

        if allowed_origin:
            headers['Access-Control-Allow-Origin'] = allowed_origin
            if allowed_origin != '*':
                headers['Vary'] = 'Origin'
        if options.credentials:
            headers['Access-Control-Allow-Credentials'] = 'true'
        if options.exposed_headers:
            headers['Access-Control-Expose-Headers'] = ','.join(options.exposed_headers)


def development_cors() -> CorsMiddleware:
    return CorsMiddleware(CorsOptions(origin=True, credentials=True))


def production_cors(allowed_origins: List[str]) -> CorsMiddleware:
    return CorsMiddleware(CorsOptions(origin=allowed_origins, credentials=True))


def public_cors() -> CorsMiddleware:
    return CorsMiddleware(CorsOptions(origin='*', credentials=False))


def admin_cors() -> CorsMiddleware:
    """Credentialed CORS for ADMIN_CORS_ORIGIN; cross-origin calls are refused when it is unset."""
    origins = get_router_env_vars().admin_cors_origins
    return CorsMiddleware(CorsOptions(origin=origins or False, credentials=True))


def cors_for_environment() -> CorsMiddleware:
    """Pick the CORS preset from ENVIRONMENT and CORS_ORIGIN."""
    env = get_router_env_vars()
    origins = env.cors_origins

    if env.ENVIRONMENT in ('development', 'dev', 'test'):
        return development_cors()
    if origins == ['*']:
        return public_cors()
    return production_cors(origins)
