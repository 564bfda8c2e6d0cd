"""
Bearer token authentication middleware.

``JwtAuthMiddleware`` verifies the ``Authorization: Bearer <token>`` header
with PyJWT and attaches the caller to ``event["user"]``::

    {"id": ..., "email": ..., "roles": [...], "permissions": [...], "claims": {...}}

``RequireRoleMiddleware`` and ``RequirePermissionMiddleware`` must come after
it in the stack.
"""

import re
from typing import Any, Dict, List, Optional, Sequence, Union

import jwt
from jwt.exceptions import ExpiredSignatureError, ImmatureSignatureError, InvalidTokenError

from api_core.config.env_vars import get_router_env_vars
from api_core.errors import ForbiddenError, UnauthorizedError
from api_core.middleware.pipeline import Middleware, MiddlewareRequest
from api_core.observability import logger
from api_core.routing.parser import get_header, get_method_and_path

DEFAULT_ALGORITHMS = ['HS256']
BEARER_PREFIX = re.compile(r'^Bearer\s+', re.IGNORECASE)


def extract_bearer_token(event: Dict[str, Any]) -> Optional[str]:
    """The bearer token, or None when the header is missing or uses another scheme."""
    header = get_header(event, 'authorization')
    if header is None or not BEARER_PREFIX.match(header):
        return None
    return BEARER_PREFIX.sub('', header).strip() or None


def _as_list(value: Union[str, Sequence[str]]) -> List[str]:
    """A single role or permission becomes a one-item list."""
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def user_from_claims(claims: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'id': claims.get('sub') or claims.get('userId') or '',
        'email': claims.get('email') or '',
        'roles': _as_list(claims.get('roles') or []),
        'permissions': _as_list(claims.get('permissions') or []),
        'claims': claims,
    }


class JwtAuthMiddleware(Middleware):
    """
    Args:
        secret: Verification key; defaults to JWT_SECRET
        issuer: Expected ``iss``; defaults to JWT_ISSUER
        audience: Expected ``aud``; defaults to JWT_AUDIENCE
        skip_paths: Regular expressions of paths that skip authentication
        optional: Let requests without an Authorization header through
        algorithms: Accepted signing algorithms
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        issuer: Optional[str] = None,
        audience: Optional[str] = None,
        skip_paths: Sequence[str] = (),
        optional: bool = False,
        algorithms: Optional[List[str]] = None,
    ):
        env = get_router_env_vars()
        self.secret = secret if secret is not None else env.JWT_SECRET
        self.issuer = issuer if issuer is not None else env.JWT_ISSUER
        self.audience = audience if audience is not None else env.JWT_AUDIENCE
        self.skip_paths = [re.compile(pattern) for pattern in skip_paths]
        self.optional = optional
        self.algorithms = algorithms or DEFAULT_ALGORITHMS

    def decode(self, token: str) -> Dict[str, Any]:
        if not self.secret:
            logger.error('JWT secret not configured')
            raise UnauthorizedError('Token verification failed')

        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=self.algorithms,
                issuer=self.issuer,
                audience=self.audience,
                options={'verify_aud': self.audience is not None},
            )
        except ExpiredSignatureError:
            raise UnauthorizedError('Token expired')
        except ImmatureSignatureError:
            raise UnauthorizedError('Token not active')
        except InvalidTokenError as e:
            logger.info('Token rejected', extra={'reason': str(e)})
            raise UnauthorizedError('Invalid token')

    def before(self, request: MiddlewareRequest) -> None:
        event = request.event
        _, path = get_method_and_path(event)
        if any(pattern.search(path) for pattern in self.skip_paths):
            return

        if get_header(event, 'authorization') is None:
            if self.optional:
                return
            raise UnauthorizedError('Missing authorization header')

        token = extract_bearer_token(event)
        if not token:
            raise UnauthorizedError('Invalid authorization header format')

        claims = self.decode(token)
        event['user'] = user_from_claims(claims)
        event['jwt'] = claims


class RequireRoleMiddleware(Middleware):
    """Allows the request when the user holds any of the given roles."""

    def __init__(self, roles: Union[str, Sequence[str]]):
        self.roles = _as_list(roles)

    def before(self, request: MiddlewareRequest) -> None:
        user = request.event.get('user')
        if not user:
            raise UnauthorizedError('Authentication required')
        if not any(role in (user.get('roles') or []) for role in self.roles):
            raise ForbiddenError(f"Required role(s): {', '.join(self.roles)}")


class RequirePermissionMiddleware(Middleware):
    """Allows the request when the user holds any of the given permissions."""

    def __init__(self, permissions: Union[str, Sequence[str]]):
        self.permissions = _as_list(permissions)

    def before(self, request: MiddlewareRequest) -> None:
        user = request.event.get('user')
        if not user:
            raise UnauthorizedError('Authentication required')
        if not any(permission in (user.get('permissions') or []) for permission in self.permissions):
            raise ForbiddenError(f"Required permission(s): {', '.join(self.permissions)}")
