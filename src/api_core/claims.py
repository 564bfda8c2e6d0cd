"""
Claims lookup for authorizer-verified requests.

API Gateway authorizers verify bearer tokens before the function runs; the
verified claims arrive in the request context and are passed through as-is.
"""

from typing import Any, Dict, List, Mapping, Optional

from api_core.errors import UnauthorizedError


def _raw_event(event: Any) -> Mapping[str, Any]:
    # ParsedEvent keeps the original event around
    return getattr(event, "raw_event", event) or {}


def get_claims(event: Any) -> Dict[str, Any]:
    """
    Return the verified claims of a request, or an empty dict.

    Looks at the HTTP API JWT authorizer (``authorizer.jwt.claims``), the REST
    Cognito authorizer (``authorizer.claims``), and finally the user attached
    by ``JwtAuthMiddleware``.
    """
    raw = _raw_event(event)
    request_context = raw.get("requestContext")
    authorizer = request_context.get("authorizer") if isinstance(request_context, Mapping) else None
    if not isinstance(authorizer, Mapping):
        authorizer = {}

    jwt = authorizer.get("jwt")
    jwt_claims = jwt.get("claims") if isinstance(jwt, Mapping) else None
    if isinstance(jwt_claims, Mapping) and jwt_claims:
        return dict(jwt_claims)

    # Lambda authorizer contexts may carry anything under "claims"
    claims = authorizer.get("claims")
    if isinstance(claims, Mapping) and claims:
        return dict(claims)

    user = raw.get("user")
    if isinstance(user, Mapping) and user:
        user_claims = user.get("claims")
        if isinstance(user_claims, Mapping) and user_claims:
            return dict(user_claims)
        return {"sub": user.get("id")}

    return {}


def get_user_id(event: Any) -> Optional[str]:
    sub = get_claims(event).get("sub")
    return sub if isinstance(sub, str) and sub else None


def require_user_id(event: Any) -> str:
    user_id = get_user_id(event)
    if not user_id:
        raise UnauthorizedError("User ID (sub claim) not found in JWT")
    return user_id


def get_user_email(event: Any) -> Optional[str]:
    email = get_claims(event).get("email")
    return email if isinstance(email, str) else None


def get_user_groups(event: Any) -> List[str]:
    """Cognito groups, which arrive as a list or a bracketed, space separated string."""
    groups = get_claims(event).get("cognito:groups")
    if not groups:
        return []
    if isinstance(groups, (list, tuple)):
        return [str(group) for group in groups]
    return [group for group in str(groups).strip("[]").replace(",", " ").split() if group]
