"""
Unit tests for bearer token authentication and authorization middleware.
"""

import json
import time

import jwt
import pytest

from api_core.claims import get_user_id
from api_core.middleware import (
    ErrorHandlerMiddleware,
    JwtAuthMiddleware,
    MiddlewarePipeline,
    RequirePermissionMiddleware,
    RequireRoleMiddleware,
    create_protected_api_handler,
)
from api_core.middleware.auth import extract_bearer_token
from api_core.responses import success_response
from api_core.routing import create_router, route

SECRET = "test-secret-key-with-at-least-32-bytes!"


def make_token(secret=SECRET, **claims):
    payload = {"sub": "user-1", "email": "user@example.com", "iat": int(time.time()), "exp": int(time.time()) + 300}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


def bearer(token):
    return {"authorization": f"Bearer {token}"}


def user_echo(event, context):
    return success_response(event.get("user"))


def run(middlewares, event, context):
    response = MiddlewarePipeline(user_echo, list(middlewares) + [ErrorHandlerMiddleware(debug=False)])(event, context)
    return response["statusCode"], json.loads(response["body"])


class TestJwtAuthMiddleware:
    """Test cases for JwtAuthMiddleware."""

    def test_valid_token_attaches_user(self, http_event, lambda_context):
        """Test a valid token attaches the user to the event."""
        token = make_token(roles=["admin"], permissions=["users:read"])

        status, body = run([JwtAuthMiddleware(secret=SECRET)], http_event(headers=bearer(token)), lambda_context)

        assert status == 200
        user = body["data"]
        assert user["id"] == "user-1"
        assert user["email"] == "user@example.com"
        assert user["roles"] == ["admin"]
        assert user["permissions"] == ["users:read"]

    def test_secret_defaults_to_environment(self, http_event, lambda_context):
        """Test secret defaults to environment."""
        status, _ = run([JwtAuthMiddleware()], http_event(headers=bearer(make_token())), lambda_context)

        assert status == 200

    def test_missing_header(self, http_event, lambda_context):
        """Test requests without an Authorization header are rejected."""
        status, body = run([JwtAuthMiddleware(secret=SECRET)], http_event(headers={}), lambda_context)

        assert status == 401
        assert body["error"] == "Missing authorization header"
        assert body["code"] == "UNAUTHORIZED"

    def test_expired_token(self, http_event, lambda_context):
        """Test expired tokens are rejected."""
        token = make_token(exp=int(time.time()) - 60)

        status, body = run([JwtAuthMiddleware(secret=SECRET)], http_event(headers=bearer(token)), lambda_context)

        assert status == 401
        assert body["error"] == "Token expired"

    def test_not_yet_valid_token(self, http_event, lambda_context):
        """Test tokens used before nbf are rejected."""
        token = make_token(nbf=int(time.time()) + 3600)

        status, body = run([JwtAuthMiddleware(secret=SECRET)], http_event(headers=bearer(token)), lambda_context)

        assert status == 401
        assert body["error"] == "Token not active"

    def test_wrong_signature(self, http_event, lambda_context):
        """Test tokens signed with another key are rejected."""
        token = make_token(secret="another-secret-that-is-long-enough-000")

        status, body = run([JwtAuthMiddleware(secret=SECRET)], http_event(headers=bearer(token)), lambda_context)

        assert status == 401
        assert body["error"] == "Invalid token"

    def test_wrong_issuer(self, http_event, lambda_context):
        """Test tokens from another issuer are rejected."""
        token = make_token(iss="https://other.example.com")
        middleware = JwtAuthMiddleware(secret=SECRET, issuer="https://auth.example.com")

        status, body = run([middleware], http_event(headers=bearer(token)), lambda_context)

        assert status == 401
        assert body["error"] == "Invalid token"

    def test_audience_is_checked_when_configured(self, http_event, lambda_context):
        """Test audience is checked when configured."""
        middleware = JwtAuthMiddleware(secret=SECRET, audience="users-api")

        accepted, _ = run([middleware], http_event(headers=bearer(make_token(aud="users-api"))), lambda_context)
        rejected, _ = run([middleware], http_event(headers=bearer(make_token(aud="orders-api"))), lambda_context)

        assert accepted == 200
        assert rejected == 401

    def test_empty_bearer_token(self, http_event, lambda_context):
        """Test a Bearer prefix without a token is rejected."""
        status, body = run([JwtAuthMiddleware(secret=SECRET)], http_event(headers={"authorization": "Bearer "}), lambda_context)

        assert status == 401
        assert body["error"] == "Invalid authorization header format"

    def test_no_secret_configured(self, http_event, lambda_context, monkeypatch):
        """Test verification fails closed without a secret."""
        monkeypatch.delenv("JWT_SECRET")

        status, body = run([JwtAuthMiddleware()], http_event(headers=bearer(make_token())), lambda_context)

        assert status == 401
        assert body["error"] == "Token verification failed"

    def test_optional_allows_anonymous(self, http_event, lambda_context):
        """Test optional allows anonymous."""
        status, body = run([JwtAuthMiddleware(secret=SECRET, optional=True)], http_event(headers={}), lambda_context)

        assert status == 200
        assert body["data"] is None

    def test_optional_still_rejects_bad_tokens(self, http_event, lambda_context):
        """Test optional still rejects bad tokens."""
        status, _ = run([JwtAuthMiddleware(secret=SECRET, optional=True)], http_event(headers=bearer("garbage")), lambda_context)

        assert status == 401

    def test_skip_paths(self, http_event, lambda_context):
        """Test skip_paths bypass authentication."""
        middleware = JwtAuthMiddleware(secret=SECRET, skip_paths=[r"^/health$"])

        skipped, _ = run([middleware], http_event("GET", "/health", headers={}), lambda_context)
        protected, _ = run([middleware], http_event("GET", "/healthz", headers={}), lambda_context)

        assert skipped == 200
        assert protected == 401

    def test_extract_bearer_token_is_case_insensitive(self, http_event):
        """Test extract bearer token is case insensitive."""
        assert extract_bearer_token(http_event(headers={"Authorization": "bearer abc.def"})) == "abc.def"
        assert extract_bearer_token(http_event(headers={})) is None

    @pytest.mark.parametrize("header", ["Basic dXNlcjpwYXNz", "Token abc.def.ghi", "Bearer"])
    def test_other_schemes_are_rejected_as_malformed(self, header, http_event, lambda_context):
        """Test non-Bearer authorization schemes are reported as a bad header format."""
        status, body = run([JwtAuthMiddleware(secret=SECRET)], http_event(headers={"authorization": header}), lambda_context)

        assert status == 401
        assert body["error"] == "Invalid authorization header format"

    def test_extract_bearer_token_ignores_other_schemes(self, http_event):
        """Test extract_bearer_token returns None for other schemes."""
        assert extract_bearer_token(http_event(headers={"authorization": "Basic abc"})) is None


class TestRoleAndPermissionMiddleware:
    """Test cases for RequireRoleMiddleware and RequirePermissionMiddleware."""

    def test_role_granted(self, http_event, lambda_context):
        """Test any one of the required roles is enough."""
        token = make_token(roles=["user", "admin"])
        middlewares = [JwtAuthMiddleware(secret=SECRET), RequireRoleMiddleware(["admin", "owner"])]

        status, _ = run(middlewares, http_event(headers=bearer(token)), lambda_context)

        assert status == 200

    def test_role_missing(self, http_event, lambda_context):
        """Test callers without a required role get 403."""
        token = make_token(roles=["user"])
        middlewares = [JwtAuthMiddleware(secret=SECRET), RequireRoleMiddleware(["admin", "owner"])]

        status, body = run(middlewares, http_event(headers=bearer(token)), lambda_context)

        assert status == 403
        assert body["error"] == "Required role(s): admin, owner"

    def test_permission_missing(self, http_event, lambda_context):
        """Test callers without the permission get 403."""
        token = make_token(permissions=["users:read"])
        middlewares = [JwtAuthMiddleware(secret=SECRET), RequirePermissionMiddleware("users:write")]

        status, body = run(middlewares, http_event(headers=bearer(token)), lambda_context)

        assert status == 403
        assert body["error"] == "Required permission(s): users:write"

    def test_single_string_role_claim(self, http_event, lambda_context):
        """Test a role claim given as one string grants that role."""
        token = make_token(roles="admin", permissions="users:write")
        middlewares = [
            JwtAuthMiddleware(secret=SECRET),
            RequireRoleMiddleware("admin"),
            RequirePermissionMiddleware("users:write"),
        ]

        status, body = run(middlewares, http_event(headers=bearer(token)), lambda_context)

        assert status == 200
        assert body["data"]["roles"] == ["admin"]
        assert body["data"]["permissions"] == ["users:write"]

    def test_requires_authenticated_user(self, http_event, lambda_context):
        """Test role checks require an authenticated user."""
        status, body = run([RequireRoleMiddleware("admin")], http_event(), lambda_context)

        assert status == 401
        assert body["error"] == "Authentication required"


class TestProtectedApiHandler:
    """Test cases for the protected preset wrapping a router."""

    def test_route_sees_verified_user(self, http_event, lambda_context):
        """Test route handlers see the verified user."""
        router = create_router([route("GET", "/me", lambda ctx: {"userId": get_user_id(ctx.event)})])
        handler = create_protected_api_handler(router)

        response = handler(http_event("GET", "/me", headers=bearer(make_token(sub="user-42"))), lambda_context)

        assert response["statusCode"] == 200
        assert json.loads(response["body"])["data"] == {"userId": "user-42"}

    @pytest.mark.parametrize("headers", [{}, {"authorization": "Bearer nope"}])
    def test_route_not_reached_without_valid_token(self, headers, http_event, lambda_context):
        """Test route handlers are not reached without a valid token."""
        calls = []
        router = create_router([route("GET", "/me", lambda ctx: calls.append(ctx))])
        handler = create_protected_api_handler(router)

        response = handler(http_event("GET", "/me", headers=headers), lambda_context)

        assert response["statusCode"] == 401
        assert calls == []
        assert "X-Correlation-ID" in response["headers"]
