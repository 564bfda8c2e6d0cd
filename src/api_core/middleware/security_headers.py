"""Security headers added to every response."""

from typing import Dict, Optional

from api_core.middleware.pipeline import Middleware, MiddlewareRequest, response_headers

DEFAULT_SECURITY_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'DENY',
    'X-XSS-Protection': '1; mode=block',
    'Strict-Transport-Security': 'max-age=31536000; includeSubDomains',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
}


class SecurityHeadersMiddleware(Middleware):
    """Adds OWASP-recommended headers without overriding headers set by the handler."""

    def __init__(self, headers: Optional[Dict[str, str]] = None):
        self.headers = dict(DEFAULT_SECURITY_HEADERS if headers is None else headers)

    def after(self, request: MiddlewareRequest) -> None:
        if request.response is None:
            return

        headers = response_headers(request)
        for name, value in self.headers.items():
            headers.setdefault(name, value)
