"""Correlation id propagation."""

import uuid

from api_core.middleware.pipeline import Middleware, MiddlewareRequest, response_headers
from api_core.observability import logger
from api_core.routing.parser import get_header

CORRELATION_HEADERS = ('x-correlation-id', 'x-request-id')
RESPONSE_HEADER = 'X-Correlation-ID'


def resolve_correlation_id(event) -> str:
    for name in CORRELATION_HEADERS:
        value = get_header(event, name)
        if value:
            return value
    return str(uuid.uuid4())


class CorrelationIdMiddleware(Middleware):
    """Adds the request's correlation id to every log line and echoes it back."""

    def before(self, request: MiddlewareRequest) -> None:
        correlation_id = resolve_correlation_id(request.event)
        request.internal['correlation_id'] = correlation_id
        logger.set_correlation_id(correlation_id)

    def after(self, request: MiddlewareRequest) -> None:
        if request.response is None:
            return
        correlation_id = request.internal.get('correlation_id')
        if correlation_id:
            response_headers(request)[RESPONSE_HEADER] = correlation_id
