"""
Reject oversized request bodies before they are parsed.
"""

from typing import Any, Mapping

from aws_lambda_powertools.metrics import MetricUnit

from api_core.errors import PayloadTooLargeError
from api_core.middleware.pipeline import Middleware, MiddlewareRequest
from api_core.observability import logger, metrics
from api_core.responses import error_response, to_json
from api_core.routing.parser import PARSED_BODY_KEY

DEFAULT_MAX_BODY_BYTES = 1024 * 1024


def body_size(event: Mapping[str, Any]) -> int:
    """Size of the request body in bytes, as received."""
    body = event.get('body')
    if body is None and PARSED_BODY_KEY in event:
        body = event[PARSED_BODY_KEY]
    if body is None:
        return 0
    if isinstance(body, bytes):
        return len(body)
    if isinstance(body, str):
        return len(body.encode('utf-8'))
    return len(to_json(body).encode('utf-8'))


class RequestSizeLimitMiddleware(Middleware):
    def __init__(self, max_size_bytes: int = DEFAULT_MAX_BODY_BYTES):
        self.max_size_bytes = max_size_bytes

    def before(self, request: MiddlewareRequest) -> None:
        size = body_size(request.event)
        if size <= self.max_size_bytes:
            return

        metrics.add_metric(name='RequestTooLarge', unit=MetricUnit.Count, value=1)
        logger.warning('Request body too large', extra={'max_size': self.max_size_bytes, 'actual_size': size})
        request.response = error_response(PayloadTooLargeError(self.max_size_bytes, size))
