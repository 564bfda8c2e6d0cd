"""
Request/response logging middleware.

Request bodies and error bodies are logged with sensitive keys masked: any
key whose lower-cased name contains one of ``mask_fields`` is replaced with
``***MASKED***``, recursively through nested dicts and lists.
"""

import json
import time
from typing import Any, Iterable, Optional

from api_core.claims import get_user_id
from api_core.config.env_vars import get_router_env_vars
from api_core.middleware.pipeline import Middleware, MiddlewareRequest
from api_core.observability import logger
from api_core.routing.parser import get_header, get_method_and_path, get_request_id, get_source_ip

MASKED_VALUE = '***MASKED***'
DEFAULT_MASK_FIELDS = ('password', 'token', 'secret', 'key', 'authorization')


def mask_sensitive_data(value: Any, mask_fields: Iterable[str] = DEFAULT_MASK_FIELDS) -> Any:
    """Return a copy of ``value`` with sensitive keys masked."""
    mask_fields = tuple(mask_fields)
    if isinstance(value, dict):
        masked = {}
        for key, item in value.items():
            if any(field in str(key).lower() for field in mask_fields):
                masked[key] = MASKED_VALUE
            else:
                masked[key] = mask_sensitive_data(item, mask_fields)
        return masked
    if isinstance(value, list):
        return [mask_sensitive_data(item, mask_fields) for item in value]
    return value


def _loads_or_raw(body: Any) -> Any:
    if not isinstance(body, str):
        return body
    try:
        return json.loads(body)
    except ValueError:
        return body


class RequestLoggingMiddleware(Middleware):
    """
    Args:
        enabled: Defaults to ENABLE_REQUEST_LOGGING
        log_requests: Log the incoming request
        log_responses: Log the completed response
        log_sensitive_data: Skip masking
        mask_fields: Key fragments to mask
    """

    def __init__(
        self,
        enabled: Optional[bool] = None,
        log_requests: bool = True,
        log_responses: bool = True,
        log_sensitive_data: bool = False,
        mask_fields: Iterable[str] = DEFAULT_MASK_FIELDS,
    ):
        self.enabled = get_router_env_vars().request_logging_enabled if enabled is None else enabled
        self.log_requests = log_requests
        self.log_responses = log_responses
        self.log_sensitive_data = log_sensitive_data
        self.mask_fields = tuple(mask_fields)

    def _mask(self, value: Any) -> Any:
        return value if self.log_sensitive_data else mask_sensitive_data(value, self.mask_fields)

    def before(self, request: MiddlewareRequest) -> None:
        request.internal['logging_start_time'] = time.perf_counter()
        if not (self.enabled and self.log_requests):
            return

        event = request.event
        method, path = get_method_and_path(event)
        log_data = {
            'request_id': get_request_id(event),
            'method': method,
            'path': path,
            'source_ip': get_source_ip(event),
            'user_agent': get_header(event, 'user-agent'),
            'query_string_parameters': event.get('queryStringParameters'),
            'path_parameters': event.get('pathParameters'),
        }
        if event.get('body'):
            log_data['body'] = self._mask(_loads_or_raw(event['body']))

        user_id = get_user_id(event)
        if user_id:
            log_data['user_id'] = user_id

        logger.info('Incoming request', extra=log_data)

    def after(self, request: MiddlewareRequest) -> None:
        if not (self.enabled and self.log_responses) or request.response is None:
            return

        start_time = request.internal.get('logging_start_time', time.perf_counter())
        status_code = request.response.get('statusCode', 200)
        log_data = {
            'request_id': get_request_id(request.event),
            'status_code': status_code,
            'duration_ms': round((time.perf_counter() - start_time) * 1000, 2),
        }
        if status_code >= 400 and request.response.get('body'):
            log_data['error'] = self._mask(_loads_or_raw(request.response['body']))

        if status_code >= 500:
            logger.error('Request completed', extra=log_data)
        elif status_code >= 400:
            logger.warning('Request completed', extra=log_data)
        else:
            logger.info('Request completed', extra=log_data)
