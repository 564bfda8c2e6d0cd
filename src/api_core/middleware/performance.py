"""Request duration header and slow request warnings."""

import time

from aws_lambda_powertools.metrics import MetricUnit

from api_core.middleware.pipeline import Middleware, MiddlewareRequest, response_headers
from api_core.observability import logger, metrics
from api_core.routing.parser import get_method_and_path, get_request_id

SLOW_REQUEST_THRESHOLD_MS = 1000


class PerformanceMiddleware(Middleware):
    def __init__(self, slow_threshold_ms: float = SLOW_REQUEST_THRESHOLD_MS):
        self.slow_threshold_ms = slow_threshold_ms

    def before(self, request: MiddlewareRequest) -> None:
        request.internal['start_time'] = time.perf_counter()

    def after(self, request: MiddlewareRequest) -> None:
        start_time = request.internal.get('start_time')
        if start_time is None or request.response is None:
            return

        duration_ms = (time.perf_counter() - start_time) * 1000
        response_headers(request)['X-Response-Time'] = f'{duration_ms:.0f}ms'
        metrics.add_metric(name='RequestDuration', unit=MetricUnit.Milliseconds, value=duration_ms)

        if duration_ms > self.slow_threshold_ms:
            method, path = get_method_and_path(request.event)
            logger.warning('Slow request detected', extra={
                'request_id': get_request_id(request.event),
                'method': method,
                'path': path,
                'duration_ms': round(duration_ms, 2),
                'threshold_ms': self.slow_threshold_ms,
            })
