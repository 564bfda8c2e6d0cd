"""
Router / dispatcher for API Gateway Lambda handlers.

``create_router(routes)`` returns a Lambda handler that finds the matching
route, parses and validates the request, invokes the route handler and turns
the result, or any raised error, into a response envelope. The returned
handler never raises.
"""

import asyncio
import inspect
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from aws_lambda_powertools.metrics import MetricUnit

from api_core.claims import get_user_id
from api_core.config.env_vars import get_router_env_vars
from api_core.errors import (
    AppError,
    RequestTimeoutError,
    RouteNotFoundError,
    ValidationError,
    Violation,
    format_error_for_logging,
)
from api_core.observability import logger, metrics, tracer
from api_core.responses import create_success_response, error_response
from api_core.routing.parser import ParsedEvent, build_parsed_event, get_method_and_path, get_request_id
from api_core.routing.route import Route, RouteHandler, RouteMatch, find_matching_route, route
from api_core.routing.validation import SchemaLike

# Sections validated in order: (RouteSchema attribute, ParsedEvent field, label)
VALIDATED_SECTIONS = (
    ("body", "body", "body"),
    ("query", "query_string_parameters", "query parameters"),
    ("path", "path_parameters", "path parameters"),
)


@dataclass(frozen=True)
class HandlerContext:
    """What a route handler receives: the parsed event and the Lambda context."""

    event: ParsedEvent
    context: Any


def run_handler(handler: RouteHandler, ctx: HandlerContext) -> Any:
    """Call a sync or async route handler and return its result."""
    result = handler(ctx)
    if inspect.isawaitable(result):
        result = asyncio.run(_await(result))
    return result


async def _await(awaitable: Any) -> Any:
    return await awaitable


class Router:
    """
    Ordered route table plus dispatch.

    Routes are matched in declaration order; the first route whose method and
    path template match wins.

    Args:
        routes: Initial routes
        debug: Expose unexpected error details; defaults to DEBUG_ERRORS
        log_requests: Log requests and responses; defaults to ENABLE_REQUEST_LOGGING
        timeout_seconds: Optional handler time budget; defaults to HANDLER_TIMEOUT_SECONDS
        fail_fast: Stop validating at the first failing section
    """

    def __init__(
        self,
        routes: Optional[Sequence[Route]] = None,
        debug: Optional[bool] = None,
        log_requests: Optional[bool] = None,
        timeout_seconds: Optional[float] = None,
        fail_fast: bool = False,
    ):
        env = get_router_env_vars()
        self.routes: List[Route] = list(routes or [])
        self.debug = env.debug_errors if debug is None else debug
        self.log_requests = env.request_logging_enabled if log_requests is None else log_requests
        self.timeout_seconds = env.HANDLER_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
        self.fail_fast = fail_fast

    def add_route(self, new_route: Route) -> Route:
        self.routes.append(new_route)
        return new_route

    def _register(self, method: str, path: str, **schemas: Optional[SchemaLike]) -> Callable[[RouteHandler], RouteHandler]:
        def decorator(handler: RouteHandler) -> RouteHandler:
            self.add_route(route(method, path, handler, **schemas))
            return handler
        return decorator

    def get(self, path: str, **schemas: Optional[SchemaLike]):
        return self._register("GET", path, **schemas)

    def post(self, path: str, **schemas: Optional[SchemaLike]):
        return self._register("POST", path, **schemas)

    def put(self, path: str, **schemas: Optional[SchemaLike]):
        return self._register("PUT", path, **schemas)

    def patch(self, path: str, **schemas: Optional[SchemaLike]):
        return self._register("PATCH", path, **schemas)

    def delete(self, path: str, **schemas: Optional[SchemaLike]):
        return self._register("DELETE", path, **schemas)

    def find(self, method: str, path: str) -> Optional[RouteMatch]:
        return find_matching_route(self.routes, method, path)

    def validate(self, matched: Route, parsed: ParsedEvent) -> ParsedEvent:
        """Apply the route schemas; replaces each section with the schema output."""
        if matched.schema is None:
            return parsed

        changes: Dict[str, Any] = {}
        violations: List[Violation] = []
        failed_labels: List[str] = []

        for schema_attr, event_field, label in VALIDATED_SECTIONS:
            schema = getattr(matched.schema, schema_attr)
            if schema is None:
                continue

            outcome = schema.validate(getattr(parsed, event_field))
            if outcome.ok:
                changes[event_field] = outcome.value
                continue

            if self.fail_fast:
                raise ValidationError(outcome.violations, field_label=label)
            violations.extend(outcome.violations)
            failed_labels.append(label)

        if violations:
            raise ValidationError(violations, field_label=" and ".join(failed_labels))

        return parsed.replace(**changes)

    def invoke(self, handler: RouteHandler, ctx: HandlerContext) -> Any:
        if not self.timeout_seconds:
            return run_handler(handler, ctx)

        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(run_handler, handler, ctx)
        try:
            return future.result(timeout=self.timeout_seconds)
        except FutureTimeoutError:
            raise RequestTimeoutError(self.timeout_seconds)
        finally:
            executor.shutdown(wait=False)

    @tracer.capture_method(capture_response=False)
    def dispatch(self, event: Dict[str, Any], context: Any) -> Dict[str, Any]:
        method, path = get_method_and_path(event)

        matched = self.find(method, path)
        if matched is None:
            metrics.add_metric(name="RouteNotFound", unit=MetricUnit.Count, value=1)
            raise RouteNotFoundError(method, path)

        tracer.put_annotation("route", matched.route.key)

        parsed = build_parsed_event(event, matched.params)
        parsed = self.validate(matched.route, parsed)

        result = self.invoke(matched.route.handler, HandlerContext(event=parsed, context=context))
        return create_success_response(result)

    def handle_error(self, error: Exception, event: Dict[str, Any]) -> Dict[str, Any]:
        if isinstance(error, ValidationError):
            metrics.add_metric(name="ValidationError", unit=MetricUnit.Count, value=1)

        if isinstance(error, AppError) and error.is_operational:
            logger.info("Request rejected", extra={
                "request_id": get_request_id(event),
                "error_code": error.error_code,
                "error_message": error.message,
                "status_code": error.status_code,
            })
        else:
            metrics.add_metric(name="UnexpectedError", unit=MetricUnit.Count, value=1)
            logger.exception("Unexpected error in route handler", extra={
                "request_id": get_request_id(event),
                "error": format_error_for_logging(error),
            })

        return error_response(error, debug=self.debug)

    def __call__(self, event: Dict[str, Any], context: Any) -> Dict[str, Any]:
        start_time = time.perf_counter()

        try:
            self._log_request(event)
            metrics.add_metric(name="RequestCount", unit=MetricUnit.Count, value=1)
            response = self.dispatch(event, context)
        except Exception as e:
            response = self.handle_error(e, event)

        self._log_response(event, response, (time.perf_counter() - start_time) * 1000)
        return response

    def _log_request(self, event: Dict[str, Any]) -> None:
        if not self.log_requests:
            return

        method, path = get_method_and_path(event)
        logger.info("Incoming request", extra={
            "request_id": get_request_id(event),
            "method": method,
            "path": path,
            "user_id": get_user_id(event),
        })

    def _log_response(self, event: Dict[str, Any], response: Dict[str, Any], duration_ms: float) -> None:
        if not self.log_requests:
            return

        method, path = get_method_and_path(event)
        status_code = response.get("statusCode", 200)
        log_data = {
            "request_id": get_request_id(event),
            "method": method,
            "path": path,
            "status_code": status_code,
            "duration_ms": round(duration_ms, 2),
        }

        if status_code >= 500:
            logger.error("Request completed", extra=log_data)
        elif status_code >= 400:
            logger.warning("Request completed", extra=log_data)
        else:
            logger.info("Request completed", extra=log_data)


def create_router(routes: Sequence[Route], **options: Any) -> Router:
    """
    Create a Lambda handler dispatching to the given routes.

    Example::

        handler = create_router([
            route("GET", "/orders/{orderId}", get_order, path_params=OrderPath),
            route("POST", "/orders", create_order, body=CreateOrderRequest),
        ])
    """
    return Router(routes, **options)
