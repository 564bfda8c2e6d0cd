"""
Middleware pipeline for Lambda handlers.

A middleware is any object exposing optional ``before``, ``after`` and
``on_error`` methods, each receiving the shared ``MiddlewareRequest``:

- ``before`` phases run in list order. The first one that sets
  ``request.response`` short-circuits the remaining ``before`` phases and the
  handler.
- ``on_error`` phases run in list order when the handler (or a ``before``
  phase) raises. All of them run; the first response set wins, since the
  built-in middleware never overwrite an existing response. When no phase sets
  a response the error is re-raised.
- ``after`` phases run in list order whenever a response exists. An
  ``after`` phase that raises goes through ``on_error``, and the replacement
  response gets one more ``after`` pass.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from api_core.observability import logger

LambdaHandler = Callable[[Dict[str, Any], Any], Dict[str, Any]]
Phase = Callable[["MiddlewareRequest"], None]


@dataclass
class MiddlewareRequest:
    event: Dict[str, Any]
    context: Any
    response: Optional[Dict[str, Any]] = None
    error: Optional[BaseException] = None
    internal: Dict[str, Any] = field(default_factory=dict)


class Middleware:
    """Base class for middleware; subclasses override only the phases they need."""

    before: Optional[Phase] = None
    after: Optional[Phase] = None
    on_error: Optional[Phase] = None


@dataclass
class FunctionMiddleware(Middleware):
    """Middleware assembled from plain functions."""

    before: Optional[Phase] = None
    after: Optional[Phase] = None
    on_error: Optional[Phase] = None


def _phase(middleware: Any, phase_name: str) -> Optional[Phase]:
    phase = getattr(middleware, phase_name, None)
    return phase if callable(phase) else None


class MiddlewarePipeline:
    """Runs a handler wrapped in an ordered list of middleware."""

    def __init__(self, handler: LambdaHandler, middlewares: Optional[Sequence[Any]] = None):
        self.handler = handler
        self.middlewares: List[Any] = list(middlewares or [])

    def use(self, middleware: Any) -> "MiddlewarePipeline":
        self.middlewares.append(middleware)
        return self

    def _run_before(self, request: MiddlewareRequest) -> bool:
        """Run before phases; returns True when one of them short-circuited."""
        for middleware in self.middlewares:
            phase = _phase(middleware, "before")
            if phase is None:
                continue
            phase(request)
            if request.response is not None:
                logger.debug("Middleware short-circuited request", extra={
                    "middleware": type(middleware).__name__,
                })
                return True
        return False

    def _run_on_error(self, request: MiddlewareRequest, error: BaseException) -> None:
        request.error = error
        for middleware in self.middlewares:
            phase = _phase(middleware, "on_error")
            if phase is not None:
                phase(request)

        if request.response is None:
            raise request.error

    def _run_after(self, request: MiddlewareRequest) -> None:
        for middleware in self.middlewares:
            phase = _phase(middleware, "after")
            if phase is not None:
                phase(request)

    def __call__(self, event: Dict[str, Any], context: Any) -> Dict[str, Any]:
        request = MiddlewareRequest(event=event, context=context)

        try:
            if not self._run_before(request):
                request.response = self.handler(request.event, request.context)
        except Exception as e:
            request.response = None
            self._run_on_error(request, e)

        self._finish(request)
        return request.response

    def _finish(self, request: MiddlewareRequest) -> None:
        """
        Run the after phases. When one of them raises, on_error builds a
        replacement response, which gets one more after pass so it still
        carries CORS, correlation and security headers. A second failure
        leaves the bare on_error response.
        """
        try:
            self._run_after(request)
        except Exception as e:
            request.response = None
            self._run_on_error(request, e)
        else:
            return

        try:
            self._run_after(request)
        except Exception as e:
            logger.exception("After phase failed on error response")
            request.response = None
            self._run_on_error(request, e)


def with_middleware(*middlewares: Any) -> Callable[[LambdaHandler], MiddlewarePipeline]:
    """Decorator form of MiddlewarePipeline."""

    def decorator(handler: LambdaHandler) -> MiddlewarePipeline:
        return MiddlewarePipeline(handler, middlewares)

    return decorator


def response_headers(request: MiddlewareRequest) -> Dict[str, str]:
    """Mutable headers of the current response, created when missing."""
    if request.response.get("headers") is None:
        request.response["headers"] = {}
    return request.response["headers"]
