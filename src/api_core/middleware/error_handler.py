"""Error handling middleware: converts any error into an error envelope."""

from typing import Optional

from aws_lambda_powertools.metrics import MetricUnit

from api_core.config.env_vars import get_router_env_vars
from api_core.errors import format_error_for_logging, is_operational
from api_core.middleware.pipeline import Middleware, MiddlewareRequest
from api_core.observability import logger, metrics
from api_core.responses import error_response


class ErrorHandlerMiddleware(Middleware):
    """
    Place last in the stack so every other middleware's on_error runs first.

    Args:
        debug: Expose unexpected error details; defaults to DEBUG_ERRORS
        log_errors: Log errors before converting them
    """

    def __init__(self, debug: Optional[bool] = None, log_errors: bool = True):
        self.debug = get_router_env_vars().debug_errors if debug is None else debug
        self.log_errors = log_errors

    def on_error(self, request: MiddlewareRequest) -> None:
        error = request.error
        if error is None or request.response is not None:
            return

        metrics.add_metric(name="ErrorCount", unit=MetricUnit.Count, value=1)

        if self.log_errors:
            if is_operational(error):
                logger.warning("Request error occurred", extra={"error": format_error_for_logging(error)})
            else:
                logger.error("Request error occurred", extra={"error": format_error_for_logging(error)})

        request.response = error_response(error, debug=self.debug)
