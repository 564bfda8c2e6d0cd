"""Parse the request body once so later stages and the router reuse it."""

from api_core.middleware.pipeline import Middleware, MiddlewareRequest
from api_core.routing.parser import PARSED_BODY_KEY, parse_body


class BodyParserMiddleware(Middleware):
    """
    Store the parsed body under ``parsedBody`` on the event.

    A malformed body raises ``BadRequestError`` from ``before``, which the
    error handler turns into a 400 envelope.
    """

    def before(self, request: MiddlewareRequest) -> None:
        request.event[PARSED_BODY_KEY] = parse_body(request.event)
