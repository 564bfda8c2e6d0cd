"""Event normalization: fills missing maps and lower-cases header names."""

from api_core.middleware.pipeline import Middleware, MiddlewareRequest

NORMALIZED_MAPS = (
    'headers',
    'queryStringParameters',
    'pathParameters',
    'multiValueQueryStringParameters',
    'requestContext',
)


class EventNormalizerMiddleware(Middleware):
    """
    Replaces ``None`` maps with ``{}`` so later middleware and handlers can
    index them safely, and stores a lower-cased copy of the headers.
    """

    def before(self, request: MiddlewareRequest) -> None:
        event = request.event
        for name in NORMALIZED_MAPS:
            if event.get(name) is None:
                event[name] = {}

        headers = event['headers']
        event['rawHeaders'] = dict(headers)
        event['headers'] = {name.lower(): value for name, value in headers.items()}
