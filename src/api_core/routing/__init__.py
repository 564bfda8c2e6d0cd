"""
Request routing for API Gateway Lambda handlers.

- matcher: path template matching
- route: route declarations and first-match lookup
- parser: body, query and path parameter parsing
- validation: schema contract and pydantic adapter
- router: dispatch, error conversion and request logging
"""

from api_core.routing.matcher import MatchResult, match_path
from api_core.routing.parser import ParsedEvent, build_parsed_event, parse_body
from api_core.routing.route import HttpMethod, Route, RouteMatch, RouteSchema, find_matching_route, route
from api_core.routing.router import HandlerContext, Router, create_router
from api_core.routing.validation import (
    CallableSchema,
    PydanticSchema,
    Schema,
    ValidationOutcome,
    as_schema,
    validate_schema,
)

__all__ = [
    "MatchResult",
    "match_path",
    "ParsedEvent",
    "build_parsed_event",
    "parse_body",
    "HttpMethod",
    "Route",
    "RouteMatch",
    "RouteSchema",
    "find_matching_route",
    "route",
    "HandlerContext",
    "Router",
    "create_router",
    "CallableSchema",
    "PydanticSchema",
    "Schema",
    "ValidationOutcome",
    "as_schema",
    "validate_schema",
]
