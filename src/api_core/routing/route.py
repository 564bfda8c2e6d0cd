"""Route declarations and first-match route lookup."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Optional

from api_core.routing.matcher import match_path
from api_core.routing.validation import Schema, SchemaLike, as_schema


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


# handler(ctx: HandlerContext) -> Any; may be a coroutine function
RouteHandler = Callable[..., Any]


@dataclass(frozen=True)
class RouteSchema:
    """Optional schemas for the body, query string and path parameters of a route."""

    body: Optional[Schema] = None
    query: Optional[Schema] = None
    path: Optional[Schema] = None

    @classmethod
    def of(
        cls,
        body: Optional[SchemaLike] = None,
        query: Optional[SchemaLike] = None,
        path: Optional[SchemaLike] = None,
    ) -> "RouteSchema":
        return cls(
            body=as_schema(body) if body is not None else None,
            query=as_schema(query) if query is not None else None,
            path=as_schema(path) if path is not None else None,
        )


@dataclass(frozen=True)
class Route:
    method: HttpMethod
    path: str
    handler: RouteHandler
    schema: Optional[RouteSchema] = None

    @property
    def key(self) -> str:
        return f"{self.method.value} {self.path}"


@dataclass(frozen=True)
class RouteMatch:
    route: Route
    params: Dict[str, str]


def route(
    method: str,
    path: str,
    handler: RouteHandler,
    body: Optional[SchemaLike] = None,
    query: Optional[SchemaLike] = None,
    path_params: Optional[SchemaLike] = None,
) -> Route:
    """
    Declare a route.

    Args:
        method: HTTP verb, case-insensitive
        path: Path template, e.g. ``/orders/{orderId}``
        handler: Callable receiving a HandlerContext
        body: Schema for the parsed body
        query: Schema for the query string parameters
        path_params: Schema for the path parameters

    Returns:
        Immutable Route
    """
    schema = None
    if body is not None or query is not None or path_params is not None:
        schema = RouteSchema.of(body=body, query=query, path=path_params)
    return Route(method=HttpMethod(method.upper()), path=path, handler=handler, schema=schema)


def find_matching_route(routes: Iterable[Route], method: str, path: str) -> Optional[RouteMatch]:
    """Return the first route, in declaration order, matching both method and path."""
    wanted = method.upper()
    for candidate in routes:
        if candidate.method.value != wanted:
            continue

        result = match_path(candidate.path, path)
        if result.matched:
            return RouteMatch(route=candidate, params=result.params)

    return None
