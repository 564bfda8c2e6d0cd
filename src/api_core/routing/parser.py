"""
Request parsing for API Gateway events.

Handles both REST API (payload v1: ``httpMethod``/``path``) and HTTP API
(payload v2: ``requestContext.http``) events.
"""

import base64
import binascii
import dataclasses
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import parse_qsl

from api_core.errors import BadRequestError

INVALID_BODY_MESSAGE = "Invalid request body format"
# set by BodyParserMiddleware; the raw "body" is left untouched
PARSED_BODY_KEY = "parsedBody"


class CaseInsensitiveHeaders(Mapping):
    """Read-only header mapping with case-insensitive lookup."""

    def __init__(self, headers: Optional[Mapping[str, Any]] = None):
        self._headers: Dict[str, Any] = {}
        for name, value in (headers or {}).items():
            self._headers[name.lower()] = value

    def __getitem__(self, name: str) -> Any:
        return self._headers[name.lower()]

    def __iter__(self):
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._headers

    def __repr__(self) -> str:
        return f"CaseInsensitiveHeaders({self._headers!r})"


def get_headers(event: Mapping[str, Any]) -> CaseInsensitiveHeaders:
    return CaseInsensitiveHeaders(event.get("headers") or {})


def get_header(event: Mapping[str, Any], name: str, default: Optional[str] = None) -> Optional[str]:
    return get_headers(event).get(name, default)


def get_method_and_path(event: Mapping[str, Any]) -> Tuple[str, str]:
    """Extract the HTTP method and path from a REST or HTTP API event."""
    http = (event.get("requestContext") or {}).get("http") or {}
    method = http.get("method") or event.get("httpMethod") or ""
    path = http.get("path") or event.get("path") or event.get("rawPath") or "/"
    return method.upper(), path


def get_request_id(event: Mapping[str, Any], default: str = "unknown") -> str:
    return (event.get("requestContext") or {}).get("requestId") or default


def get_source_ip(event: Mapping[str, Any]) -> Optional[str]:
    request_context = event.get("requestContext") or {}
    http = request_context.get("http") or {}
    identity = request_context.get("identity") or {}
    return http.get("sourceIp") or identity.get("sourceIp")


def decode_body(event: Mapping[str, Any]) -> Any:
    body = event.get("body")
    if body is None or body == "":
        return None
    if isinstance(body, (dict, list)):
        return body
    if event.get("isBase64Encoded"):
        try:
            return base64.b64decode(body).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError, ValueError):
            raise BadRequestError(INVALID_BODY_MESSAGE)
    return body


def parse_body(event: Mapping[str, Any]) -> Any:
    """
    Parse the request body according to its Content-Type.

    Returns:
        ``{}`` when there is no body, a parsed JSON value for
        ``application/json``, a flat dict for form-urlencoded bodies and
        the decoded text otherwise

    Raises:
        BadRequestError: When the body cannot be decoded or parsed
    """
    if PARSED_BODY_KEY in event:
        return event[PARSED_BODY_KEY]
    body = decode_body(event)
    if body is None:
        return {}
    if not isinstance(body, str):
        # already parsed by an upstream middleware
        return body

    content_type = (get_header(event, "content-type") or "").lower()

    if "application/json" in content_type:
        try:
            return json.loads(body)
        except ValueError:
            raise BadRequestError(INVALID_BODY_MESSAGE)
    if "application/x-www-form-urlencoded" in content_type:
        return dict(parse_qsl(body, keep_blank_values=True))
    return body


@dataclass(frozen=True)
class ParsedEvent:
    """Per-request view of the raw event handed to route handlers."""

    method: str
    path: str
    body: Any
    path_parameters: Mapping[str, Any]
    query_string_parameters: Mapping[str, Any]
    headers: CaseInsensitiveHeaders
    request_context: Mapping[str, Any]
    raw_event: Mapping[str, Any] = field(repr=False)

    @property
    def request_id(self) -> str:
        return get_request_id(self.raw_event)

    def replace(self, **changes: Any) -> "ParsedEvent":
        return dataclasses.replace(self, **changes)


def build_parsed_event(event: Mapping[str, Any], route_params: Optional[Mapping[str, str]] = None) -> ParsedEvent:
    """
    Build the ParsedEvent for a request.

    Route template bindings override raw path parameters of the same name.
    """
    method, path = get_method_and_path(event)
    path_parameters = dict(event.get("pathParameters") or {})
    path_parameters.update(route_params or {})

    return ParsedEvent(
        method=method,
        path=path,
        body=parse_body(event),
        path_parameters=path_parameters,
        query_string_parameters=dict(event.get("queryStringParameters") or {}),
        headers=get_headers(event),
        request_context=dict(event.get("requestContext") or {}),
        raw_event=event,
    )
