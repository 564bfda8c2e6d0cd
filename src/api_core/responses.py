"""
Response envelope helpers.

Every routed response is ``{"statusCode", "headers", "body"}`` where ``body``
is a JSON envelope: ``{"success": true, "data", "message"?}`` on success or
``{"success": false, "error", "code", ...}`` on failure. 204 responses carry
an empty body.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel

from api_core.errors import format_error_body, get_error_headers, get_http_status_code

DEFAULT_HEADERS = {"Content-Type": "application/json"}


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(value: Any) -> str:
    """Serialize a value to JSON, handling pydantic models, Decimals and datetimes."""
    return json.dumps(value, default=_json_default)


def is_response_envelope(value: Any) -> bool:
    """Check if a handler result is already a complete API Gateway response."""
    return (
        isinstance(value, dict)
        and isinstance(value.get("statusCode"), int)
        and not isinstance(value.get("statusCode"), bool)
        and isinstance(value.get("body"), str)
    )


def create_api_response(
    status_code: int,
    body: Any,
    headers: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Create standardized API Gateway response."""
    response_headers = dict(DEFAULT_HEADERS)
    if headers:
        response_headers.update(headers)

    return {
        "statusCode": status_code,
        "headers": response_headers,
        "body": body if isinstance(body, str) else to_json(body),
    }


def success_response(
    data: Any = None,
    status_code: int = 200,
    message: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Wrap a value in the success envelope."""
    envelope: Dict[str, Any] = {"success": True, "data": data}
    if message is not None:
        envelope["message"] = message
    return create_api_response(status_code, to_json(envelope), headers)


def error_response(
    error: BaseException,
    debug: bool = False,
    headers: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Convert any error to an error envelope response."""
    response_headers = get_error_headers(error)
    if headers:
        response_headers.update(headers)
    return create_api_response(
        status_code=get_http_status_code(error),
        body=to_json(format_error_body(error, debug=debug)),
        headers=response_headers,
    )


def create_success_response(result: Any) -> Dict[str, Any]:
    """Pass complete responses through unchanged, wrap anything else as 200."""
    if is_response_envelope(result):
        return result
    return success_response(result)


def ok(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    return success_response(data, 200, message)


def created(data: Any = None, message: Optional[str] = None, location: Optional[str] = None) -> Dict[str, Any]:
    headers = {"Location": location} if location else None
    return success_response(data, 201, message, headers)


def no_content(headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    return create_api_response(204, "", headers)
