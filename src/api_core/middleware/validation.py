"""Schema validation for handlers wrapped in the middleware pipeline."""

from typing import Any, Dict, List, Optional

from api_core.errors import ValidationError, Violation
from api_core.middleware.pipeline import Middleware, MiddlewareRequest
from api_core.routing.parser import parse_body
from api_core.routing.validation import SchemaLike, check_schema

VALIDATED_KEY = 'validated'


class SchemaValidationMiddleware(Middleware):
    """
    Validates the body, query string and path parameters of the raw event.

    Violations from every section are reported together in one
    ``ValidationError``. Validated values are stored under
    ``event["validated"]`` with the keys ``body``, ``query`` and ``path``.
    """

    def __init__(
        self,
        body: Optional[SchemaLike] = None,
        query: Optional[SchemaLike] = None,
        path: Optional[SchemaLike] = None,
    ):
        self.sections = (
            ('body', body, 'body'),
            ('query', query, 'query parameters'),
            ('path', path, 'path parameters'),
        )

    def _section_data(self, event: Dict[str, Any], key: str) -> Any:
        if key == 'body':
            return parse_body(event)
        if key == 'query':
            return dict(event.get('queryStringParameters') or {})
        return dict(event.get('pathParameters') or {})

    def before(self, request: MiddlewareRequest) -> None:
        validated: Dict[str, Any] = {}
        violations: List[Violation] = []
        failed_labels: List[str] = []

        for key, schema, label in self.sections:
            if schema is None:
                continue
            outcome = check_schema(self._section_data(request.event, key), schema)
            if outcome.ok:
                validated[key] = outcome.value
            else:
                violations.extend(outcome.violations)
                failed_labels.append(label)

        if violations:
            raise ValidationError(violations, field_label=' and '.join(failed_labels))

        request.event[VALIDATED_KEY] = validated
