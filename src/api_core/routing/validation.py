"""
Schema validation contract for routed requests.

The router depends only on the ``Schema`` protocol: ``validate(data)`` returns a
``ValidationOutcome`` holding either the (possibly coerced) value or a list of
violations. ``PydanticSchema`` adapts any pydantic model or type to it.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Protocol, Union, runtime_checkable

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from api_core.errors import ValidationError, Violation


@dataclass(frozen=True)
class ValidationOutcome:
    value: Any = None
    violations: List[Violation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations


@runtime_checkable
class Schema(Protocol):
    def validate(self, data: Any) -> ValidationOutcome:
        ...


class PydanticSchema:
    """Schema backed by a pydantic model or any type pydantic can validate."""

    def __init__(self, model: Any):
        self.model = model
        self._adapter = TypeAdapter(model)

    def validate(self, data: Any) -> ValidationOutcome:
        try:
            return ValidationOutcome(value=self._adapter.validate_python(data))
        except PydanticValidationError as e:
            return ValidationOutcome(violations=violations_from_pydantic(e))

    def __repr__(self) -> str:
        return f"PydanticSchema({getattr(self.model, '__name__', self.model)!r})"


class CallableSchema:
    """Schema backed by a function returning a list of violations (empty when valid)."""

    def __init__(self, check: Callable[[Any], List[Violation]]):
        self.check = check

    def validate(self, data: Any) -> ValidationOutcome:
        violations = self.check(data)
        if violations:
            return ValidationOutcome(violations=list(violations))
        return ValidationOutcome(value=data)


SchemaLike = Union[Schema, type, Any]


def violations_from_pydantic(error: PydanticValidationError) -> List[Violation]:
    return [
        Violation(
            field=".".join(str(part) for part in issue["loc"]),
            message=issue["msg"],
            code=issue["type"],
        )
        for issue in error.errors()
    ]


def as_schema(schema: SchemaLike) -> Schema:
    """Coerce a Schema, pydantic model class or plain type into a Schema."""
    if isinstance(schema, Schema) and not isinstance(schema, type):
        return schema
    return PydanticSchema(schema)


def validate_schema(data: Any, schema: SchemaLike, field_label: str) -> Any:
    """
    Validate data against a schema.

    Args:
        data: Parsed body, query or path parameters
        schema: Schema to apply
        field_label: Label for error messages, e.g. "body" or "query parameters"

    Returns:
        The schema output; callers must use it instead of ``data`` since
        schemas may apply defaults and coercion

    Raises:
        ValidationError: With the label and one entry per violation
    """
    outcome = as_schema(schema).validate(data)
    if not outcome.ok:
        raise ValidationError(outcome.violations, field_label=field_label)
    return outcome.value


def check_schema(data: Any, schema: Optional[SchemaLike]) -> ValidationOutcome:
    """Validate without raising; a missing schema accepts the data unchanged."""
    if schema is None:
        return ValidationOutcome(value=data)
    return as_schema(schema).validate(data)
