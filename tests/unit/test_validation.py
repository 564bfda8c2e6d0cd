"""
Unit tests for the schema validation contract.
"""

from typing import List, Optional

import pytest
from pydantic import BaseModel, Field

from api_core.errors import ValidationError, Violation
from api_core.routing.validation import CallableSchema, PydanticSchema, as_schema, check_schema, validate_schema


class CreateItem(BaseModel):
    name: str = Field(..., min_length=1)
    quantity: int = Field(default=1, ge=1)
    tags: Optional[List[str]] = None


class TestValidateSchema:
    """Test cases for validate_schema."""

    def test_returns_schema_output(self):
        """Defaults and coercion are applied to the returned value."""
        result = validate_schema({"name": "widget", "quantity": "3"}, CreateItem, "body")

        assert isinstance(result, CreateItem)
        assert result.quantity == 3

    def test_defaults_applied(self):
        """Test schema defaults are applied."""
        result = validate_schema({"name": "widget"}, CreateItem, "body")

        assert result.quantity == 1

    def test_failure_carries_label_and_violations(self):
        """Test failures carry the section label and violations."""
        with pytest.raises(ValidationError) as exc_info:
            validate_schema({"name": "", "quantity": 0}, CreateItem, "body")

        error = exc_info.value
        assert error.status_code == 400
        assert error.message == "Validation failed for body"
        fields = {violation.field for violation in error.validation_errors}
        assert fields == {"name", "quantity"}
        assert all(violation.code for violation in error.validation_errors)

    def test_nested_field_paths_are_dotted(self):
        """Test nested field paths are dotted."""
        with pytest.raises(ValidationError) as exc_info:
            validate_schema({"name": "x", "tags": ["ok", 5]}, CreateItem, "body")

        assert exc_info.value.validation_errors[0].field == "tags.1"

    def test_plain_type_schema(self):
        """Test plain type schema."""
        assert validate_schema("12", int, "query parameters") == 12

    def test_details_shape(self):
        """Test the shape of validation error details."""
        with pytest.raises(ValidationError) as exc_info:
            validate_schema({}, CreateItem, "body")

        details = exc_info.value.details()
        assert details["validationErrors"][0]["field"] == "name"
        assert set(details["validationErrors"][0]) == {"field", "message", "code"}


class TestSchemaAdapters:
    """Test cases for schema adapters."""

    def test_callable_schema(self):
        """Test callable schema."""
        def positive(data):
            if data.get("n", 0) <= 0:
                return [Violation(field="n", message="must be positive", code="too_small")]
            return []

        schema = CallableSchema(positive)

        assert schema.validate({"n": 2}).ok
        outcome = schema.validate({"n": -1})
        assert not outcome.ok
        assert outcome.violations[0].message == "must be positive"

    def test_as_schema_wraps_models(self):
        """Test as_schema wraps pydantic models."""
        assert isinstance(as_schema(CreateItem), PydanticSchema)

    def test_as_schema_keeps_schema_instances(self):
        """Test as_schema keeps Schema instances."""
        schema = CallableSchema(lambda data: [])

        assert as_schema(schema) is schema

    def test_check_schema_without_schema(self):
        """Test check_schema passes values through without a schema."""
        outcome = check_schema({"a": 1}, None)

        assert outcome.ok
        assert outcome.value == {"a": 1}
