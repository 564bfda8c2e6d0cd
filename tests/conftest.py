"""
Pytest configuration and shared fixtures for the serverless API core.

This module provides common test fixtures and configuration used across
unit and integration tests.
"""

import os
import pytest
from typing import Any, Dict, Optional
from unittest.mock import Mock

import boto3
from moto import mock_aws

# Environment is set at import time: routed handlers read it when their module is imported
os.environ.update({
    "AWS_DEFAULT_REGION": "us-east-1",
    "AWS_REGION": "us-east-1",
    "AWS_ACCESS_KEY_ID": "test",
    "AWS_SECRET_ACCESS_KEY": "test",
    "TABLE_NAME": "test-main-table",
    "EVENT_BUS_NAME": "test-bus",
    "ENVIRONMENT": "test",
    "POWERTOOLS_SERVICE_NAME": "test-api-core",
    "POWERTOOLS_METRICS_NAMESPACE": "TestServerlessApiCore",
    "LOG_LEVEL": "DEBUG",
    "POWERTOOLS_TRACE_DISABLED": "true",  # Disable X-Ray in tests
    "JWT_SECRET": "test-secret-key-with-at-least-32-bytes!",
    # re-read environment models on every call so monkeypatched values apply
    "LAMBDA_ENV_MODELER_DISABLE_CACHE": "true",
})

TABLE_NAME = "test-main-table"


@pytest.fixture
def env(monkeypatch):
    """Set environment variables for a single test."""

    def _set(**values: str) -> None:
        for name, value in values.items():
            monkeypatch.setenv(name, value)

    return _set


# AWS fixtures
@pytest.fixture
def aws():
    with mock_aws():
        yield


@pytest.fixture
def dynamodb_table(aws):
    """Create a mock single-table DynamoDB table for testing."""
    dynamodb = boto3.resource("dynamodb", region_name="us-east-1")

    table = dynamodb.create_table(
        TableName=TABLE_NAME,
        KeySchema=[
            {"AttributeName": "PK", "KeyType": "HASH"},
            {"AttributeName": "SK", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "PK", "AttributeType": "S"},
            {"AttributeName": "SK", "AttributeType": "S"},
            {"AttributeName": "GSI1PK", "AttributeType": "S"},
            {"AttributeName": "GSI1SK", "AttributeType": "S"},
        ],
        GlobalSecondaryIndexes=[
            {
                "IndexName": "GSI1",
                "KeySchema": [
                    {"AttributeName": "GSI1PK", "KeyType": "HASH"},
                    {"AttributeName": "GSI1SK", "KeyType": "RANGE"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            }
        ],
        BillingMode="PAY_PER_REQUEST",
    )

    table.wait_until_exists()
    yield table


@pytest.fixture
def event_bus(aws):
    events = boto3.client("events", region_name="us-east-1")
    events.create_event_bus(Name="test-bus")
    yield "test-bus"


# Event fixtures
def make_http_api_event(
    method: str = "GET",
    path: str = "/",
    body: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
    query: Optional[Dict[str, str]] = None,
    claims: Optional[Dict[str, Any]] = None,
    is_base64_encoded: bool = False,
) -> Dict[str, Any]:
    """Build an HTTP API (payload v2) event."""
    request_context: Dict[str, Any] = {
        "requestId": "test-request-id-123",
        "accountId": "123456789012",
        "stage": "$default",
        "http": {
            "method": method,
            "path": path,
            "protocol": "HTTP/1.1",
            "sourceIp": "127.0.0.1",
            "userAgent": "test-agent/1.0",
        },
    }
    if claims is not None:
        request_context["authorizer"] = {"jwt": {"claims": claims, "scopes": None}}

    return {
        "version": "2.0",
        "routeKey": "$default",
        "rawPath": path,
        "headers": headers if headers is not None else {"content-type": "application/json"},
        "queryStringParameters": query,
        "pathParameters": None,
        "body": body,
        "isBase64Encoded": is_base64_encoded,
        "requestContext": request_context,
    }


def make_rest_api_event(
    method: str = "GET",
    path: str = "/",
    body: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Build a REST API (payload v1) event."""
    return {
        "httpMethod": method,
        "path": path,
        "headers": headers if headers is not None else {"Content-Type": "application/json"},
        "body": body,
        "requestContext": {
            "requestId": "test-request-id-123",
            "accountId": "123456789012",
            "stage": "test",
            "httpMethod": method,
            "path": path,
            "identity": {
                "sourceIp": "127.0.0.1",
                "userAgent": "test-agent/1.0",
            },
        },
        "pathParameters": None,
        "queryStringParameters": None,
        "multiValueQueryStringParameters": None,
        "stageVariables": None,
        "isBase64Encoded": False,
    }


@pytest.fixture
def http_event():
    return make_http_api_event


@pytest.fixture
def rest_event():
    return make_rest_api_event


@pytest.fixture
def lambda_context():
    """Create a mock Lambda context for testing."""
    context = Mock()
    context.function_name = "test-lambda-function"
    context.function_version = "1"
    context.invoked_function_arn = "arn:aws:lambda:us-east-1:123456789012:function:test-lambda-function"
    context.memory_limit_in_mb = 512
    context.get_remaining_time_in_millis = lambda: 30000
    context.aws_request_id = "test-request-id-123"
    context.log_group_name = "/aws/lambda/test-lambda-function"
    context.log_stream_name = "2024/01/01/[$LATEST]test123"
    return context


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
