"""
Unit tests for domain events and the EventBridge publisher.
"""

import json
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from api_core.clients import AwsClients
from api_core.errors import ExternalServiceError
from api_core.events import DomainEvent, EventPublisher, create_event


def client_error(code, operation="PutEvents"):
    return ClientError({"Error": {"Code": code, "Message": f"{code} happened"}}, operation)


def published(entries=None, failed=0):
    return {"FailedEntryCount": failed, "Entries": entries or [{"EventId": "evt-1"}]}


@pytest.fixture
def clients():
    mock_clients = Mock(spec=AwsClients)
    mock_clients.events = Mock()
    return mock_clients


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def publisher(clients, sleeps):
    return EventPublisher(clients, event_bus_name="orders-bus", sleep=sleeps.append)


def user_event(**data):
    return create_event("user.updated", "service.users", data or {"userId": "u1"}, correlation_id="corr-1")


class TestDomainEvent:
    """Test cases for the event envelope."""

    def test_eventbridge_entry(self):
        """Test conversion to a PutEvents entry."""
        event = user_event()

        entry = event.to_eventbridge_entry("orders-bus")

        assert entry["Source"] == "service.users"
        assert entry["DetailType"] == "user.updated"
        assert entry["EventBusName"] == "orders-bus"
        assert json.loads(entry["Detail"]) == {"id": event.id, "correlationId": "corr-1", "data": {"userId": "u1"}}

    def test_generated_ids(self):
        """Test generated event ids and timestamps."""
        first = create_event("order.created", "service.orders", {})
        second = create_event("order.created", "service.orders", {})

        assert first.id != second.id
        assert first.correlation_id
        assert first.timestamp.tzinfo is not None

    def test_event_type_is_required(self):
        """Test an empty event type is rejected."""
        with pytest.raises(ValueError):
            DomainEvent(event_type="", source="service.users")


class TestEventPublisher:
    """Test cases for EventPublisher."""

    def test_publish_success(self, publisher, clients, sleeps):
        """Test a successful publish on the first attempt."""
        clients.events.put_events.return_value = published()

        result = publisher.publish(user_event())

        assert result.success is True
        assert result.attempts == 1
        assert sleeps == []
        entries = clients.events.put_events.call_args.kwargs["Entries"]
        assert entries[0]["EventBusName"] == "orders-bus"

    def test_transient_errors_are_retried_with_backoff(self, publisher, clients, sleeps):
        """Test transient errors are retried with backoff."""
        clients.events.put_events.side_effect = [
            client_error("ThrottlingException"),
            EndpointConnectionError(endpoint_url="https://events.us-east-1.amazonaws.com"),
            published(),
        ]

        result = publisher.publish(user_event())

        assert result.success is True
        assert result.attempts == 3
        assert sleeps == [pytest.approx(0.1), pytest.approx(0.2)]

    def test_gives_up_after_max_attempts(self, publisher, clients, sleeps):
        """Test gives up after max attempts."""
        clients.events.put_events.side_effect = client_error("InternalException")

        result = publisher.publish(user_event())

        assert result.success is False
        assert result.attempts == 3
        assert "after 3 attempts" in result.error_message
        assert clients.events.put_events.call_count == 3
        assert len(sleeps) == 2

    def test_non_retryable_error_fails_immediately(self, publisher, clients, sleeps):
        """Test non retryable error fails immediately."""
        clients.events.put_events.side_effect = client_error("AccessDeniedException")

        result = publisher.publish(user_event())

        assert result.success is False
        assert result.attempts == 1
        assert "AccessDeniedException" in result.error_message
        assert sleeps == []

    def test_rejected_entry(self, publisher, clients):
        """Test an entry rejected by EventBridge is reported."""
        clients.events.put_events.return_value = published(
            entries=[{"ErrorCode": "MalformedDetail", "ErrorMessage": "Detail is malformed"}], failed=1)

        result = publisher.publish(user_event())

        assert result.success is False
        assert result.error_message == "Detail is malformed"

    def test_publish_or_raise(self, publisher, clients):
        """Test publish_or_raise raises a 502 error."""
        clients.events.put_events.side_effect = client_error("ValidationException")

        with pytest.raises(ExternalServiceError) as exc_info:
            publisher.publish_or_raise(user_event())

        assert exc_info.value.status_code == 502

    def test_batch_is_chunked(self, publisher, clients):
        """Test batches are sent in chunks of 10 in order."""
        clients.events.put_events.side_effect = lambda Entries: published(
            entries=[{"EventId": f"evt-{i}"} for i in range(len(Entries))])
        events = [create_event("order.created", "service.orders", {"n": n}) for n in range(25)]

        result = publisher.publish_batch(events)

        sizes = [len(call.kwargs["Entries"]) for call in clients.events.put_events.call_args_list]
        assert sizes == [10, 10, 5]
        assert result.successful_count == 25
        assert [r.event_id for r in result.results] == [e.id for e in events]

    def test_batch_partial_failure(self, publisher, clients):
        """Test per-entry failures in a batch."""
        clients.events.put_events.return_value = published(
            entries=[{"EventId": "evt-1"}, {"ErrorCode": "InternalFailure", "ErrorMessage": "try again"}], failed=1)

        result = publisher.publish_batch([user_event(n=1), user_event(n=2)])

        assert result.successful_count == 1
        assert result.failed_count == 1
        assert result.results[1].error_message == "try again"

    def test_bus_defaults_to_environment(self, clients, env):
        """Test bus defaults to environment."""
        env(EVENT_BUS_NAME="payments-bus")

        assert EventPublisher(clients).event_bus_name == "payments-bus"


class TestEventPublisherWithMoto:
    """Publishing against a mocked EventBridge bus."""

    def test_publish_to_bus(self, event_bus):
        """Test publishing to a mocked bus."""
        publisher = EventPublisher(AwsClients(region_name="us-east-1"), event_bus_name=event_bus)

        result = publisher.publish(user_event())

        assert result.success is True

