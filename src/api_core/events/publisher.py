"""
EventBridge publisher with retry.

``publish`` never raises for delivery failures; it returns a ``PublishResult``.
Callers that need the failure to abort the request use ``publish_or_raise``,
which raises ``ExternalServiceError`` (502).
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from aws_lambda_powertools.metrics import MetricUnit
from botocore.exceptions import BotoCoreError, ClientError

from api_core.clients import AwsClients
from api_core.config.env_vars import get_router_env_vars
from api_core.errors import ExternalServiceError
from api_core.events.schemas import DomainEvent
from api_core.observability import logger, metrics, tracer

MAX_BATCH_SIZE = 10  # EventBridge PutEvents limit
NON_RETRYABLE_ERRORS = ('ValidationException', 'InvalidParameterValue', 'AccessDeniedException')


class EventPublishError(Exception):
    """Raised internally when every publish attempt fails."""

    def __init__(self, message: str, attempts: int, original_error: Optional[BaseException] = None):
        super().__init__(message)
        self.attempts = attempts
        self.original_error = original_error


@dataclass
class PublishResult:
    """Result of event publishing operation."""

    success: bool
    event_id: Optional[str] = None
    error_message: Optional[str] = None
    attempts: int = 0


@dataclass
class BatchPublishResult:
    """Result of batch event publishing operation."""

    results: List[PublishResult] = field(default_factory=list)

    @property
    def successful_count(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed_count(self) -> int:
        return len(self.results) - self.successful_count


def _error_code(error: BaseException) -> str:
    if isinstance(error, ClientError):
        return error.response.get('Error', {}).get('Code', 'Unknown')
    return type(error).__name__


class EventPublisher:
    """
    Publishes ``DomainEvent`` instances to an EventBridge bus.

    Args:
        clients: Caller-owned AWS client handle
        event_bus_name: Target bus; defaults to EVENT_BUS_NAME
        max_attempts: Total attempts per PutEvents call
        retry_backoff: Initial backoff in seconds, doubled after each attempt
        sleep: Sleep function, replaceable in tests
    """

    def __init__(
        self,
        clients: AwsClients,
        event_bus_name: Optional[str] = None,
        max_attempts: int = 3,
        retry_backoff: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.clients = clients
        self.event_bus_name = event_bus_name or get_router_env_vars().EVENT_BUS_NAME
        self.max_attempts = max_attempts
        self.retry_backoff = retry_backoff
        self.sleep = sleep

    def _put_events(self, entries: List[Dict[str, Any]]) -> Tuple[Dict[str, Any], int]:
        """Call PutEvents, retrying transient failures with exponential backoff; returns (response, attempts)."""
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = self.clients.events.put_events(Entries=entries)
                if attempt > 1:
                    logger.info('Events published after retry', extra={'attempt': attempt})
                return response, attempt
            except (ClientError, BotoCoreError) as e:
                last_error = e
                error_code = _error_code(e)
                logger.warning('Event publish attempt failed', extra={
                    'attempt': attempt,
                    'error_code': error_code,
                    'error': str(e),
                })
                if error_code in NON_RETRYABLE_ERRORS:
                    raise EventPublishError(f'Event publish rejected: {error_code}', attempt, e)
                if attempt < self.max_attempts:
                    self.sleep(self.retry_backoff * (2 ** (attempt - 1)))

        raise EventPublishError(
            f'Failed to publish events after {self.max_attempts} attempts',
            self.max_attempts,
            last_error,
        )

    @tracer.capture_method(capture_response=False)
    def publish(self, event: DomainEvent) -> PublishResult:
        try:
            response, attempts = self._put_events([event.to_eventbridge_entry(self.event_bus_name)])
        except EventPublishError as e:
            metrics.add_metric(name='EventPublishFailed', unit=MetricUnit.Count, value=1)
            logger.error('Failed to publish event', extra={
                'event_type': event.event_type,
                'correlation_id': event.correlation_id,
                'error': str(e),
            })
            return PublishResult(success=False, event_id=event.id, error_message=str(e), attempts=e.attempts)

        if response.get('FailedEntryCount', 0) > 0:
            entry = (response.get('Entries') or [{}])[0]
            error_message = entry.get('ErrorMessage') or entry.get('ErrorCode') or 'Unknown error'
            metrics.add_metric(name='EventPublishFailed', unit=MetricUnit.Count, value=1)
            logger.error('Event rejected by EventBridge', extra={
                'event_type': event.event_type,
                'error_message': error_message,
            })
            return PublishResult(success=False, event_id=event.id, error_message=error_message, attempts=attempts)

        metrics.add_metric(name='EventPublishSuccess', unit=MetricUnit.Count, value=1)
        logger.info('Event published successfully', extra={
            'event_type': event.event_type,
            'source': event.source,
            'correlation_id': event.correlation_id,
        })
        return PublishResult(success=True, event_id=event.id, attempts=attempts)

    def publish_or_raise(self, event: DomainEvent) -> PublishResult:
        result = self.publish(event)
        if not result.success:
            raise ExternalServiceError('EventBridge', result.error_message or 'Failed to publish event')
        return result

    @tracer.capture_method(capture_response=False)
    def publish_batch(self, events: List[DomainEvent]) -> BatchPublishResult:
        """Publish events in chunks of 10; one result per event, in order."""
        batch_result = BatchPublishResult()

        for start in range(0, len(events), MAX_BATCH_SIZE):
            chunk = events[start:start + MAX_BATCH_SIZE]
            entries = [event.to_eventbridge_entry(self.event_bus_name) for event in chunk]

            try:
                response, attempts = self._put_events(entries)
            except EventPublishError as e:
                batch_result.results.extend(
                    PublishResult(success=False, event_id=event.id, error_message=str(e), attempts=e.attempts)
                    for event in chunk
                )
                continue

            response_entries = response.get('Entries') or [{} for _ in chunk]
            for event, entry in zip(chunk, response_entries):
                if entry.get('ErrorCode'):
                    batch_result.results.append(PublishResult(
                        success=False,
                        event_id=event.id,
                        error_message=entry.get('ErrorMessage') or entry['ErrorCode'],
                        attempts=attempts,
                    ))
                else:
                    batch_result.results.append(PublishResult(success=True, event_id=event.id, attempts=attempts))

        metrics.add_metric(name='EventPublishSuccess', unit=MetricUnit.Count, value=batch_result.successful_count)
        if batch_result.failed_count:
            metrics.add_metric(name='EventPublishFailed', unit=MetricUnit.Count, value=batch_result.failed_count)
            logger.error('Some events failed to publish', extra={
                'total_events': len(events),
                'failed_events': batch_result.failed_count,
            })

        return batch_result
