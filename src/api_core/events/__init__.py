from api_core.events.publisher import BatchPublishResult, EventPublisher, PublishResult
from api_core.events.schemas import DomainEvent, create_event

__all__ = [
    'BatchPublishResult',
    'DomainEvent',
    'EventPublisher',
    'PublishResult',
    'create_event',
]
