"""Domain event envelope published to EventBridge."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from api_core.responses import to_json


class DomainEvent(BaseModel):
    """
    A domain event.

    ``event_type`` becomes the EventBridge ``DetailType`` (e.g. ``user.updated``),
    ``source`` the ``Source`` (e.g. ``service.users``). The ``Detail`` carries
    the data together with the correlation id and event id.
    """

    model_config = ConfigDict(frozen=True)

    event_type: str = Field(..., min_length=1)
    source: str = Field(..., min_length=1)
    data: Dict[str, Any] = Field(default_factory=dict)
    id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    correlation_id: str = Field(default_factory=lambda: str(uuid4()))

    def to_eventbridge_entry(self, event_bus_name: str) -> Dict[str, Any]:
        """Convert to EventBridge PutEvents entry format."""
        return {
            'Source': self.source,
            'DetailType': self.event_type,
            'Detail': to_json({
                'id': self.id,
                'correlationId': self.correlation_id,
                'data': self.data,
            }),
            'EventBusName': event_bus_name,
            'Time': self.timestamp,
        }


def create_event(
    event_type: str,
    source: str,
    data: Dict[str, Any],
    correlation_id: Optional[str] = None,
) -> DomainEvent:
    if correlation_id:
        return DomainEvent(event_type=event_type, source=source, data=data, correlation_id=correlation_id)
    return DomainEvent(event_type=event_type, source=source, data=data)
