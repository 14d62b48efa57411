"""Domain event primitives shared by the marketplace modules.

Events are immutable dataclasses collected on the aggregate while a
service runs and drained into the outbox by the repository before the
transaction commits.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, ClassVar, Dict, List
from uuid import UUID, uuid4


def _json_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_json_value(item) for item in value]
    if isinstance(value, dict):
        return {key: _json_value(val) for key, val in value.items()}
    return value


@dataclass(frozen=True)
class DomainEvent:
    """Base domain event.

    ``event_name`` is the concrete class name and becomes the outbox
    ``event_type``; ``topic`` names the stream the event belongs to.
    """

    topic: ClassVar[str] = "default"

    aggregate_id: UUID
    event_id: UUID = field(default_factory=uuid4)
    occurred_on: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def event_name(self) -> str:
        return type(self).__name__

    def to_payload(self) -> Dict[str, Any]:
        """JSON-safe dict of every field plus ``event_name``."""
        payload = {f.name: _json_value(getattr(self, f.name)) for f in fields(self)}
        payload["event_name"] = self.event_name
        return payload


class DomainEventMixin:
    """Lets a model instance buffer events until they are persisted."""

    _pending_events: List[DomainEvent]

    def add_domain_event(self, event: DomainEvent) -> None:
        self.__dict__.setdefault("_pending_events", []).append(event)

    @property
    def domain_events(self) -> List[DomainEvent]:
        return list(self.__dict__.get("_pending_events", []))

    def pull_domain_events(self) -> List[DomainEvent]:
        """Return the buffered events and forget them."""
        return self.__dict__.pop("_pending_events", [])
