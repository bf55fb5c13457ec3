"""Request lifecycle events and their wire encoding.

The body of every broker message is a UTF-8 JSON object:

    {
        "event_id": "0d6f...",            # UUID4, also the AMQP message_id
        "kind": "created",                # created | updated | deleted
        "name": "job-1",                  # request name
        "payload": {...},                 # record payload at event time
        "status": "pending",              # record status at event time
        "occurred_at": "2026-10-18T...",  # ISO-8601, UTC
    }

Keys are sorted so the encoding is byte-stable for a given event. Consumers
decode with RequestEvent.from_body().
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from aio_pika import DeliveryMode, Message

if TYPE_CHECKING:
    from reqrelay.db.models.requests import Request

CONTENT_TYPE = "application/json"
CONTENT_ENCODING = "utf-8"


class EventKind(str, Enum):
    """Lifecycle transition that produced the event."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class RequestEvent:
    """Snapshot of a request at the moment it was created, updated or deleted."""

    name: str
    kind: EventKind
    payload: dict[str, Any]
    status: str | None = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    event_id: uuid.UUID = field(default_factory=uuid.uuid4)

    @classmethod
    def _from_record(cls, kind: EventKind, record: Request) -> RequestEvent:
        return cls(
            name=record.name,
            kind=kind,
            payload=dict(record.payload or {}),
            status=record.status,
        )

    @classmethod
    def created(cls, record: Request) -> RequestEvent:
        return cls._from_record(EventKind.CREATED, record)

    @classmethod
    def updated(cls, record: Request) -> RequestEvent:
        return cls._from_record(EventKind.UPDATED, record)

    @classmethod
    def deleted(cls, record: Request) -> RequestEvent:
        """Event for a deleted record, carrying its last stored state."""
        return cls._from_record(EventKind.DELETED, record)

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": str(self.event_id),
            "kind": self.kind.value,
            "name": self.name,
            "payload": self.payload,
            "status": self.status,
            "occurred_at": self.occurred_at.isoformat(),
        }

    def to_body(self) -> bytes:
        """Encode the event as the broker message body."""
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":")).encode(
            CONTENT_ENCODING
        )

    @classmethod
    def from_body(cls, body: bytes) -> RequestEvent:
        """Decode a message body produced by to_body().

        Raises:
            ValueError: If the body is not a valid event document.
        """
        try:
            data = json.loads(body.decode(CONTENT_ENCODING))
            payload = data["payload"]
            if not isinstance(payload, dict):
                msg = f"payload must be an object, got {type(payload).__name__}"
                raise TypeError(msg)
            return cls(
                name=data["name"],
                kind=EventKind(data["kind"]),
                payload=payload,
                status=data.get("status"),
                occurred_at=datetime.fromisoformat(data["occurred_at"]),
                event_id=uuid.UUID(data["event_id"]),
            )
        except (AttributeError, KeyError, TypeError, UnicodeDecodeError, json.JSONDecodeError) as e:
            msg = f"Invalid event body: {e}"
            raise ValueError(msg) from e

    def to_message(self, app_id: str | None = None) -> Message:
        """Build a persistent AMQP message for this event."""
        return Message(
            self.to_body(),
            content_type=CONTENT_TYPE,
            content_encoding=CONTENT_ENCODING,
            delivery_mode=DeliveryMode.PERSISTENT,
            message_id=str(self.event_id),
            type=self.kind.value,
            timestamp=self.occurred_at,
            app_id=app_id,
        )
