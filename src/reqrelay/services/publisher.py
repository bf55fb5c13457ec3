"""Event publisher for request lifecycle events.

Publishes to the primary fan-out exchange over the shared channel. Publishes
are serialized with an asyncio.Lock because the channel is shared by every
in-flight HTTP request; with publisher confirms enabled, publish() returns
only after the broker has acknowledged the message.

Publishing happens after the store mutation is committed. A failure here
leaves the store updated and the event lost; callers log it and report it,
they do not roll back.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from reqrelay.core.errors import EventPublishError
from reqrelay.services.broker import BROKER_ERRORS

if TYPE_CHECKING:
    from aio_pika.abc import AbstractExchange

    from reqrelay.services.events import RequestEvent

logger = logging.getLogger(__name__)


class EventPublisher:
    """Publishes RequestEvents to the primary exchange.

    Attributes:
        exchange: The declared primary fan-out exchange.
        app_id: Value for the AMQP app_id property.
        timeout: Seconds to wait for the broker confirm (None waits forever).
    """

    def __init__(
        self,
        exchange: AbstractExchange,
        app_id: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.exchange = exchange
        self.app_id = app_id
        self.timeout = timeout
        self._lock = asyncio.Lock()

    async def publish(self, event: RequestEvent) -> None:
        """Publish one event and wait for the broker confirm.

        The routing key is the request name; the fan-out exchange ignores it
        but it shows up in broker tracing.

        Raises:
            EventPublishError: If the broker rejects or does not confirm the message.
        """
        message = event.to_message(app_id=self.app_id)

        async with self._lock:
            try:
                await self.exchange.publish(
                    message,
                    routing_key=event.name,
                    timeout=self.timeout,
                )
            except (*BROKER_ERRORS, RuntimeError) as e:
                logger.error(
                    "Event publish failed: event_id=%s, kind=%s, name=%s, error=%s",
                    event.event_id,
                    event.kind.value,
                    event.name,
                    e,
                )
                raise EventPublishError(f"Failed to publish {event.kind.value} event: {e}") from e

        logger.info(
            "Event published: event_id=%s, kind=%s, name=%s",
            event.event_id,
            event.kind.value,
            event.name,
        )
