"""RabbitMQ topology provisioning.

Declares the fan-out + delayed-retry topology that the external worker and
archiver consume from:

    PrimaryExchange (fanout) --> WorkerQueue  --(dead-letter)--> RetryExchange
                             +-> ArchiveQueue                         |
                                                                      v
    PrimaryExchange <--(dead-letter after TTL)-- RetryQueue <---------+

Every published event lands on both the worker queue and the archive queue.
A message the worker rejects is dead-lettered into the retry exchange and
parked in the retry queue until its TTL expires; it is then dead-lettered
back into the primary exchange and delivered to the worker and the archive
again. There is exactly one hop and no retry counter, so a message that
fails again simply goes around the loop again.

All declarations are durable and idempotent: running provision() against an
already-provisioned broker is a no-op. A declaration whose arguments differ
from the existing entity is rejected by the broker (PRECONDITION_FAILED) and
surfaces as ProvisioningFailure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from aio_pika import ExchangeType

from reqrelay.core.errors import ProvisioningFailure
from reqrelay.services.broker import BROKER_ERRORS

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from aio_pika.abc import AbstractChannel, AbstractExchange, AbstractQueue

    from reqrelay.core.config import RabbitMQSettings

logger = logging.getLogger(__name__)

DEAD_LETTER_EXCHANGE_ARG = "x-dead-letter-exchange"
MESSAGE_TTL_ARG = "x-message-ttl"


@dataclass(frozen=True)
class Topology:
    """Handles to the declared exchanges and queues."""

    primary_exchange: AbstractExchange
    retry_exchange: AbstractExchange
    worker_queue: AbstractQueue
    retry_queue: AbstractQueue
    archive_queue: AbstractQueue


def build_queue_arguments(settings: RabbitMQSettings) -> dict[str, dict[str, Any] | None]:
    """Queue declaration arguments keyed by queue name.

    Args:
        settings: Broker settings holding entity names and the retry delay.

    Returns:
        Mapping of queue name to its x-arguments (None for the archive queue).
    """
    return {
        settings.worker_queue: {
            DEAD_LETTER_EXCHANGE_ARG: settings.retry_exchange,
        },
        settings.retry_queue: {
            DEAD_LETTER_EXCHANGE_ARG: settings.primary_exchange,
            MESSAGE_TTL_ARG: int(settings.retry_delay_ms),
        },
        settings.archive_queue: None,
    }


def build_bindings(settings: RabbitMQSettings) -> list[tuple[str, str]]:
    """(queue, exchange) pairs to bind, in declaration order."""
    return [
        (settings.worker_queue, settings.primary_exchange),
        (settings.archive_queue, settings.primary_exchange),
        (settings.retry_queue, settings.retry_exchange),
    ]


class TopologyProvisioner:
    """Declares exchanges, queues and bindings on a shared channel.

    Example:
        provisioner = TopologyProvisioner(broker.channel, settings.rabbitmq)
        topology = await provisioner.provision()
        publisher = EventPublisher(topology.primary_exchange)
    """

    def __init__(self, channel: AbstractChannel, settings: RabbitMQSettings) -> None:
        self.channel = channel
        self.settings = settings

    async def provision(self) -> Topology:
        """Declare the whole topology in dependency order.

        Returns:
            Topology with handles to every declared entity.

        Raises:
            ProvisioningFailure: On the first declaration or binding that fails.
        """
        s = self.settings
        arguments = build_queue_arguments(s)

        exchanges: dict[str, AbstractExchange] = {}
        for name in (s.primary_exchange, s.retry_exchange):
            exchanges[name] = await self._run(
                f"declare exchange {name}",
                self.channel.declare_exchange(
                    name,
                    ExchangeType.FANOUT,
                    durable=True,
                    auto_delete=False,
                    internal=False,
                ),
            )

        queues: dict[str, AbstractQueue] = {}
        for name in (s.worker_queue, s.retry_queue, s.archive_queue):
            queues[name] = await self._run(
                f"declare queue {name}",
                self.channel.declare_queue(
                    name,
                    durable=True,
                    exclusive=False,
                    auto_delete=False,
                    arguments=arguments[name],
                ),
            )

        for queue_name, exchange_name in build_bindings(s):
            await self._run(
                f"bind {queue_name} to {exchange_name}",
                queues[queue_name].bind(exchanges[exchange_name], routing_key=s.binding_key),
            )

        logger.info(
            "Topology provisioned: exchanges=%s, queues=%s, retry_delay_ms=%d",
            list(exchanges),
            list(queues),
            s.retry_delay_ms,
        )

        return Topology(
            primary_exchange=exchanges[s.primary_exchange],
            retry_exchange=exchanges[s.retry_exchange],
            worker_queue=queues[s.worker_queue],
            retry_queue=queues[s.retry_queue],
            archive_queue=queues[s.archive_queue],
        )

    async def _run(self, step: str, awaitable: Awaitable[Any]) -> Any:
        try:
            result = await awaitable
        except (*BROKER_ERRORS, RuntimeError) as e:
            logger.critical("Topology provisioning failed at %s: %s", step, e)
            raise ProvisioningFailure(step, str(e)) from e
        logger.info("Topology step done: %s", step)
        return result
