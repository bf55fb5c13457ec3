"""Startup and shutdown of the server's long-lived resources.

Startup order is fixed and any failure aborts startup:

1. connect to the database
2. apply migrations
3. connect to the broker
4. provision the exchange/queue topology
5. build the event publisher

The handles are stored on app.state for the routers. Shutdown closes the
broker connection first, then the database engine.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from reqrelay.db import Database
from reqrelay.db.migrate import run_migrations
from reqrelay.services.broker import BrokerConnection
from reqrelay.services.publisher import EventPublisher
from reqrelay.services.topology import TopologyProvisioner

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    from reqrelay.core.settings import get_settings

    settings = getattr(app.state, "settings", None) or get_settings()
    app.state.settings = settings

    database = Database(settings.database)
    broker = BrokerConnection(settings.rabbitmq.url, settings.rabbitmq.connect_timeout)

    try:
        await database.connect()
        await asyncio.to_thread(run_migrations, settings)
        await broker.connect()
        topology = await TopologyProvisioner(broker.channel, settings.rabbitmq).provision()
    except Exception as e:
        logger.critical("Startup failed: %s", e)
        await broker.close()
        await database.close()
        raise

    app.state.database = database
    app.state.broker = broker
    app.state.topology = topology
    app.state.publisher = EventPublisher(topology.primary_exchange, app_id=settings.app_name)
    logger.info("%s ready (environment=%s)", settings.app_name, settings.environment.value)

    try:
        yield
    finally:
        logger.info("Shutting down")
        app.state.publisher = None
        await broker.close()
        await database.close()
