"""ReqRelay - request API with broker-backed lifecycle event relay.

Persists named request records in PostgreSQL and publishes every
create/update/delete into a RabbitMQ fan-out topology that feeds a worker
queue, an archive queue and a TTL-based retry loop.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
