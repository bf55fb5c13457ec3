"""ReqRelay service layer.

- BrokerConnection: process-wide RabbitMQ connection and channel
- TopologyProvisioner: declares the fan-out + delayed-retry topology
- EventPublisher / RequestEvent: lifecycle events onto the primary exchange
- RequestStore: CRUD over persisted request records
- run_health_check: database, broker and migration-path checks
"""

from reqrelay.services.broker import BrokerConnection
from reqrelay.services.events import EventKind, RequestEvent
from reqrelay.services.health import HealthStatus, run_health_check
from reqrelay.services.publisher import EventPublisher
from reqrelay.services.request_store import RequestStore
from reqrelay.services.topology import Topology, TopologyProvisioner

__all__ = [
    "BrokerConnection",
    "EventKind",
    "EventPublisher",
    "HealthStatus",
    "RequestEvent",
    "RequestStore",
    "Topology",
    "TopologyProvisioner",
    "run_health_check",
]
