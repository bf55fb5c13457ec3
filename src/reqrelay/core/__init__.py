"""ReqRelay core module.

Shared components used across the API and the broker layer:
- Configuration management
- Error taxonomy
"""

from reqrelay.core.config import (
    ConfigValidationError,
    DatabaseSettings,
    Environment,
    RabbitMQSettings,
    Settings,
)
from reqrelay.core.errors import (
    ConflictError,
    DependencyUnavailableError,
    EventPublishError,
    NotFoundError,
    ProvisioningFailure,
    ReqRelayError,
    RequestValidationError,
)
from reqrelay.core.settings import (
    clear_settings_cache,
    get_settings,
    get_settings_safe,
)

__all__ = [
    "ConfigValidationError",
    "ConflictError",
    "DatabaseSettings",
    "DependencyUnavailableError",
    "Environment",
    "EventPublishError",
    "NotFoundError",
    "ProvisioningFailure",
    "RabbitMQSettings",
    "ReqRelayError",
    "RequestValidationError",
    "Settings",
    "clear_settings_cache",
    "get_settings",
    "get_settings_safe",
]
