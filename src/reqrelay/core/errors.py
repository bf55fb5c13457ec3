"""Domain error taxonomy shared by the store, the broker layer and the API.

The API layer maps these onto HTTP status codes; nothing below this module
knows about HTTP.
"""

from __future__ import annotations


class ReqRelayError(Exception):
    """Base exception for ReqRelay operations."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConflictError(ReqRelayError):
    """Raised when a request with the same name already exists."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Request already exists: {name}")


class NotFoundError(ReqRelayError):
    """Raised when no request with the given name exists."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Request not found: {name}")


class RequestValidationError(ReqRelayError):
    """Raised for malformed names or payloads."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class DependencyUnavailableError(ReqRelayError):
    """Raised when the database or the broker cannot be reached."""

    def __init__(self, dependency: str, message: str) -> None:
        self.dependency = dependency
        super().__init__(message)


class EventPublishError(DependencyUnavailableError):
    """Raised when the broker did not confirm a publish."""

    def __init__(self, message: str) -> None:
        super().__init__("rabbitmq", message)


class ProvisioningFailure(ReqRelayError):  # noqa: N818 - name mirrors the broker setup phase
    """Raised when declaring the broker topology fails.

    Fatal at startup: the service must not accept traffic with a partially
    built topology.
    """

    def __init__(self, step: str, message: str) -> None:
        self.step = step
        super().__init__(f"Topology provisioning failed at {step}: {message}")
