"""ReqRelay API middleware components.

- Request ID tracking for log correlation
- Envelope error responses
- Static API key authentication
"""

from reqrelay.api.middleware.auth import API_KEY_HEADER, require_api_key
from reqrelay.api.middleware.errors import (
    APIError,
    AuthenticationError,
    ErrorHandlerMiddleware,
    build_envelope_response,
    register_exception_handlers,
)
from reqrelay.api.middleware.request_id import RequestIDMiddleware

__all__ = [
    "API_KEY_HEADER",
    "APIError",
    "AuthenticationError",
    "ErrorHandlerMiddleware",
    "RequestIDMiddleware",
    "build_envelope_response",
    "register_exception_handlers",
    "require_api_key",
]
