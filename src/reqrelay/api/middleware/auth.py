"""Static API key authentication.

Every /requests endpoint requires the X-API-KEY header to match the
configured token. The check runs as a router-level dependency, so it is
resolved before the database session: a rejected request never touches
the store.
"""

from __future__ import annotations

import hmac
import logging

from fastapi import Request, Security
from fastapi.security import APIKeyHeader

from reqrelay.api.middleware.errors import AuthenticationError

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-KEY"

# Header scheme for OpenAPI docs; the check itself is done below
api_key_scheme = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


def _get_expected_token(request: Request) -> str:
    from reqrelay.core.settings import get_settings

    settings = getattr(request.app.state, "settings", None) or get_settings()
    return settings.api_token.get_secret_value()


async def require_api_key(
    request: Request,
    api_key: str | None = Security(api_key_scheme),
) -> None:
    """Reject the request unless X-API-KEY matches the configured token.

    Raises:
        AuthenticationError: If the header is missing or does not match.
    """
    expected = _get_expected_token(request)
    if (
        not expected
        or api_key is None
        or not hmac.compare_digest(api_key.encode(), expected.encode())
    ):
        client = request.client.host if request.client else "unknown"
        logger.warning(
            "Rejected request with missing or invalid API key: %s %s from %s",
            request.method,
            request.url.path,
            client,
        )
        raise AuthenticationError
