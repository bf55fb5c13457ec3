"""ReqRelay API routers.

- /requests: authenticated CRUD over named requests
- /health: dependency health report
"""

from reqrelay.api.routers.health import router as health_router
from reqrelay.api.routers.requests import router as requests_router

__all__ = [
    "health_router",
    "requests_router",
]
