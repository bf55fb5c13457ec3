"""SQLAlchemy ORM models for ReqRelay.

- base: Common metadata and column types
- requests: The request record
"""

from reqrelay.db.models.base import Base, metadata
from reqrelay.db.models.requests import Request

__all__ = [
    "Base",
    "Request",
    "metadata",
]
