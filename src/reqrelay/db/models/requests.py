"""Request record model.

A request is identified by its unique name; the payload is opaque JSON
owned by the producers and consumers of the events.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import BigInteger, Identity, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from reqrelay.db.models.base import Base, TimestampTZ

DEFAULT_STATUS = "pending"
NAME_MAX_LENGTH = 255


class Request(Base):
    """Persisted request record.

    The identity column only provides insertion order for listing; the
    name is the public key and never changes after creation.
    """

    __tablename__ = "requests"

    id: Mapped[int] = mapped_column(BigInteger, Identity(), primary_key=True)
    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    status: Mapped[str] = mapped_column(String(100), nullable=False, default=DEFAULT_STATUS)
    created_at: Mapped[TimestampTZ]
    updated_at: Mapped[TimestampTZ]

    __table_args__ = (UniqueConstraint("name", name="uq_requests_name"),)

    # Fetch server-side timestamps with RETURNING on insert
    __mapper_args__ = {"eager_defaults": True}

    def to_dict(self) -> dict[str, Any]:
        """Serialize the record for API responses and event snapshots."""
        return {
            "name": self.name,
            "payload": self.payload,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Request name={self.name!r} status={self.status!r}>"
