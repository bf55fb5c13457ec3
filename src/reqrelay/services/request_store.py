"""PostgreSQL-backed store for request records.

Mutating methods flush but do not commit; the caller owns the transaction
and commits before publishing the matching event.

Uniqueness of names is enforced by the uq_requests_name constraint, so two
concurrent creates with the same name resolve in the database: one insert
succeeds and the other gets ConflictError. Concurrent update/delete on the
same name is last-writer-wins; a row deleted between lookup and flush
surfaces as NotFoundError.

Usage:
    async with database.session() as session:
        store = RequestStore(session)
        record = await store.create("job-1", {"image": "nginx"})
        await session.commit()
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from reqrelay.core.errors import (
    ConflictError,
    DependencyUnavailableError,
    NotFoundError,
    RequestValidationError,
)
from reqrelay.db.models.requests import DEFAULT_STATUS, NAME_MAX_LENGTH, Request

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._:-]*$")


def validate_name(name: Any) -> str:
    """Check a request name.

    Raises:
        RequestValidationError: If the name is empty, too long or has
            characters outside [A-Za-z0-9._:-] (or starts with punctuation).
    """
    if not isinstance(name, str) or not name:
        raise RequestValidationError("Request name is required", field="name")
    if len(name) > NAME_MAX_LENGTH:
        raise RequestValidationError(
            f"Request name must be at most {NAME_MAX_LENGTH} characters", field="name"
        )
    if not NAME_PATTERN.match(name):
        raise RequestValidationError(
            "Request name must start with a letter or digit and contain only "
            "letters, digits, '.', '_', ':' or '-'",
            field="name",
        )
    return name


def validate_payload(payload: Any) -> dict[str, Any]:
    """Check that the payload is a JSON object.

    Raises:
        RequestValidationError: If the payload is not a dict.
    """
    if not isinstance(payload, dict):
        raise RequestValidationError("Request payload must be a JSON object", field="payload")
    return payload


class RequestStore:
    """CRUD operations over persisted Request records.

    Attributes:
        session: SQLAlchemy async session for database operations.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        name: str,
        payload: dict[str, Any],
        status: str | None = None,
    ) -> Request:
        """Persist a new request.

        Returns:
            The new record with server-assigned timestamps.

        Raises:
            RequestValidationError: If name or payload is malformed.
            ConflictError: If a request with this name already exists.
            DependencyUnavailableError: If the database cannot be reached.
        """
        validate_name(name)
        validate_payload(payload)

        record = Request(name=name, payload=payload, status=status or DEFAULT_STATUS)
        self.session.add(record)
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            logger.info("Request create rejected, name exists: name=%s", name)
            raise ConflictError(name) from e
        except (SQLAlchemyError, OSError) as e:
            await self.session.rollback()
            raise self._unavailable("create", e) from e

        logger.info("Request created: name=%s", name)
        return record

    async def get(self, name: str) -> Request:
        """Fetch a request by name.

        Raises:
            NotFoundError: If no request has this name.
            DependencyUnavailableError: If the database cannot be reached.
        """
        record = await self._find(name)
        if record is None:
            raise NotFoundError(name)
        return record

    async def list(self) -> list[Request]:
        """All requests in insertion order."""
        try:
            result = await self.session.execute(select(Request).order_by(Request.id))
        except (SQLAlchemyError, OSError) as e:
            raise self._unavailable("list", e) from e
        return list(result.scalars().all())

    async def update(
        self,
        name: str,
        payload: dict[str, Any],
        status: str | None = None,
    ) -> Request:
        """Replace the payload (and optionally the status) of a request.

        Raises:
            RequestValidationError: If the payload is malformed.
            NotFoundError: If no request has this name.
            DependencyUnavailableError: If the database cannot be reached.
        """
        validate_payload(payload)
        record = await self.get(name)

        record.payload = payload
        if status is not None:
            record.status = status
        record.updated_at = datetime.now(UTC)

        try:
            await self.session.flush()
        except StaleDataError as e:
            # Deleted by another request after get().
            await self.session.rollback()
            raise NotFoundError(name) from e
        except (SQLAlchemyError, OSError) as e:
            await self.session.rollback()
            raise self._unavailable("update", e) from e

        logger.info("Request updated: name=%s", name)
        return record

    async def delete(self, name: str) -> Request:
        """Remove a request.

        Returns:
            The deleted record as it was last stored.

        Raises:
            NotFoundError: If no request has this name.
            DependencyUnavailableError: If the database cannot be reached.
        """
        record = await self.get(name)

        try:
            await self.session.delete(record)
            await self.session.flush()
        except StaleDataError as e:
            await self.session.rollback()
            raise NotFoundError(name) from e
        except (SQLAlchemyError, OSError) as e:
            await self.session.rollback()
            raise self._unavailable("delete", e) from e

        logger.info("Request deleted: name=%s", name)
        return record

    async def _find(self, name: str) -> Request | None:
        try:
            result = await self.session.execute(select(Request).where(Request.name == name))
        except (SQLAlchemyError, OSError) as e:
            raise self._unavailable("get", e) from e
        return result.scalar_one_or_none()

    @staticmethod
    def _unavailable(operation: str, error: Exception) -> DependencyUnavailableError:
        logger.error("Database error during %s: %s", operation, error)
        return DependencyUnavailableError("database", f"Database error during {operation}")
