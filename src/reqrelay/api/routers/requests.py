"""Request resource router.

CRUD over named requests. Every mutation is committed to the store first
and then announced on the primary exchange as a RequestEvent.

If the commit succeeds but the publish fails, the change is kept (no
compensating rollback) and the client gets a 503 envelope whose data holds
the stored record, so it can tell the write apart from a write that never
happened.

All endpoints require the X-API-KEY header.
"""

import logging
from collections.abc import AsyncGenerator
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from reqrelay.api.middleware.auth import require_api_key
from reqrelay.api.middleware.errors import APIError, build_envelope_response
from reqrelay.api.schemas.requests import RequestCreate, RequestUpdate
from reqrelay.core.errors import DependencyUnavailableError, EventPublishError
from reqrelay.services.events import RequestEvent
from reqrelay.services.publisher import EventPublisher
from reqrelay.services.request_store import RequestStore

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/requests",
    tags=["requests"],
    dependencies=[Depends(require_api_key)],
    responses={
        400: {"description": "Malformed name or payload"},
        401: {"description": "Missing or invalid API key"},
        503: {"description": "Database or broker unavailable"},
    },
)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Session from the application's Database handle."""
    async with request.app.state.database.session() as session:
        yield session


DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def get_request_store(session: DbSession) -> RequestStore:
    return RequestStore(session)


def get_publisher(request: Request) -> EventPublisher:
    publisher = getattr(request.app.state, "publisher", None)
    if publisher is None:
        raise DependencyUnavailableError("rabbitmq", "Event publisher is not ready")
    return publisher


Store = Annotated[RequestStore, Depends(get_request_store)]
Publisher = Annotated[EventPublisher, Depends(get_publisher)]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _commit(session: AsyncSession, operation: str) -> None:
    try:
        await session.commit()
    except SQLAlchemyError as e:
        logger.error("Commit failed during %s: %s", operation, e)
        raise DependencyUnavailableError("database", f"Database error during {operation}") from e


async def _publish_or_report(
    publisher: EventPublisher,
    event: RequestEvent,
    data: dict[str, Any] | None,
) -> None:
    """Publish an event for an already committed change.

    Raises:
        APIError: 503 with the committed record as data if the publish failed.
    """
    try:
        await publisher.publish(event)
    except EventPublishError as e:
        logger.error(
            "Partial failure: request %s was %s but its event was not published: %s",
            event.name,
            event.kind.value,
            e.message,
        )
        raise APIError(
            f"Request {event.name} was saved but the {event.kind.value} event was not published",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            data=data,
        ) from e


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("")
async def list_requests(store: Store) -> JSONResponse:
    """List all requests in creation order."""
    records = await store.list()
    return build_envelope_response(
        status.HTTP_200_OK,
        "Requests retrieved",
        [record.to_dict() for record in records],
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_request(
    body: RequestCreate,
    session: DbSession,
    store: Store,
    publisher: Publisher,
) -> JSONResponse:
    """Create a request and publish a created event.

    Returns 409 if the name is taken; no event is published in that case.
    """
    record = await store.create(body.name, body.payload, body.status)
    await _commit(session, "create")
    data = record.to_dict()

    await _publish_or_report(publisher, RequestEvent.created(record), data)
    return build_envelope_response(status.HTTP_201_CREATED, "Request created", data)


@router.get("/{name}")
async def get_request(name: str, store: Store) -> JSONResponse:
    record = await store.get(name)
    return build_envelope_response(status.HTTP_200_OK, "Request retrieved", record.to_dict())


@router.put("/{name}")
async def update_request(
    name: str,
    body: RequestUpdate,
    session: DbSession,
    store: Store,
    publisher: Publisher,
) -> JSONResponse:
    """Replace a request's payload and publish an updated event."""
    record = await store.update(name, body.payload, body.status)
    await _commit(session, "update")
    data = record.to_dict()

    await _publish_or_report(publisher, RequestEvent.updated(record), data)
    return build_envelope_response(status.HTTP_200_OK, "Request updated", data)


@router.delete("/{name}")
async def delete_request(
    name: str,
    session: DbSession,
    store: Store,
    publisher: Publisher,
) -> JSONResponse:
    """Delete a request and publish a deleted event carrying its last state."""
    record = await store.delete(name)
    await _commit(session, "delete")
    data = record.to_dict()

    await _publish_or_report(publisher, RequestEvent.deleted(record), data)
    return build_envelope_response(status.HTTP_200_OK, "Request deleted", data)
