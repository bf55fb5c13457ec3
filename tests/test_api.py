"""Tests for ReqRelay API application structure.

Tests cover:
- App factory (create_app)
- Request ID middleware
- Envelope error responses and status mapping
- OpenAPI documentation endpoints
"""

import json
import uuid

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from reqrelay.api import create_app
from reqrelay.api.middleware.errors import (
    APIError,
    AuthenticationError,
    build_envelope_response,
    status_for_error,
)
from reqrelay.api.middleware.request_id import REQUEST_ID_HEADER, get_request_id
from reqrelay.core.errors import (
    ConflictError,
    DependencyUnavailableError,
    EventPublishError,
    NotFoundError,
    ProvisioningFailure,
    RequestValidationError,
)


class TestAppFactory:
    """Tests for the create_app factory function."""

    def test_create_app_returns_fastapi_instance(self):
        assert isinstance(create_app(), FastAPI)

    def test_create_app_sets_title(self):
        assert create_app().title == "ReqRelay API"

    def test_create_app_sets_version(self, settings):
        app = create_app(settings.model_copy(update={"app_version": "9.9.9"}))
        assert app.version == "9.9.9"

    def test_create_app_stores_settings_in_state(self, settings):
        app = create_app(settings)
        assert app.state.settings is settings
        assert app.state.publisher is None

    def test_routes_registered(self):
        paths = create_app().openapi()["paths"]
        assert "/requests" in paths
        assert "/requests/{name}" in paths
        assert "/health" in paths


class TestRequestIDMiddleware:
    """Tests for X-Request-ID handling."""

    @pytest.mark.asyncio
    async def test_response_includes_request_id_header(self, api_client, auth_headers):
        response = await api_client.get("/requests", headers=auth_headers)
        assert REQUEST_ID_HEADER in response.headers

    @pytest.mark.asyncio
    async def test_provided_request_id_is_preserved(self, api_client, auth_headers):
        response = await api_client.get(
            "/requests", headers={**auth_headers, REQUEST_ID_HEADER: "trace-123"}
        )
        assert response.headers[REQUEST_ID_HEADER] == "trace-123"

    @pytest.mark.asyncio
    async def test_generated_request_id_is_uuid(self, api_client, auth_headers):
        response = await api_client.get("/requests", headers=auth_headers)
        uuid.UUID(response.headers[REQUEST_ID_HEADER])

    @pytest.mark.asyncio
    async def test_error_responses_carry_request_id(self, api_client):
        response = await api_client.get("/requests")
        assert response.status_code == 401
        assert REQUEST_ID_HEADER in response.headers
        assert set(response.json()) == {"success", "message", "data"}

    def test_get_request_id_returns_none_outside_request(self):
        assert get_request_id() is None


class TestErrorResponses:
    """Tests for envelope building and status mapping."""

    def test_build_envelope_response_success(self):
        response = build_envelope_response(201, "Request created", {"name": "job-1"})
        assert response.status_code == 201
        assert json.loads(response.body) == {
            "success": True,
            "message": "Request created",
            "data": {"name": "job-1"},
        }

    def test_build_envelope_response_failure(self):
        response = build_envelope_response(409, "Request already exists: job-1")
        assert json.loads(response.body) == {
            "success": False,
            "message": "Request already exists: job-1",
            "data": None,
        }

    def test_api_error_defaults(self):
        error = APIError("bad")
        assert error.status_code == 400
        assert error.data is None

    def test_authentication_error(self):
        error = AuthenticationError()
        assert error.status_code == 401
        assert "API key" in error.message

    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (ConflictError("job-1"), 409),
            (NotFoundError("job-1"), 404),
            (RequestValidationError("bad"), 400),
            (DependencyUnavailableError("database", "down"), 503),
            (EventPublishError("no confirm"), 503),
            (ProvisioningFailure("declare queue WorkerQueue", "boom"), 500),
        ],
    )
    def test_status_for_error(self, error, expected):
        assert status_for_error(error) == expected


class TestUnexpectedErrors:
    """Tests for the catch-all error middleware."""

    @pytest.mark.asyncio
    async def test_unexpected_exception_returns_500_envelope(
        self, api_client, auth_headers, mock_store
    ):
        mock_store.list.side_effect = KeyError("boom")

        response = await api_client.get("/requests", headers=auth_headers)

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "message": "An internal error occurred",
            "data": None,
        }

    @pytest.mark.asyncio
    async def test_unknown_route_returns_404_envelope(self, api_client):
        response = await api_client.get("/nonexistent")
        assert response.status_code == 404
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_wrong_method_returns_405_envelope(self, api_client, auth_headers):
        response = await api_client.patch("/requests/job-1", headers=auth_headers)
        assert response.status_code == 405
        assert response.json()["success"] is False


class TestOpenAPIDocumentation:
    """Tests for OpenAPI documentation endpoints."""

    @pytest.mark.asyncio
    async def test_openapi_json_available(self, settings):
        app = create_app(settings, lifespan_enabled=False)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/openapi.json")

        assert response.status_code == 200
        schema = response.json()
        assert schema["info"]["title"] == "ReqRelay API"
        assert "/requests/{name}" in schema["paths"]
        assert "X-API-KEY" in json.dumps(schema["components"]["securitySchemes"])
