"""Pydantic schemas for the /requests endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RequestCreate(BaseModel):
    """Body of POST /requests."""

    name: str = Field(..., min_length=1, max_length=255, description="Unique request name")
    payload: dict[str, Any] = Field(default_factory=dict, description="Opaque request payload")
    status: str | None = Field(None, max_length=100, description="Initial status")

    model_config = ConfigDict(extra="forbid")


class RequestUpdate(BaseModel):
    """Body of PUT /requests/{name}. The payload is replaced, not merged."""

    payload: dict[str, Any] = Field(..., description="New request payload")
    status: str | None = Field(None, max_length=100, description="New status")

    model_config = ConfigDict(extra="forbid")


class Envelope(BaseModel):
    """Response envelope used by every /requests endpoint."""

    success: bool
    message: str
    data: Any = None
