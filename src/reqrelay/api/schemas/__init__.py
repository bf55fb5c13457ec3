"""Pydantic schemas for the ReqRelay API."""

from reqrelay.api.schemas.requests import Envelope, RequestCreate, RequestUpdate

__all__ = [
    "Envelope",
    "RequestCreate",
    "RequestUpdate",
]
