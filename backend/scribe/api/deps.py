"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from scribe.models.schema import ComponentSchema
from scribe.services.engine import ComponentEngine


def get_component_engine(request: Request) -> ComponentEngine:
    """Return the engine created during application startup."""

    return request.app.state.component_engine


def get_component_schema(request: Request) -> ComponentSchema:
    """Return the schema this server was created with.

    It is handed to the engine explicitly on every call; the engine never
    remembers it.
    """

    return request.app.state.component_schema
