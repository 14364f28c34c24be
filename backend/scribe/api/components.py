"""Component endpoints: records and their history."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, status

from scribe.api import deps
from scribe.models.records import RecordPayload
from scribe.models.schema import ComponentSchema
from scribe.services.engine import ComponentEngine

router = APIRouter()


@router.delete(
    "/{component}",
    status_code=status.HTTP_200_OK,
    summary="Remove every current record of a component (history is kept).",
)
async def reset_component(
    component: str,
    engine: ComponentEngine = Depends(deps.get_component_engine),
    schema: ComponentSchema = Depends(deps.get_component_schema),
) -> list[dict[str, Any]]:
    return await engine.reset(component, schema)


@router.post("/{component}", summary="Create a record.")
async def create_record(
    component: str,
    payload: RecordPayload,
    engine: ComponentEngine = Depends(deps.get_component_engine),
    schema: ComponentSchema = Depends(deps.get_component_schema),
) -> list[dict[str, Any]]:
    """Store a new record and return it with its id and UTC timestamps."""

    return await engine.create(component, schema, payload.as_mapping())


@router.get("/{component}/all", summary="List current records in ascending id order.")
async def list_records(
    component: str,
    engine: ComponentEngine = Depends(deps.get_component_engine),
    schema: ComponentSchema = Depends(deps.get_component_schema),
) -> list[dict[str, Any]]:
    return await engine.list_records(component, schema)


@router.get("/{component}/all/history", summary="List archived states of every updated record.")
async def list_history(
    component: str,
    engine: ComponentEngine = Depends(deps.get_component_engine),
    schema: ComponentSchema = Depends(deps.get_component_schema),
) -> list[dict[str, Any]]:
    """One entry per updated record id, each history ordered newest first."""

    return await engine.history(component, schema)


@router.get("/{component}/{record_id}", summary="Fetch one current record.")
async def get_record(
    component: str,
    record_id: int,
    engine: ComponentEngine = Depends(deps.get_component_engine),
    schema: ComponentSchema = Depends(deps.get_component_schema),
) -> list[dict[str, Any]]:
    return await engine.get(component, schema, record_id)


@router.get("/{component}/{record_id}/history", summary="List archived states of one record.")
async def get_record_history(
    component: str,
    record_id: int,
    engine: ComponentEngine = Depends(deps.get_component_engine),
    schema: ComponentSchema = Depends(deps.get_component_schema),
) -> list[dict[str, Any]]:
    return await engine.record_history(component, schema, record_id)


@router.put("/{component}/{record_id}", summary="Replace a record, archiving its prior state.")
async def replace_record(
    component: str,
    record_id: int,
    payload: RecordPayload,
    engine: ComponentEngine = Depends(deps.get_component_engine),
    schema: ComponentSchema = Depends(deps.get_component_schema),
) -> list[dict[str, Any]]:
    """Overwrite the record entirely; fields left out of the payload are cleared."""

    return await engine.replace(component, schema, record_id, payload.as_mapping())


@router.delete("/{component}/{record_id}", summary="Delete one record, archiving its last state.")
async def delete_record(
    component: str,
    record_id: int,
    engine: ComponentEngine = Depends(deps.get_component_engine),
    schema: ComponentSchema = Depends(deps.get_component_schema),
) -> list[dict[str, Any]]:
    return await engine.delete(component, schema, record_id)
