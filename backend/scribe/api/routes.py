"""Service-level route definitions."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from scribe.api import deps
from scribe.services.engine import ComponentEngine

health_router = APIRouter()


@health_router.get("/", summary="Readiness probe", tags=["health"])
async def healthcheck(engine: ComponentEngine = Depends(deps.get_component_engine)) -> JSONResponse:
    """Report whether the component database answers."""

    if await engine.ping():
        return JSONResponse({"status": "ok"})
    return JSONResponse({"status": "unavailable"}, status_code=503)
