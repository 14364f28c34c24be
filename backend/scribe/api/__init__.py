"""API routers for the backend service."""

from fastapi import APIRouter

from . import components
from .routes import health_router

api_router = APIRouter()
api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(components.router, prefix="", tags=["components"])

__all__ = ["api_router"]
