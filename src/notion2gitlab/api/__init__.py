"""API routers for the proxy service."""

from fastapi import APIRouter

from .routes import health_router
from .v1 import proxy

api_router = APIRouter()
api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(proxy.router, prefix="", tags=["gitlab"])

__all__ = ["api_router"]
