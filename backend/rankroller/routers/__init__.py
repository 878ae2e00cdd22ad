"""FastAPI routers that expose HTTP endpoints."""

from fastapi import APIRouter

from . import catalog, game

api_router = APIRouter()
api_router.include_router(catalog.router)
api_router.include_router(game.router)

__all__ = ["api_router", "catalog", "game"]
