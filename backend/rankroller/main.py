import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .db import close_mongo_connection, connect_to_mongo, get_database
from .repositories import InMemorySaveRepository, MongoSaveRepository, SaveRepositoryProtocol
from .routers import api_router
from .services.session import SessionManager
from .state import set_session_manager_provider

logger = logging.getLogger(__name__)


async def _open_repository() -> SaveRepositoryProtocol:
    connected = await connect_to_mongo()
    if connected:
        repository = MongoSaveRepository(get_database())
        try:
            await repository.ensure_indexes()
            return repository
        except Exception:  # pragma: no cover
            logger.exception("Failed to prepare the save collection")
            await close_mongo_connection()

    logger.warning("MongoDB connection is not available; saves are kept in memory")
    memory_repository = InMemorySaveRepository()
    await memory_repository.ensure_indexes()
    return memory_repository


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    manager = SessionManager(await _open_repository())
    set_session_manager_provider(lambda: manager)

    yield

    await manager.close()
    await close_mongo_connection()


app = FastAPI(
    title="Rank Roller API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")


@app.get("/", tags=["health"])
async def healthcheck() -> dict[str, str]:
    """Simple health-check endpoint."""

    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("rankroller.main:app", host="0.0.0.0", port=8000)
