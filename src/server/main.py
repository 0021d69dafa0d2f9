"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Mapping

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from edutree.config import EDUTREE_DATA_PATH, EDUTREE_SEED_ON_STARTUP, EDUTREE_STORE
from edutree.engine import HierarchyEngine
from edutree.exceptions import (
    EdutreeError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
)
from edutree.levels import TREE_INSTANCES
from edutree.repository import HierarchyRepository, InMemoryRepository
from edutree.seed import seed_tree
from edutree.storage import JsonFileRepository, store_path_for
from edutree.utils.logging_config import configure_logging, get_logger
from server.models import HealthResponse
from server.routers.hierarchy import router as hierarchy_router
from server.server_config import APP_DESCRIPTION, APP_TITLE

logger = get_logger(__name__)

_ERROR_STATUS: tuple[tuple[type[EdutreeError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidArgumentError, status.HTTP_400_BAD_REQUEST),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


async def _open_repository(tree_key: str) -> HierarchyRepository:
    if EDUTREE_STORE == "json":
        return await JsonFileRepository.open(store_path_for(tree_key, EDUTREE_DATA_PATH))
    if EDUTREE_STORE != "memory":
        logger.warning("Unknown store, falling back to memory", extra={"store": EDUTREE_STORE})
    return InMemoryRepository()


async def build_engines() -> dict[str, HierarchyEngine]:
    """Create one engine per registered tree instance, each with its own store."""
    engines = {}
    for key, config in TREE_INSTANCES.items():
        engine = HierarchyEngine(config, await _open_repository(key))
        if EDUTREE_SEED_ON_STARTUP and not await engine.find_all():
            await seed_tree(engine)
        engines[key] = engine
    return engines


async def edutree_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map engine errors to HTTP status codes."""
    status_code = next(
        (code for exc_class, code in _ERROR_STATUS if isinstance(exc, exc_class)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    logger.warning(
        "Request failed",
        extra={"path": request.url.path, "status_code": status_code, "error": str(exc)},
    )
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app(engines: Mapping[str, HierarchyEngine] | None = None) -> FastAPI:
    """Build the application.

    Parameters
    ----------
    engines : Mapping[str, HierarchyEngine] | None
        Engines keyed by tree instance. Built from configuration at startup
        when omitted.

    Returns
    -------
    FastAPI
        The configured application.

    """
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if engines is None:
            app.state.engines = await build_engines()
        logger.info("Hierarchy engines ready", extra={"trees": sorted(app.state.engines)})
        yield

    app = FastAPI(title=APP_TITLE, description=APP_DESCRIPTION, lifespan=lifespan)
    app.state.engines = dict(engines) if engines is not None else {}
    app.add_exception_handler(EdutreeError, edutree_error_handler)
    app.include_router(hierarchy_router)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(trees=sorted(app.state.engines))

    return app


app = create_app()
