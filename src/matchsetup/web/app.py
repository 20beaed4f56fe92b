"""HTTP composition root.

``create_app`` owns every collaborator: it reads settings, builds the store,
registry, catalog and reaper, and hands them to the router.  Nothing is
fetched from module globals at request time.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from ..core.config import SetupSettings, configure_logging, load_settings
from ..core.interfaces import SessionStore
from ..data.catalog import JsonMapCatalog, MapCatalogConfig
from ..features.session import (
    InMemorySessionStore,
    JsonFileSessionStore,
    SessionReaper,
    SessionRegistry,
    create_setup_router,
)
from ..features.session.concurrency import shutdown_executor

__all__ = ["create_app", "main"]


def build_store(settings: SetupSettings) -> SessionStore:
    if settings.store_dir is not None:
        return JsonFileSessionStore(settings.store_dir)
    return InMemorySessionStore()


def create_app(
    settings: SetupSettings | None = None,
    *,
    registry: SessionRegistry | None = None,
    start_reaper: bool = True,
) -> FastAPI:
    settings = settings or load_settings()
    registry = registry or SessionRegistry.from_settings(settings, build_store(settings))
    catalog = JsonMapCatalog(MapCatalogConfig(resource=settings.map_pool)) if settings.map_pool else JsonMapCatalog()
    reaper = SessionReaper(registry, interval=settings.reaper_interval or 30.0)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if start_reaper:
            reaper.start()
        try:
            yield
        finally:
            reaper.stop()
            shutdown_executor()

    app = FastAPI(title="Match Setup", lifespan=lifespan)
    app.state.registry = registry
    app.state.reaper = reaper
    app.state.catalog = catalog
    app.include_router(create_setup_router(registry, catalog))

    @app.get("/healthz")
    def healthz() -> JSONResponse:
        return JSONResponse({"status": "ok", "active": len(registry.active_series())})

    @app.get("/api/v1/maps")
    def active_maps() -> JSONResponse:
        return JSONResponse([{"id": entry.id, "name": entry.name} for entry in catalog.active_maps()])

    return app


def main() -> None:  # pragma: no cover - runner
    import uvicorn

    settings = load_settings()
    configure_logging(settings)
    host = os.environ.get("BIND", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run(create_app(settings), host=host, port=port, factory=False)


if __name__ == "__main__":  # pragma: no cover
    main()
