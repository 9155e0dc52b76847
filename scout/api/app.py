"""FastAPI application factory.

Lifespan
--------
On startup the app builds a single :class:`~scout.layer.AcquisitionLayer`
(shared across all requests via ``request.app.state.layer``).  On shutdown
it closes the layer, which stops the browser and the cache sweeper.

Routers
-------
    /fetch    — single and batch page fetch
    /search   — search-engine query
    /reviews  — review mining and summary
    /cache    — cache maintenance
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scout.layer import AcquisitionLayer

from scout.api.routers import cache as cache_router
from scout.api.routers import fetch as fetch_router
from scout.api.routers import reviews as reviews_router
from scout.api.routers import search as search_router


def create_app(layer_factory: Optional[Callable[[], AcquisitionLayer]] = None) -> FastAPI:
    """Return a fully-configured FastAPI application instance.

    Args:
        layer_factory: Builds the layer on startup.  Defaults to
            ``AcquisitionLayer()`` configured from the environment.
    """
    factory = layer_factory or AcquisitionLayer

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Build the layer on startup and close it on shutdown."""
        layer = factory()
        app.state.layer = layer
        try:
            yield
        finally:
            layer.close()

    app = FastAPI(
        title="Scout API",
        description=(
            "REST interface for the Scout web data-acquisition layer. "
            "Fetches pages with HTTP and headless-browser fallbacks, queries "
            "search engines, and mines review fragments.  Every endpoint "
            "returns a usable result; synthetic data is flagged as such."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Allow browser frontends on any origin (tighten for production).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(fetch_router.router, prefix="/fetch", tags=["fetch"])
    app.include_router(search_router.router, prefix="/search", tags=["search"])
    app.include_router(reviews_router.router, prefix="/reviews", tags=["reviews"])
    app.include_router(cache_router.router, prefix="/cache", tags=["cache"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn scout.api.app:app --reload
app = create_app()
