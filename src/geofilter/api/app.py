# src/geofilter/api/app.py
"""
FastAPI application wiring.

`create_app()` builds the app around one `LocationFilterStore` (loaded on startup,
flushed on shutdown). Tests pass their own store/geocoder; `app` is the default
instance for `uvicorn geofilter.api.app:app`.
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from geofilter.config.settings import Settings, get_settings
from geofilter.core.env import resolve_storage_path
from geofilter.core.logging import configure_logging
from geofilter.core.storage import JsonFileStore
from geofilter.geocoding.nominatim import NominatimClient
from geofilter.location.store import LocationFilterStore

from .routes import router


def create_app(
    *,
    settings: Settings | None = None,
    store: LocationFilterStore | None = None,
    geocoder: NominatimClient | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    if store is None:
        store = LocationFilterStore(JsonFileStore(resolve_storage_path(settings.storage.path)), settings)
    if geocoder is None:
        geocoder = NominatimClient(settings.geocoding)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await store.load()
        yield
        await store.flush()

    app = FastAPI(title="geofilter API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.geocoder = geocoder

    # Configure via env: GEOFILTER_CORS_ORIGINS="http://localhost:8081,http://127.0.0.1:8081"
    cors_origins = [s.strip() for s in os.getenv("GEOFILTER_CORS_ORIGINS", "").split(",") if s.strip()]
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(router)
    return app


configure_logging()

app = create_app()
