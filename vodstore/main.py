from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from vodstore.api.v1 import get_api_router
from vodstore.core.config import get_settings
from vodstore.core.db import create_engine, create_session_factory
from vodstore.core.logging import configure_logging, get_logger
from vodstore.core.remote import get_remote_placement
from vodstore.media.probe import FfprobeAdapter
from vodstore.services.manifest import QueuedManifestRefresher


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)
    logger = get_logger(component="app")

    remote = get_remote_placement(settings)
    probe = FfprobeAdapter(binary=settings.probe_binary, timeout_s=settings.probe_timeout_s)
    manifest = QueuedManifestRefresher()
    engine = create_engine(settings)
    session_factory = create_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.settings = settings
        app.state.remote = remote
        app.state.probe = probe
        app.state.manifest = manifest
        app.state.engine = engine
        app.state.session_factory = session_factory
        logger.info("app_started", environment=settings.environment, remote_backend=settings.remote_backend)
        try:
            yield
        finally:
            await engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        lifespan=lifespan,
        openapi_url="/openapi.json",
        docs_url="/docs",
    )

    app.include_router(get_api_router())
    return app


__all__ = ["create_app"]
