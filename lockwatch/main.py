"""
lockwatch - FastAPI app hosting the live hot-account sync engine.

Run with:  uvicorn lockwatch.main:app --port 8080
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from lockwatch.config import settings
from lockwatch.observability.logs import setup_logging
from lockwatch.routes_stream import router as stream_router
from lockwatch.services.live_sync import LiveSync

logger = logging.getLogger(__name__)


def create_app(live_sync_factory=LiveSync) -> FastAPI:
    """Build the app; one LiveSync is mounted for the app's lifetime."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        live_sync = live_sync_factory()
        app.state.live_sync = live_sync
        await live_sync.start()
        logger.info(f"[startup] Live sync mounted (api={settings.API_URL} ws={settings.WS_URL})")
        try:
            yield
        finally:
            await live_sync.stop()
            app.state.live_sync = None
            logger.info("[shutdown] Live sync unmounted")

    app = FastAPI(title="lockwatch", version="0.1.0", lifespan=lifespan)
    app.include_router(stream_router)

    @app.get("/health")
    async def health():
        return {"ok": True}

    return app


setup_logging(settings.LOG_LEVEL, settings.LOG_FILE or None)
app = create_app()
