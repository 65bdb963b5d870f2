"""Care Notifications API - FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from care_notifications import (
    AIAnalysisError,
    AlertNotFoundError,
    AlertStore,
    AlertStoreError,
    ChangeNotifier,
    DatabaseManager,
    NotificationEngine,
    SnapshotFetchError,
    SQLiteSnapshotSource,
)
from care_notifications.ai_client import AIAnalysisClient
from care_notifications.config import get_settings as get_engine_settings

from .config import get_settings
from .routes import notifications_router
from .services.alert_queue import NotificationEventQueue

logger = logging.getLogger(__name__)

settings = get_settings()


def build_engine(notifier: ChangeNotifier) -> NotificationEngine:
    """Wire the engine to the SQLite facility and notification databases."""
    engine_settings = get_engine_settings()
    db = DatabaseManager(engine_settings)
    store = AlertStore(db)
    store.initialize()

    ai_client = AIAnalysisClient(settings=engine_settings)
    if not ai_client.configured:
        logger.info("[API] No AI analysis service configured")
        ai_client = None

    return NotificationEngine(
        source=SQLiteSnapshotSource(db),
        store=store,
        notifier=notifier,
        ai_client=ai_client,
        settings=engine_settings,
    )


def create_app(
    engine: Optional[NotificationEngine] = None,
    notifier: Optional[ChangeNotifier] = None,
    event_queue: Optional[NotificationEventQueue] = None,
) -> FastAPI:
    """Build the API. Tests inject an engine; otherwise one is built on startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.notifier = notifier or ChangeNotifier()
        app.state.event_queue = event_queue or NotificationEventQueue(
            max_history=settings.stream_history_size
        )
        app.state.engine = engine or build_engine(app.state.notifier)
        remove_listener = app.state.engine.add_listener(app.state.event_queue.publish)
        logger.info("[API] Notification engine ready")
        try:
            yield
        finally:
            remove_listener()
            await app.state.engine.close()
            logger.info("[API] Notification engine closed")

    app = FastAPI(
        title="Care Notifications API",
        description="Notification generation and lifecycle for the facility dashboard",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Configure CORS for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )

    @app.exception_handler(AlertNotFoundError)
    async def alert_not_found_handler(request: Request, exc: AlertNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(SnapshotFetchError)
    async def snapshot_fetch_handler(request: Request, exc: SnapshotFetchError):
        logger.error(f"[API] Snapshot fetch failed: {exc}")
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.exception_handler(AIAnalysisError)
    async def ai_analysis_handler(request: Request, exc: AIAnalysisError):
        logger.error(f"[API] AI analysis failed: {exc}")
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.exception_handler(AlertStoreError)
    async def alert_store_handler(request: Request, exc: AlertStoreError):
        logger.error(f"[API] Alert store unavailable: {exc}")
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    app.include_router(notifications_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint for the API."""
        return {"status": "healthy", "service": "notifications-api"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "server.notifications_api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
    )
