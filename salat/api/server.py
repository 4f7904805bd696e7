"""
FastAPI server for the salat API. Run with run_api_server(app) in a background thread.
Central endpoint: GET /api/tasks. Prayer routes come from salat.prayer.api
(get_router(salat_app)) and are mounted under /api/.
Docs when enabled: http://<host>:<port>/docs
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI

from salat.prayer.api import get_router

logger = logging.getLogger(__name__)


def _serialize_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Serialize datetime to ISO string (UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def create_app(salat_app: Any) -> FastAPI:
    """Create FastAPI app with routes that use the given SalatApp instance."""
    app = FastAPI(title="Salat API", description="Prayer times, notification settings, and alerts")

    @app.get("/api/tasks")
    def list_tasks() -> Dict[str, Any]:
        """Active in-memory timers and the currently armed prayer alert."""
        active_timers = salat_app.task_manager.get_active_timers()
        active_list = [
            {"name": t["name"], "next_run_at": _serialize_datetime(t["next_run_at"])}
            for t in active_timers
        ]
        return {"active_timers": active_list, "alert": salat_app.alert_scheduler.status()}

    router = get_router(salat_app)
    if router is not None:
        app.include_router(router, prefix="/api")

    return app


def run_api_server(salat_app: Any) -> Optional[threading.Thread]:
    """
    Start the API server in a daemon thread if api.enabled is true.
    Reads api.host (default 127.0.0.1) and api.port (default 8765) from config.
    """
    api_config = salat_app.config.get_section("api")
    if not api_config.get("enabled", False):
        logger.info("API server not started: set api.enabled to true in your config file to enable.")
        return None
    host = api_config.get("host", "127.0.0.1")
    port = int(api_config.get("port", 8765))
    fastapi_app = create_app(salat_app)

    def run_uvicorn():
        try:
            import uvicorn
            logger.info(f"API server listening at http://{host}:{port} (docs at /docs)")
            uvicorn.run(fastapi_app, host=host, port=port)
        except Exception as e:
            logger.exception(f"API server thread failed: {e}")

    thread = threading.Thread(target=run_uvicorn, daemon=True)
    thread.start()
    logger.info("API server thread started.")
    return thread
