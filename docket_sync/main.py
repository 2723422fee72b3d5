# docket_sync/main.py
import os
import logging
from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Request
from contextlib import asynccontextmanager

from docket_sync.core.config import get_app_settings, load_settings
from docket_sync.core.lifespan import lifespan_manager
from docket_sync.api.routers import health as health_router, matters as matters_router
from docket_sync.db.session import SQLALCHEMY_DATABASE_URL
from docket_sync.db.init_db import init_db

initial_settings = load_settings()

log_level_str = os.getenv("LOG_LEVEL", initial_settings.LOG_LEVEL).upper()
logging.basicConfig(
    level=getattr(logging, log_level_str, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app_fastapi: FastAPI):
    logger.info("FastAPI application startup...")
    logger.info(f"Using database at: {SQLALCHEMY_DATABASE_URL}")

    app_fastapi.state.playwright_instance = None # Initialized in lifespan_manager
    app_fastapi.state.pipeline = None
    app_fastapi.state.docket_scan = None
    app_fastapi.state.service_ready = False
    app_fastapi.state.shutting_down = False

    init_db()
    async with lifespan_manager(app_fastapi):
        if not app_fastapi.state.service_ready:
            logger.error("Service not ready after lifespan setup. Matter processing is unavailable.")
        logger.info("FastAPI application startup complete.")
        yield
        logger.info("FastAPI application shutdown...")
    logger.info("FastAPI application shutdown complete.")


app = FastAPI(
    title="USPTO Docket Sync API",
    lifespan=app_lifespan,
    openapi_url="/api/v1/openapi.json"
)

app.include_router(health_router.router, prefix="/api/v1", tags=["Health"])
app.include_router(matters_router.router, prefix="/api/v1/matters", tags=["Matters"])


@app.middleware("http")
async def settings_middleware(request: Request, call_next):
    if not hasattr(request.app.state, 'settings') or request.app.state.settings is None:
        logger.debug("Settings middleware: app.state.settings not found or None, ensuring fresh load.")
        request.app.state.settings = get_app_settings()
    response = await call_next(request)
    return response

if __name__ == "__main__":
    import uvicorn
    effective_settings = get_app_settings()
    reload_dev = os.getenv("RELOAD_DEV", "false").lower() == "true"

    logger.info(f"Starting Uvicorn server on {effective_settings.HOST}:{effective_settings.PORT} (Reload: {reload_dev})")

    uvicorn.run(
        "docket_sync.main:app",
        host=effective_settings.HOST,
        port=effective_settings.PORT,
        reload=reload_dev,
        log_level=effective_settings.LOG_LEVEL.lower()
    )
