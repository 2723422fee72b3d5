# docket_sync/core/lifespan.py
import os
import logging
from contextlib import asynccontextmanager
from playwright.async_api import Playwright, async_playwright
from docket_sync.core.config import AppSettings, get_app_settings
from docket_sync.db.session import SessionLocal
from docket_sync.services.docket_scan import DocketScanService
from docket_sync.services.document_sources import DocumentSourceRegistry
from docket_sync.services.drive_archiver import DriveArchiver
from docket_sync.services.lawmatics_client import LawmaticsClient
from docket_sync.services.lawmatics_form import LawmaticsFormAutomation
from docket_sync.services.matter_catalog import MatterCatalog, ProcessedStateStore
from docket_sync.services.matter_pipeline import MatterPipelineService
from docket_sync.services.notifier import EmailNotifier

logger = logging.getLogger(__name__)

def build_pipeline_service(settings: AppSettings, playwright_instance: Playwright) -> MatterPipelineService:
    return MatterPipelineService(
        settings=settings,
        catalog=MatterCatalog(settings),
        document_sources=DocumentSourceRegistry.from_settings(settings),
        archiver=DriveArchiver(settings),
        notifier=EmailNotifier(settings),
        lawmatics=LawmaticsClient(settings),
        form_automation=LawmaticsFormAutomation(playwright_instance, settings),
        processed_state=ProcessedStateStore(SessionLocal),
    )

@asynccontextmanager
async def lifespan_manager(app):
    app_settings = get_app_settings()
    app.state.settings = app_settings
    logger.info("--- FastAPI App Starting Up (Lifespan Manager) ---")

    for directory in (app_settings.TEMP_DOCUMENTS_PATH, app_settings.SCREENSHOT_PATH):
        try:
            os.makedirs(directory, exist_ok=True)
        except Exception as e:
            logger.warning(f"Could not create directory {directory}: {e}")

    if not app_settings.LAWMATICS_API_TOKEN:
        logger.warning("LAWMATICS_API_TOKEN is not set. CRM updates and prospect lookups will fail.")
    if not app_settings.GOOGLE_DRIVE_ACCESS_TOKEN:
        logger.warning("GOOGLE_DRIVE_ACCESS_TOKEN is not set. Document archiving will fail.")

    logger.info("--- Initializing Playwright (Lifespan) ---")
    try:
        app.state.playwright_instance = await async_playwright().start()
        logger.info("--- Playwright Initialized (Lifespan) ---")
    except Exception as e:
        logger.critical(f"CRITICAL STARTUP FAILURE: Could not initialize Playwright: {e}")
        app.state.service_ready = False
        yield
        logger.info("--- FastAPI App Shut Down (Lifespan - playwright init failed) ---")
        return

    pipeline = build_pipeline_service(app_settings, app.state.playwright_instance)
    app.state.pipeline = pipeline
    app.state.docket_scan = DocketScanService(pipeline, pipeline.processed_state)
    app.state.service_ready = True
    logger.info(f"--- Matter pipeline ready (policy: {pipeline.policy.value}) ---")

    yield # Application is running

    logger.info("--- FastAPI App Shutting Down (Lifespan Manager) ---")
    app.state.shutting_down = True
    app.state.service_ready = False

    if app.state.playwright_instance:
        logger.info("Stopping Playwright (Lifespan)...")
        try:
            await app.state.playwright_instance.stop()
            app.state.playwright_instance = None
            logger.info("Playwright stopped (Lifespan).")
        except Exception as e:
            logger.error(f"Error stopping Playwright: {e}")

    logger.info("--- FastAPI App Shutdown Complete (Lifespan Manager) ---")
