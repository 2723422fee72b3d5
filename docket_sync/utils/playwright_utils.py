# docket_sync/utils/playwright_utils.py
import logging
import os
from playwright.async_api import Page
from docket_sync.core.config import AppSettings
from docket_sync.utils.common import sanitize_filename

logger = logging.getLogger(__name__)

async def safe_screenshot(page: Page, settings: AppSettings, filename_prefix: str, details: str = ""):
    sane_details = sanitize_filename(details, max_length=50)
    screenshot_path = os.path.join(settings.SCREENSHOT_PATH, f"debug_{filename_prefix}_{sane_details}.png")

    try:
        os.makedirs(os.path.dirname(screenshot_path), exist_ok=True)
        await page.screenshot(path=screenshot_path)
        logger.info(f"Debug screenshot saved: {screenshot_path}")
    except Exception as e:
        logger.error(f"Failed to save screenshot {screenshot_path}: {e}")
