# docket_sync/services/lawmatics_form.py
import enum
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from playwright.async_api import Playwright, Page, Browser, TimeoutError as PlaywrightTimeoutError

from docket_sync.core.config import AppSettings, LawmaticsFormSelectors, FormTimings
from docket_sync.services.domain import (
    DocumentRecord, FieldBinding, FormFieldContext, MatterType, ProspectIdentity,
)
from docket_sync.utils import playwright_utils

logger = logging.getLogger(__name__)

SET_VALUE_SCRIPT = """(el, value) => {
    el.value = value;
    el.dispatchEvent(new Event('input', { bubbles: true }));
    el.dispatchEvent(new Event('change', { bubbles: true }));
}"""
IS_MAC_SCRIPT = "() => navigator.platform.toLowerCase().includes('mac')"


class FieldSetResult(str, enum.Enum):
    FILLED = "filled"
    CORRECTED = "corrected"  # typed value did not stick, intended value assigned directly
    SKIPPED = "skipped"


def build_field_bindings(selectors: LawmaticsFormSelectors) -> List[FieldBinding]:
    """Custom fields filled after the form has loaded the matter, in form order."""
    return [
        FieldBinding(
            selector=selectors.APPLICATION_NUMBER_INPUT,
            value_source=lambda ctx: ctx.application_number,
            description="Application Number",
        ),
        FieldBinding(
            selector=selectors.MAILROOM_DATE_INPUT,
            value_source=lambda ctx: ctx.document.iso_date,
            description="Mailroom Date",
        ),
        FieldBinding(
            selector=selectors.DOCUMENT_DESCRIPTION_INPUT,
            value_source=lambda ctx: ctx.document.description or None,
            description="Document Description",
        ),
        FieldBinding(
            selector=selectors.PATENT_DOCUMENT_DESCRIPTION_INPUT,
            value_source=lambda ctx: ctx.document.description or None,
            description="Patent Document Description",
        ),
        FieldBinding(
            selector=selectors.DOCUMENT_LINK_INPUT,
            value_source=lambda ctx: ctx.document.effective_link or None,
            description="File/Document Link (Google Drive)",
        ),
    ]


class LawmaticsFormAutomation:
    """Fills the Lawmatics "update by id" form for the custom fields the API cannot set."""

    def __init__(self, playwright_instance: Playwright, settings: AppSettings,
                 field_bindings: Optional[List[FieldBinding]] = None):
        self.playwright = playwright_instance
        self.settings = settings
        self.selectors: LawmaticsFormSelectors = settings.LAWMATICS_FORM_SELECTORS
        self.timings: FormTimings = settings.FORM_TIMINGS
        self.field_bindings = field_bindings if field_bindings is not None else build_field_bindings(self.selectors)

    async def _launch_browser(self) -> Browser:
        launch_options = {
            "headless": self.settings.BROWSER_HEADLESS,
            "args": list(self.settings.BROWSER_LAUNCH_ARGS),
        }
        if self.settings.BROWSER_EXECUTABLE_PATH:
            launch_options["executable_path"] = self.settings.BROWSER_EXECUTABLE_PATH
        return await self.playwright.chromium.launch(**launch_options)

    @asynccontextmanager
    async def browser_session(self) -> AsyncIterator[Page]:
        """Yields a page in a fresh browser; the browser is closed exactly once on every exit path."""
        browser = await self._launch_browser()
        try:
            context = await browser.new_context()
            page = await context.new_page()
            page.set_default_timeout(self.timings.NAVIGATION_TIMEOUT_MS)
            page.set_default_navigation_timeout(self.timings.NAVIGATION_TIMEOUT_MS)
            yield page
        finally:
            try:
                await browser.close()
            except Exception as e:
                logger.warning(f"Browser close warning: {e}")

    async def _clear_with_triple_click(self, page: Page, selector: str) -> bool:
        field = page.locator(selector)
        try:
            await field.click(click_count=3)
            await page.keyboard.press("Backspace")
        except Exception as e:
            logger.debug(f"Triple-click clear failed for {selector}: {e}")
            return False
        return not await field.input_value()

    async def _clear_with_select_all(self, page: Page, selector: str) -> bool:
        field = page.locator(selector)
        try:
            is_mac = await page.evaluate(IS_MAC_SCRIPT)
            modifier = "Meta" if is_mac else "Control"
            await field.focus()
            await page.keyboard.press(f"{modifier}+a")
            await page.keyboard.press("Backspace")
        except Exception as e:
            logger.debug(f"Select-all clear failed for {selector}: {e}")
            return False
        return not await field.input_value()

    async def _force_value(self, page: Page, selector: str, value: str):
        await page.locator(selector).evaluate(SET_VALUE_SCRIPT, value)

    async def set_field(self, page: Page, selector: str, value: str, description: str = "") -> FieldSetResult:
        """
        Clears and types a value into a flaky input, verifying the result.

        Clearing escalates from triple-click, to a platform select-all shortcut, to direct
        assignment. After typing, a mismatched read-back is corrected once by assigning the
        value directly. Never raises: a field that never shows up is skipped.
        """
        label = description or selector
        field = page.locator(selector)
        try:
            await field.wait_for(state="visible", timeout=self.timings.FIELD_VISIBLE_TIMEOUT_MS)
        except Exception as e:
            logger.warning(f"Field not found, skipping '{label}': {e}")
            return FieldSetResult.SKIPPED

        try:
            if not await self._clear_with_triple_click(page, selector):
                if not await self._clear_with_select_all(page, selector):
                    await self._force_value(page, selector, "")

            await field.press_sequentially(value, delay=self.timings.TYPING_DELAY_MS)

            final_value = await field.input_value()
            if final_value == value:
                return FieldSetResult.FILLED
            logger.warning(f"Value mismatch for '{label}'. Expected: '{value}', Got: '{final_value}'. Assigning directly.")
        except Exception as e:
            logger.warning(f"Error while typing into '{label}': {e}. Assigning directly.")

        try:
            await self._force_value(page, selector, value)
        except Exception as e:
            logger.warning(f"Direct assignment failed for '{label}': {e}")
        return FieldSetResult.CORRECTED

    async def _click_submit(self, page: Page) -> bool:
        """Primary submit control, then the alternate markup if waiting for or clicking the primary fails."""
        try:
            await page.wait_for_selector(self.selectors.SUBMIT_BUTTON, state="visible",
                                         timeout=self.timings.SUBMIT_PRIMARY_TIMEOUT_MS)
            await page.click(self.selectors.SUBMIT_BUTTON)
            return True
        except PlaywrightTimeoutError:
            logger.info("Primary submit button not visible. Trying alternative submit button selector...")
        except Exception as e:
            logger.warning(f"Primary submit button click failed: {e}. Trying alternative submit button selector...")

        try:
            await page.wait_for_selector(self.selectors.SUBMIT_BUTTON_ALT, state="visible",
                                         timeout=self.timings.SUBMIT_ALT_TIMEOUT_MS)
            await page.click(self.selectors.SUBMIT_BUTTON_ALT)
            return True
        except PlaywrightTimeoutError:
            logger.error("Neither submit button selector became visible.")
            return False
        except Exception as e:
            logger.error(f"Alternative submit button click failed: {e}")
            return False

    async def submit_form(
        self,
        matter_id: str,
        application_number: str,
        document: DocumentRecord,
        matter_type: MatterType,
        prospect: ProspectIdentity,
    ) -> bool:
        log_prefix = f"[{matter_type.value} #{application_number}]"
        logger.info(f"{log_prefix} Launching browser for Lawmatics form (prospect {prospect.prospect_id})...")
        try:
            async with self.browser_session() as page:
                try:
                    return await self._fill_and_submit(page, matter_id, application_number, document, matter_type, log_prefix)
                except Exception:
                    await playwright_utils.safe_screenshot(page, self.settings, "form_submission_error", application_number)
                    raise
        except PlaywrightTimeoutError as e:
            logger.error(f"{log_prefix} Timeout during form submission: {e}")
            return False
        except Exception as e:
            logger.error(f"{log_prefix} Form submission failed: {e}", exc_info=True)
            return False

    async def _fill_and_submit(self, page: Page, matter_id: str, application_number: str,
                               document: DocumentRecord, matter_type: MatterType, log_prefix: str) -> bool:
        logger.info(f"{log_prefix} Opening Lawmatics form...")
        try:
            await page.goto(self.settings.LAWMATICS_FORM_URL, wait_until="networkidle",
                            timeout=self.timings.NAVIGATION_TIMEOUT_MS)
        except PlaywrightTimeoutError as e:
            logger.error(f"{log_prefix} Form did not load within {self.timings.NAVIGATION_TIMEOUT_MS}ms: {e}")
            return False

        await page.wait_for_selector(self.selectors.MATTER_ID_INPUT, state="visible",
                                     timeout=self.timings.MATTER_ID_INPUT_TIMEOUT_MS)
        await self.set_field(page, self.selectors.MATTER_ID_INPUT, matter_id, "Matter ID")

        await page.click(self.selectors.FIND_MATTER_BUTTON)
        logger.info(f"{log_prefix} Waiting for Lawmatics to fetch matter details...")
        await page.wait_for_timeout(self.timings.MATTER_LOOKUP_SETTLE_MS)

        context = FormFieldContext(application_number=application_number, matter_type=matter_type, document=document)
        for binding in self.field_bindings:
            value = binding.value_source(context)
            if not value:
                logger.debug(f"{log_prefix} No value for {binding.description}, skipping.")
                continue
            logger.info(f"{log_prefix} Filling {binding.description}...")
            result = await self.set_field(page, binding.selector, value, binding.description)
            logger.debug(f"{log_prefix} {binding.description}: {result.value}")
            await page.wait_for_timeout(self.timings.FIELD_SETTLE_MS)

        logger.info(f"{log_prefix} Submitting form...")
        if not await self._click_submit(page):
            await playwright_utils.safe_screenshot(page, self.settings, "form_submit_button_missing", application_number)
            return False

        await page.wait_for_timeout(self.timings.POST_SUBMIT_SETTLE_MS)
        logger.info(f"{log_prefix} Form submission completed.")
        return True
