"""Screenshot capture using Playwright, for pages fetched without the crawl service."""

import base64
import logging
from dataclasses import dataclass
from datetime import datetime

from playwright.async_api import async_playwright

logger = logging.getLogger(__name__)


@dataclass
class ScreenshotResult:
    """Result of a screenshot capture."""
    url: str
    base64_data: str
    width: int = 0
    captured_at: str = ""
    error: str = ""

    @property
    def ok(self) -> bool:
        return bool(self.base64_data) and not self.error


class ScreenshotManager:
    """
    Captures full-page screenshots as base64 data URIs.

    The browser is started lazily on first capture and reused until close().
    """

    def __init__(self, headless: bool = True, timeout: int = 30000):
        self.headless = headless
        self.timeout = timeout
        self._browser = None
        self._playwright = None

    async def _ensure_browser(self):
        if self._browser is None:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=self.headless)

    async def close(self):
        """Close browser and cleanup."""
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    async def capture_full_page(
        self,
        url: str,
        wait_for: str = "networkidle",
        viewport_width: int = 1280,
        viewport_height: int = 800
    ) -> ScreenshotResult:
        """
        Capture a full page screenshot.

        Failures are reported on the result rather than raised; a missing
        screenshot only means the evaluation runs on HTML alone.
        """
        try:
            await self._ensure_browser()
            page = await self._browser.new_page(
                viewport={"width": viewport_width, "height": viewport_height}
            )
            try:
                await page.goto(url, wait_until=wait_for, timeout=self.timeout)
                # let animations settle
                await page.wait_for_timeout(1000)
                screenshot_bytes = await page.screenshot(full_page=True, type="png")
            finally:
                await page.close()
        except Exception as e:
            logger.warning("Screenshot capture failed for %s: %s", url, e)
            return ScreenshotResult(url=url, base64_data="", error=str(e),
                                    captured_at=datetime.now().isoformat())

        b64_data = base64.b64encode(screenshot_bytes).decode('utf-8')
        return ScreenshotResult(
            url=url,
            base64_data=f"data:image/png;base64,{b64_data}",
            width=viewport_width,
            captured_at=datetime.now().isoformat(),
        )
