"""Headless Chromium fetch strategy for script-rendered pages.

Every call launches its own browser and closes it before returning, whether
navigation succeeded or not. Requires the Chromium binary::

    playwright install chromium
"""

import logging
from typing import Mapping, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from core.exceptions import FetchError
from core.fetchers import FetchStrategy

logger = logging.getLogger(__name__)

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
VIEWPORT = {"width": 1280, "height": 800}
SETTLE_MS = 1000


class BrowserClient(FetchStrategy):
    """Rendered fetch strategy: navigate, wait for the network to go idle, return the DOM."""

    def __init__(
        self,
        timeout: float = 45.0,
        wait_timeout: float = 15.0,
        log: Optional[logging.Logger] = None,
    ):
        self.timeout = timeout
        self.wait_timeout = wait_timeout
        self.log = log or logger

    async def _wait_for(self, page, url: str, selector: Optional[str]):
        if not selector:
            await page.wait_for_timeout(SETTLE_MS)
            return
        try:
            self.log.debug(f"Waiting for selector '{selector}' on {url}")
            await page.wait_for_selector(selector, timeout=self.wait_timeout * 1000)
        except PlaywrightError:
            self.log.warning(
                f"Selector '{selector}' not found on {url} after {self.wait_timeout}s. "
                "Proceeding with available content."
            )

    async def fetch(
        self,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        wait_for_selector: Optional[str] = None,
    ) -> str:
        timeout = timeout or self.timeout
        extra_headers = dict(headers or {})
        user_agent = extra_headers.pop("User-Agent", DESKTOP_USER_AGENT)
        self.log.info(
            f"Rendering {url}" + (f" (waiting for: {wait_for_selector})" if wait_for_selector else "")
        )

        try:
            async with async_playwright() as p:
                browser = await p.chromium.launch(
                    headless=True, args=["--no-sandbox", "--disable-setuid-sandbox"]
                )
                try:
                    context = await browser.new_context(
                        user_agent=user_agent,
                        viewport=VIEWPORT,
                        extra_http_headers=extra_headers,
                    )
                    try:
                        page = await context.new_page()
                        await page.goto(url, timeout=timeout * 1000, wait_until="networkidle")
                        await self._wait_for(page, url, wait_for_selector)
                        html = await page.content()
                    finally:
                        await context.close()
                finally:
                    await browser.close()
        except Exception as e:
            self.log.error(f"Error rendering {url}: {e}")
            raise FetchError(f"Rendered fetch failed: {e}", url) from e

        if not html or not html.strip():
            raise FetchError("Rendered page was empty", url)

        self.log.info(f"Rendered {url} ({len(html)} bytes)")
        return html
