"""Playwright-backed page session for script-rendered result pages."""
from __future__ import annotations

import logging
from typing import List

from playwright.async_api import (
    Browser,
    BrowserContext,
    ElementHandle,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from ..errors import ElementLookupError, NavigationError, ResourceReleaseFailure, WaitTimeoutError
from ..settings import ScraperConfig

LOGGER = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-gpu",
]
VIEWPORT = {"width": 1280, "height": 800}


def _ms(seconds: float) -> float:
    return seconds * 1000


class PlaywrightElement:
    """Element handle adapter."""

    def __init__(self, handle: ElementHandle) -> None:
        self._handle = handle

    async def is_visible(self) -> bool:
        return await self._handle.is_visible()

    async def click(self, timeout: float) -> None:
        await self._handle.click(timeout=_ms(timeout))

    async def text(self) -> str:
        return (await self._handle.inner_text()) or ""

    async def fill(self, value: str, timeout: float) -> None:
        await self._handle.fill(value, timeout=_ms(timeout))


class PlaywrightPageSession:
    """One browser, context and page owned by a single request."""

    def __init__(
        self,
        playwright: Playwright,
        browser: Browser,
        context: BrowserContext,
        page: Page,
    ) -> None:
        self._playwright = playwright
        self._browser = browser
        self._context = context
        self.page = page
        self._closed = False

    async def navigate(self, url: str, timeout: float) -> None:
        try:
            response = await self.page.goto(url, wait_until="domcontentloaded", timeout=_ms(timeout))
        except PlaywrightTimeoutError as exc:
            raise NavigationError(url, f"timed out after {timeout:.0f}s") from exc
        except PlaywrightError as exc:
            raise NavigationError(url, str(exc)) from exc
        if response is not None and response.status >= 400:
            raise NavigationError(url, f"HTTP {response.status}")
        LOGGER.debug("Navigated to %s (status=%s)", url, response.status if response else "n/a")

    async def wait_for(self, locator: str, timeout: float) -> None:
        try:
            await self.page.wait_for_selector(locator, state="attached", timeout=_ms(timeout))
        except PlaywrightTimeoutError as exc:
            raise WaitTimeoutError(locator, timeout) from exc
        except PlaywrightError as exc:
            raise ElementLookupError(locator, str(exc)) from exc

    async def find_all(self, locator: str) -> List[PlaywrightElement]:
        try:
            handles = await self.page.query_selector_all(locator)
        except PlaywrightError as exc:
            raise ElementLookupError(locator, str(exc)) from exc
        return [PlaywrightElement(handle) for handle in handles]

    async def snapshot_markup(self) -> str:
        return await self.page.content()

    async def close(self) -> None:
        """Close page, context and browser, then stop Playwright.

        Every step is attempted even when an earlier one fails; the first
        failure is re-raised as :class:`ResourceReleaseFailure`.
        """
        if self._closed:
            return
        self._closed = True
        errors: List[BaseException] = []
        for step in (self.page.close, self._context.close, self._browser.close, self._playwright.stop):
            try:
                await step()
            except Exception as exc:
                errors.append(exc)
        if errors:
            raise ResourceReleaseFailure(f"Failed to close browser session: {errors[0]}") from errors[0]


class PlaywrightSessionFactory:
    """Launches a dedicated Chromium instance per request."""

    def __init__(self, config: ScraperConfig) -> None:
        self.config = config

    async def open(self) -> PlaywrightPageSession:
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(
                headless=self.config.headless,
                slow_mo=self.config.slow_mo_ms,
                args=LAUNCH_ARGS,
            )
        except Exception:
            await playwright.stop()
            raise
        try:
            context = await browser.new_context(
                viewport=VIEWPORT,
                user_agent=self.config.user_agent,
            )
            page = await context.new_page()
        except Exception:
            await browser.close()
            await playwright.stop()
            raise
        LOGGER.debug("Launched Chromium (headless=%s)", self.config.headless)
        return PlaywrightPageSession(playwright, browser, context, page)
