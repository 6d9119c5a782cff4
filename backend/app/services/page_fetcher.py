from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import httpx

from backend.app.core.settings import settings

logger = logging.getLogger(__name__)

VIEWPORT = {"width": 1920, "height": 1080}
BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
]
SELECTOR_SETTLE_MS = 500


class FetchError(Exception):
    """Raised when a page cannot be loaded or rendered."""


class PageFetcher(Protocol):
    async def render(self, url: str, *, wait_for: Optional[str] = None) -> str: ...

    async def __aenter__(self) -> "PageFetcher": ...

    async def __aexit__(self, *exc_info: Any) -> None: ...


class PlaywrightFetcher:
    """Headless Chromium session shared by every page of one scrape run.

    Use as an async context manager; the browser is launched on entry and
    closed on exit.
    """

    def __init__(
        self,
        *,
        timeout_ms: Optional[int] = None,
        settle_ms: Optional[int] = None,
        user_agent: Optional[str] = None,
        headless: bool = True,
    ):
        self.timeout_ms = timeout_ms if timeout_ms is not None else settings.fetch_timeout_ms
        self.settle_ms = settle_ms if settle_ms is not None else settings.fetch_settle_ms
        self.user_agent = user_agent or settings.fetch_user_agent
        self.headless = headless
        self._playwright = None
        self._browser = None
        self._context = None

    async def __aenter__(self) -> "PlaywrightFetcher":
        from playwright.async_api import Error as PlaywrightError, async_playwright

        logger.info("Launching browser")
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=self.headless, args=BROWSER_ARGS)
            self._context = await self._browser.new_context(viewport=VIEWPORT, user_agent=self.user_agent)
        except PlaywrightError as exc:
            await self.__aexit__(None, None, None)
            raise FetchError(f"Browser launch failed: {exc}") from exc
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        context, browser, driver = self._context, self._browser, self._playwright
        self._context = self._browser = self._playwright = None
        try:
            if context is not None:
                await context.close()
        finally:
            try:
                if browser is not None:
                    await browser.close()
                    logger.info("Browser closed")
            finally:
                if driver is not None:
                    await driver.stop()

    async def render(self, url: str, *, wait_for: Optional[str] = None) -> str:
        from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

        if self._context is None:
            raise FetchError("Browser session is not open")

        page = await self._context.new_page()
        try:
            try:
                await page.goto(url, wait_until="networkidle", timeout=self.timeout_ms)
            except PlaywrightTimeoutError as exc:
                raise FetchError(f"Timed out loading {url}") from exc
            except PlaywrightError as exc:
                raise FetchError(f"Navigation to {url} failed: {exc}") from exc

            settle_ms = self.settle_ms
            if wait_for:
                try:
                    await page.wait_for_selector(wait_for, timeout=self.timeout_ms)
                    settle_ms = min(settle_ms, SELECTOR_SETTLE_MS)
                except PlaywrightTimeoutError:
                    # An empty inventory page never renders the marker.
                    logger.info("Selector %r not found on %s", wait_for, url)
            if settle_ms:
                await page.wait_for_timeout(settle_ms)
            return await page.content()
        finally:
            await page.close()


class HttpxFetcher:
    """Plain HTTP fetcher for sources that serve server-rendered markup."""

    def __init__(
        self,
        *,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout if timeout is not None else settings.fetch_timeout_ms / 1000
        self.user_agent = user_agent or settings.fetch_user_agent
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "HttpxFetcher":
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent},
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def render(self, url: str, *, wait_for: Optional[str] = None) -> str:
        if self._client is None:
            raise FetchError("HTTP session is not open")
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise FetchError(f"Timed out loading {url}") from exc
        except httpx.HTTPError as exc:
            raise FetchError(str(exc)) from exc
        return response.text
