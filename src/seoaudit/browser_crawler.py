"""
Browser-based renderer using Playwright for JavaScript-rendered content.

This module provides a BrowserCrawler class that loads pages in a real
browser. It is used for two things: re-fetching pages whose lightweight
response looks like an empty JavaScript shell, and reading navigation
timings for the speed metrics.
"""
import logging
import time
from typing import Optional

from seoaudit.browser_config import BrowserConfig, DEFAULT_BROWSER_CONFIG
from seoaudit.models import FetchResult, PageSpeedMetrics
from seoaudit.speed import extract_page_speed

logger = logging.getLogger(__name__)


class BrowserCrawler:
    """
    Playwright-based page renderer.

    This class is designed to be used as an async context manager, managing
    its own browser lifecycle:

        async with BrowserCrawler(config) as crawler:
            result = await crawler.render("https://example.com")

    Every call opens an isolated browser context that is closed afterwards,
    so cookies and storage never leak between pages.
    """

    def __init__(self, config: Optional[BrowserConfig] = None):
        """
        Initialize the browser crawler.

        Args:
            config: BrowserConfig instance with browser settings
        """
        self._config = config or DEFAULT_BROWSER_CONFIG
        self._playwright = None
        self._browser = None

        logger.debug(f"BrowserCrawler initialized with config: {self._config}")

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    async def __aenter__(self) -> "BrowserCrawler":
        """Enter async context manager, launching browser."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context manager, closing browser."""
        await self.close()

    async def start(self) -> None:
        """Launch the browser."""
        try:
            from playwright.async_api import async_playwright
        except ImportError:
            raise ImportError(
                "Playwright is required for browser rendering. "
                "Install with: pip install playwright && playwright install chromium"
            )

        logger.info(f"Launching {self._config.browser_type} browser (headless={self._config.headless})")

        self._playwright = await async_playwright().start()
        browser_launcher = getattr(self._playwright, self._config.browser_type)

        launch_options = {"headless": self._config.headless}
        if self._config.launch_args:
            launch_options["args"] = self._config.launch_args

        try:
            self._browser = await browser_launcher.launch(**launch_options)
        except Exception:
            await self._playwright.stop()
            self._playwright = None
            raise

        logger.info("Browser launched successfully")

    async def close(self) -> None:
        """Close the browser if it is running."""
        if self._browser:
            logger.info("Closing browser")
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    def _require_browser(self) -> None:
        if not self._browser:
            raise RuntimeError(
                "Browser is not running. Use BrowserCrawler as an async context manager: "
                "async with BrowserCrawler(config) as crawler:"
            )

    async def _create_context(self):
        """Create a new, isolated browser context."""
        options = {"java_script_enabled": True}
        if self._config.user_agent:
            options["user_agent"] = self._config.user_agent
        return await self._browser.new_context(**options)

    async def _wait_for_network_idle(self, page) -> None:
        """Give scripts time to finish loading content.

        Hitting the idle timeout is normal for pages with long-polling or
        analytics traffic and is not treated as a failure.
        """
        if not self._config.idle_timeout:
            return
        try:
            await page.wait_for_load_state("networkidle", timeout=self._config.idle_timeout)
        except Exception:
            logger.debug(f"Network did not go idle within {self._config.idle_timeout}ms: {page.url}")

    async def render(self, url: str) -> FetchResult:
        """
        Load a URL with full JavaScript execution and return the rendered DOM.

        Args:
            url: URL to render

        Returns:
            FetchResult with the serialized DOM as html

        Raises:
            RuntimeError: If browser is not running
            playwright.async_api.Error: If navigation fails
        """
        self._require_browser()

        start_time = time.time()
        context = await self._create_context()

        try:
            page = await context.new_page()

            logger.info(f"Rendering: {url}")
            response = await page.goto(
                url,
                wait_until=self._config.wait_until,
                timeout=self._config.timeout
            )
            await self._wait_for_network_idle(page)

            html = await page.content()
            load_time_ms = int((time.time() - start_time) * 1000)

            status_code = response.status if response else 0
            headers = dict(response.headers) if response else {}

            logger.info(f"Render complete: {url} (status={status_code}, time={load_time_ms}ms)")

            return FetchResult(
                url=url,
                status_code=status_code,
                html=html,
                html_size=len(html.encode("utf-8")),
                load_time_ms=load_time_ms,
                final_url=page.url,
                content_type=headers.get("content-type", ""),
                headers=headers,
            )

        finally:
            # Always close context to ensure isolation
            await context.close()

    async def measure_speed(self, url: str) -> PageSpeedMetrics:
        """
        Load a URL and read its navigation timings.

        Args:
            url: URL to measure

        Returns:
            PageSpeedMetrics (zeroed if the timings could not be read)
        """
        self._require_browser()

        context = await self._create_context()
        try:
            page = await context.new_page()
            await page.goto(url, wait_until="load", timeout=self._config.timeout)
            metrics = await extract_page_speed(page)
            # Report against the requested URL, not wherever redirects landed
            return PageSpeedMetrics(
                url=url,
                ttfb=metrics.ttfb,
                dom_load_time=metrics.dom_load_time,
                total_load_time=metrics.total_load_time,
            )
        finally:
            await context.close()
