"""Page fetching: the adapter interface used by the crawler and its httpx/playwright implementation."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Iterable, Optional

import httpx

from seoaudit.browser_config import BrowserConfig
from seoaudit.browser_crawler import BrowserCrawler
from seoaudit.config import CrawlerConfig, default_crawler_config
from seoaudit.constants import LINK_CHECK_CONCURRENCY, MIN_HTML_SIZE_BYTES
from seoaudit.models import FetchResult, LinkStatus, PageSpeedMetrics, RedirectHop

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when a single URL could not be fetched."""
    def __init__(self, url: str, message: str, status_code: int = None):
        self.url = url
        self.message = message
        self.status_code = status_code
        super().__init__(f"{url}: {message}")


class FetchAdapterUnavailable(FetchError):
    """Raised when the adapter itself can no longer fetch anything."""


def should_use_render_fallback(status_code: int, html_size: int, min_bytes: int = MIN_HTML_SIZE_BYTES) -> bool:
    """Decide whether a lightweight response needs a browser render.

    A successful (2xx) response smaller than ``min_bytes`` is most likely an
    empty JavaScript shell.
    """
    return 200 <= status_code < 300 and html_size < min_bytes


class FetchAdapter(ABC):
    """Interface the crawler uses to reach the network.

    ``measure_speed`` and ``check_links`` are optional capabilities; the
    default implementations return None, meaning "not supported".
    """

    @abstractmethod
    async def fetch(self, url: str) -> FetchResult:
        """Fetch a URL without executing scripts.

        Raises:
            FetchError: The URL could not be fetched
            FetchAdapterUnavailable: The adapter cannot fetch anything anymore
        """

    @abstractmethod
    async def fetch_rendered(self, url: str) -> FetchResult:
        """Fetch a URL in a browser and return the rendered DOM.

        Raises:
            FetchError: The page could not be rendered
        """

    async def measure_speed(self, url: str) -> Optional[PageSpeedMetrics]:
        return None

    async def check_links(self, urls: Iterable[str]) -> Optional[list[LinkStatus]]:
        return None

    async def aclose(self) -> None:
        """Release any held resources."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()


def _redirect_hops(response: httpx.Response) -> list[RedirectHop]:
    """Turn httpx's response history into from/to hops."""
    hops = []
    history = list(response.history)
    for index, hop in enumerate(history):
        next_url = history[index + 1].url if index + 1 < len(history) else response.url
        hops.append(RedirectHop(
            from_url=str(hop.url),
            to_url=str(next_url),
            status_code=hop.status_code,
        ))
    return hops


class HttpFetchAdapter(FetchAdapter):
    """FetchAdapter backed by an httpx AsyncClient and a lazily launched browser.

    Usage:
        async with HttpFetchAdapter(config) as adapter:
            result = await adapter.fetch("https://example.com")

    The browser is only started on the first render or speed measurement, so
    crawls of server-rendered sites with speed measurement disabled never
    launch one.
    """

    def __init__(
        self,
        config: CrawlerConfig = default_crawler_config,
        browser_config: Optional[BrowserConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the adapter.

        Args:
            config: Crawler configuration (user agent, timeout, idle timeout)
            browser_config: Browser settings; derived from ``config`` if omitted
            client: Pre-built httpx client (owned by the caller)
            transport: Transport for the internally built client, e.g. httpx.MockTransport
        """
        self.config = config
        self.browser_config = browser_config or BrowserConfig(
            idle_timeout=config.render_idle_timeout_ms,
            timeout=max(1000, int(config.timeout * 1000)),
            user_agent=config.user_agent,
        )

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=config.timeout,
            follow_redirects=True,
            headers={"User-Agent": config.user_agent},
            transport=transport,
        )

        self._browser: Optional[BrowserCrawler] = None
        self._browser_lock = asyncio.Lock()
        self._browser_failed = False

    async def fetch(self, url: str) -> FetchResult:
        if self._client.is_closed:
            raise FetchAdapterUnavailable(url, "HTTP client is closed")

        start_time = time.time()
        try:
            response = await self._client.get(url)
        except httpx.TimeoutException:
            raise FetchError(url, f"Timed out after {self.config.timeout}s")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(url, f"{type(e).__name__}: {e}")

        load_time_ms = int((time.time() - start_time) * 1000)
        html = response.text

        return FetchResult(
            url=url,
            status_code=response.status_code,
            html=html,
            html_size=len(html.encode("utf-8")),
            load_time_ms=load_time_ms,
            final_url=str(response.url),
            content_type=response.headers.get("content-type", ""),
            headers=dict(response.headers),
            redirect_history=_redirect_hops(response),
        )

    async def _get_browser(self, url: str) -> BrowserCrawler:
        """Start the browser on first use."""
        async with self._browser_lock:
            if self._browser is not None and self._browser.is_running:
                return self._browser
            if self._browser_failed:
                raise FetchError(url, "Browser unavailable")

            browser = BrowserCrawler(self.browser_config)
            try:
                await browser.start()
            except Exception as e:
                self._browser_failed = True
                logger.warning(f"Could not launch browser, rendering disabled: {e}")
                raise FetchError(url, f"Browser launch failed: {e}")

            self._browser = browser
            return browser

    async def fetch_rendered(self, url: str) -> FetchResult:
        browser = await self._get_browser(url)
        try:
            return await browser.render(url)
        except Exception as e:
            raise FetchError(url, f"Render failed: {e}")

    async def measure_speed(self, url: str) -> Optional[PageSpeedMetrics]:
        browser = await self._get_browser(url)
        try:
            return await browser.measure_speed(url)
        except Exception as e:
            raise FetchError(url, f"Speed measurement failed: {e}")

    async def _link_status(self, url: str, semaphore: asyncio.Semaphore) -> Optional[LinkStatus]:
        async with semaphore:
            try:
                response = await self._client.head(url)
                if response.status_code == 405:
                    # Some servers refuse HEAD
                    response = await self._client.get(url)
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                logger.debug(f"Link check failed for {url}: {e}")
                return None
        return LinkStatus(url=url, status_code=response.status_code)

    async def check_links(self, urls: Iterable[str]) -> list[LinkStatus]:
        """HEAD-check every URL; unreachable URLs are left out."""
        semaphore = asyncio.Semaphore(LINK_CHECK_CONCURRENCY)
        results = await asyncio.gather(*(self._link_status(url, semaphore) for url in urls))
        return [status for status in results if status is not None]

    async def aclose(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()
