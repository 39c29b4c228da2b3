"""Shared test doubles and markup builders."""

from typing import Iterable, Optional, Union

from seoaudit.fetcher import FetchAdapter, FetchError
from seoaudit.models import FetchResult, LinkStatus, PageSpeedMetrics


def words(count: int) -> str:
    return " ".join(["word"] * count)


def make_html(
    title: Optional[str] = "A perfectly reasonable page title here",
    description: Optional[str] = "Description of the page",
    body: str = "",
    head_extra: str = "",
) -> str:
    """Build a small HTML document."""
    head = ""
    if title is not None:
        head += f"<title>{title}</title>"
    if description is not None:
        head += f'<meta name="description" content="{description}">'
    return f"<html><head>{head}{head_extra}</head><body>{body}</body></html>"


def link_page(*hrefs: str, padding: int = 600) -> str:
    """HTML page linking to ``hrefs``, padded past the render fallback threshold."""
    anchors = "".join(f'<a href="{href}">link</a>' for href in hrefs)
    return make_html(body=f"<h1>Heading</h1><p>{'x' * padding}</p>{anchors}")


def fetch_result(url: str, html: str, status_code: int = 200, **kwargs) -> FetchResult:
    return FetchResult(
        url=url,
        status_code=status_code,
        html=html,
        html_size=len(html.encode("utf-8")),
        load_time_ms=kwargs.pop("load_time_ms", 12),
        final_url=kwargs.pop("final_url", url),
        content_type=kwargs.pop("content_type", "text/html; charset=utf-8"),
        **kwargs,
    )


PageEntry = Union[str, FetchResult, Exception]


class FakeFetchAdapter(FetchAdapter):
    """In-memory FetchAdapter.

    ``pages`` maps URL to HTML, a FetchResult, or an exception to raise.
    Unknown URLs raise FetchError (404-like transport failure).
    """

    def __init__(
        self,
        pages: dict[str, PageEntry],
        rendered: Optional[dict[str, PageEntry]] = None,
        speed: Optional[dict[str, PageSpeedMetrics]] = None,
        link_statuses: Optional[dict[str, int]] = None,
    ):
        self.pages = pages
        self.rendered = rendered or {}
        self.speed = speed
        self.link_statuses = link_statuses
        self.fetched: list[str] = []
        self.render_calls: list[str] = []
        self.speed_calls: list[str] = []
        self.link_check_calls: list[list[str]] = []

    def _resolve(self, url: str, entry: Optional[PageEntry]) -> FetchResult:
        if entry is None:
            raise FetchError(url, "Connection refused")
        if isinstance(entry, Exception):
            raise entry
        if isinstance(entry, FetchResult):
            return entry
        return fetch_result(url, entry)

    async def fetch(self, url: str) -> FetchResult:
        self.fetched.append(url)
        return self._resolve(url, self.pages.get(url))

    async def fetch_rendered(self, url: str) -> FetchResult:
        self.render_calls.append(url)
        return self._resolve(url, self.rendered.get(url))

    async def measure_speed(self, url: str) -> Optional[PageSpeedMetrics]:
        self.speed_calls.append(url)
        if self.speed is None:
            return None
        return self.speed.get(url, PageSpeedMetrics(url=url, ttfb=50, dom_load_time=200, total_load_time=400))

    async def check_links(self, urls: Iterable[str]) -> Optional[list[LinkStatus]]:
        urls = list(urls)
        self.link_check_calls.append(urls)
        if self.link_statuses is None:
            return None
        return [LinkStatus(url=url, status_code=self.link_statuses.get(url, 200)) for url in urls]
