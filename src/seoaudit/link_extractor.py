"""Link discovery: candidate hyperlinks filtered to the crawl's own hostname."""

import logging
from typing import Iterable

from bs4 import BeautifulSoup

from seoaudit.urls import (
    hostname_of,
    is_navigable_href,
    normalize_url,
    resolve_href,
    should_skip_url,
)

logger = logging.getLogger(__name__)


def find_hrefs(soup: BeautifulSoup) -> list[str]:
    """All raw href values of anchors, in document order."""
    return [anchor["href"] for anchor in soup.find_all("a", href=True)]


def filter_internal_links(
    hrefs: Iterable[str],
    page_url: str,
    seed_hostname: str,
    skip_assets: bool = True,
) -> list[str]:
    """Resolve hrefs and keep those on ``seed_hostname``.

    Args:
        hrefs: Raw href values found on the page
        page_url: URL the hrefs are relative to
        seed_hostname: Hostname of the crawl seed; matched exactly
        skip_assets: Drop links to images, archives, stylesheets etc.

    Returns:
        Normalized internal URLs, first occurrence order, without duplicates.
        Unresolvable hrefs are dropped silently.
    """
    links: list[str] = []
    seen: set[str] = set()

    for href in hrefs:
        if not is_navigable_href(href):
            continue

        absolute = resolve_href(href, page_url)
        if absolute is None:
            logger.debug(f"Dropping unresolvable link {href!r} on {page_url}")
            continue

        if hostname_of(absolute) != seed_hostname:
            continue

        normalized = normalize_url(absolute)
        if skip_assets and should_skip_url(normalized):
            continue

        if normalized not in seen:
            seen.add(normalized)
            links.append(normalized)

    return links


def extract_outgoing_links(soup: BeautifulSoup, page_url: str) -> list[str]:
    """All resolvable http(s) links of a page, internal and external, without duplicates."""
    links: list[str] = []
    seen: set[str] = set()

    for href in find_hrefs(soup):
        if not is_navigable_href(href):
            continue
        absolute = resolve_href(href, page_url)
        if absolute is None:
            continue
        normalized = normalize_url(absolute)
        if normalized not in seen:
            seen.add(normalized)
            links.append(normalized)

    return links


def extract_links(
    soup: BeautifulSoup,
    page_url: str,
    seed_hostname: str,
    skip_assets: bool = True,
) -> list[str]:
    """Extract internal links from a parsed page.

    Args:
        soup: Parsed page document
        page_url: URL of the page (base for relative links)
        seed_hostname: Hostname every returned link must have
        skip_assets: Drop links to static assets

    Returns:
        List of normalized same-host URLs in discovery order
    """
    return filter_internal_links(find_hrefs(soup), page_url, seed_hostname, skip_assets)
