"""Page metric extraction: structural SEO signals from page markup.

Each ``parse_*`` helper reads one family of signals from a parsed document;
``extract_metrics`` combines them into a PageSeoMetrics record. All counts are
exact and none of the helpers mutate the document they are given.
"""

import copy
from dataclasses import dataclass

from bs4 import BeautifulSoup

from seoaudit.constants import HEADING_LEVELS, NON_CONTENT_TAGS, ROBOTS_META_NAMES
from seoaudit.markup import meta_content, parse_markup
from seoaudit.models import PageSeoMetrics
from seoaudit.urls import hostname_of, is_navigable_href, resolve_href


@dataclass(frozen=True)
class MetaLengthResult:
    title_length: int
    title_count: int
    meta_description_length: int


@dataclass(frozen=True)
class ImageAltResult:
    images_with_alt: int
    images_without_alt: int


def parse_meta_lengths(soup: BeautifulSoup) -> MetaLengthResult:
    """Length of the first <title> and the first meta description (trimmed)."""
    titles = soup.find_all("title")
    title_text = titles[0].get_text().strip() if titles else ""

    description = meta_content(soup, "description")
    description_text = (description or "").strip()

    return MetaLengthResult(
        title_length=len(title_text),
        title_count=len(titles),
        meta_description_length=len(description_text),
    )


def parse_heading_structure(soup: BeautifulSoup) -> dict[int, int]:
    """Count headings per level.

    Returns:
        Mapping of heading level (1-6) to number of elements
    """
    return {level: len(soup.find_all(f"h{level}")) for level in HEADING_LEVELS}


def parse_word_count(soup: BeautifulSoup) -> int:
    """Count visible words.

    script, style, nav, footer, noscript and iframe subtrees are removed from
    a copy of the document before the text is split on whitespace.
    """
    clone = copy.copy(soup)
    for element in clone.find_all(list(NON_CONTENT_TAGS)):
        element.decompose()
    return len(clone.get_text(separator=" ").split())


def parse_image_alt(soup: BeautifulSoup) -> ImageAltResult:
    """Count images with and without an alt attribute.

    Images with an empty or missing src are not counted. An empty alt
    attribute (decorative image) still counts as present.
    """
    with_alt = 0
    without_alt = 0

    for img in soup.find_all("img"):
        src = img.get("src") or ""
        if not src.strip():
            continue
        if img.has_attr("alt"):
            with_alt += 1
        else:
            without_alt += 1

    return ImageAltResult(images_with_alt=with_alt, images_without_alt=without_alt)


def parse_internal_links(soup: BeautifulSoup, page_url: str) -> int:
    """Count anchors resolving to the same hostname as ``page_url``.

    mailto:, javascript:, tel: and fragment-only links are excluded; hrefs
    that cannot be resolved are skipped.
    """
    page_host = hostname_of(page_url)
    if not page_host:
        return 0

    count = 0
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"]
        if not is_navigable_href(href):
            continue
        absolute = resolve_href(href, page_url)
        if absolute and hostname_of(absolute) == page_host:
            count += 1
    return count


def is_indexable(soup: BeautifulSoup) -> bool:
    """False when a robots or googlebot meta tag carries a noindex directive."""
    for name in ROBOTS_META_NAMES:
        content = meta_content(soup, name) or ""
        if "noindex" in content.lower():
            return False
    return True


def extract_metrics(soup: BeautifulSoup, page_url: str) -> PageSeoMetrics:
    """Extract all structural SEO signals of a page.

    Args:
        soup: Parsed page document
        page_url: URL the markup was fetched from (used for internal links)

    Returns:
        PageSeoMetrics for the page
    """
    meta = parse_meta_lengths(soup)
    headings = parse_heading_structure(soup)
    images = parse_image_alt(soup)

    return PageSeoMetrics(
        url=page_url,
        title_length=meta.title_length,
        title_count=meta.title_count,
        meta_description_length=meta.meta_description_length,
        h1_count=headings[1],
        h2_count=headings[2],
        h3_count=headings[3],
        h4_count=headings[4],
        h5_count=headings[5],
        h6_count=headings[6],
        word_count=parse_word_count(soup),
        images_with_alt=images.images_with_alt,
        images_without_alt=images.images_without_alt,
        internal_link_count=parse_internal_links(soup, page_url),
    )


def analyze_markup(html: str, page_url: str) -> PageSeoMetrics:
    """Parse raw markup and extract its metrics in one step."""
    return extract_metrics(parse_markup(html), page_url)
