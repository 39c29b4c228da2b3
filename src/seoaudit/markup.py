"""Markup parsing shared by the metric extractor, audits and link extractor."""

import logging
from typing import Optional

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)


def parse_markup(html: str) -> BeautifulSoup:
    """Parse page markup into a queryable document.

    Malformed markup never raises: if the parser gives up, an empty document
    is returned so the page is still audited and scored (with empty signals).

    Args:
        html: Raw page markup

    Returns:
        BeautifulSoup document supporting ``select``/``find_all`` queries
    """
    try:
        return BeautifulSoup(html or "", "html.parser")
    except Exception as e:
        logger.warning(f"Unparseable markup, auditing as empty document: {e}")
        return BeautifulSoup("", "html.parser")


def find_meta(soup: BeautifulSoup, name: str) -> Optional[Tag]:
    """First ``<meta name=...>`` tag, matching the name case-insensitively."""
    return soup.find("meta", attrs={"name": lambda v: v is not None and v.lower() == name})


def meta_content(soup: BeautifulSoup, name: str) -> Optional[str]:
    """Content of the first ``<meta name=...>`` tag, or None if the tag is absent."""
    tag = find_meta(soup, name)
    if tag is None:
        return None
    return tag.get("content") or ""
