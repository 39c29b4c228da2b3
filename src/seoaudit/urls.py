"""URL helpers shared by the link extractor, metric parsers and audits."""

from typing import Optional
from urllib.parse import urljoin, urlparse

from seoaudit.constants import NON_NAVIGABLE_PREFIXES, SKIP_EXTENSIONS


def normalize_url(url: str) -> str:
    """Normalize URL by removing fragments and trailing slashes.

    Scheme and host are lower-cased, an empty path becomes ``/`` and the
    query string is kept as is.

    Args:
        url: URL to normalize

    Returns:
        Normalized URL
    """
    parsed = urlparse(url)
    path = parsed.path or '/'
    normalized = f"{parsed.scheme.lower()}://{parsed.netloc.lower()}{path}"
    if parsed.query:
        normalized += f"?{parsed.query}"
    # Remove trailing slash (except for root)
    if len(path) > 1 and path.endswith('/') and not parsed.query:
        normalized = normalized[:-1]
    return normalized


def hostname_of(url: str) -> Optional[str]:
    """Return the lower-cased hostname of ``url`` or None when it has none."""
    try:
        return urlparse(url).hostname
    except ValueError:
        return None


def is_internal_url(target_url: str, base_url: str) -> bool:
    """Check whether ``target_url`` has exactly the same hostname as ``base_url``.

    URLs that fail to parse are treated as external.
    """
    target_host = hostname_of(target_url)
    base_host = hostname_of(base_url)
    return bool(target_host) and target_host == base_host


def is_navigable_href(href: str) -> bool:
    """False for empty, fragment-only, mailto:, javascript: and tel: hrefs."""
    href = href.strip()
    if not href or href.startswith('#'):
        return False
    return not href.lower().startswith(NON_NAVIGABLE_PREFIXES)


def resolve_href(href: str, base_url: str) -> Optional[str]:
    """Resolve ``href`` against ``base_url``.

    Returns:
        The absolute URL, or None if it cannot be parsed or has no host
    """
    try:
        absolute = urljoin(base_url, href.strip())
        parsed = urlparse(absolute)
        # .port raises ValueError for a malformed netloc
        if parsed.port is not None and not 0 < parsed.port < 65536:
            return None
    except ValueError:
        return None
    if parsed.scheme not in ('http', 'https') or not parsed.hostname:
        return None
    if any(ord(ch) < 32 or ord(ch) == 127 for ch in absolute):
        return None
    return absolute


def should_skip_url(url: str) -> bool:
    """Check if URL points at a static asset rather than a page.

    Args:
        url: Absolute URL

    Returns:
        True if URL should be skipped
    """
    path_lower = urlparse(url).path.lower()
    return any(path_lower.endswith(ext) for ext in SKIP_EXTENSIONS)
