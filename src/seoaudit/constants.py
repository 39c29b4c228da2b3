# src/seoaudit/constants.py
"""Centralized constants for the SEO audit crawler.

This module contains fixed numbers that are used across multiple modules.
For user-configurable values, see config.py (CrawlerConfig and
ScoringThresholds).
"""

# =============================================================================
# Crawl Job Constants
# =============================================================================

# Defaults and bounds for a crawl job
DEFAULT_MAX_DEPTH = 2
DEFAULT_MAX_PAGES = 50
MAX_ALLOWED_DEPTH = 10
MAX_ALLOWED_PAGES = 1000

# Depth assigned to the seed URL
SEED_DEPTH = 0


# =============================================================================
# Fetch Constants
# =============================================================================

# Default request timeout in seconds
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30

# Pages smaller than this (bytes) with a 2xx status are re-fetched with a browser
MIN_HTML_SIZE_BYTES = 500

# Idle-network wait for rendered pages (milliseconds)
RENDER_IDLE_TIMEOUT_MS = 10000

# Maximum pages per job that get a browser speed measurement
DEFAULT_SPEED_MAX_PAGES = 10

# Concurrent HEAD requests when checking outgoing link statuses
LINK_CHECK_CONCURRENCY = 10

# File extensions that are never queued as pages
SKIP_EXTENSIONS = frozenset({
    '.pdf', '.jpg', '.jpeg', '.png', '.gif', '.svg', '.webp',
    '.zip', '.tar', '.gz', '.mp4', '.mp3', '.avi', '.mov',
    '.doc', '.docx', '.xls', '.xlsx', '.ppt', '.pptx',
    '.css', '.js', '.xml', '.json', '.ico', '.woff', '.woff2', '.ttf',
})

# Href prefixes that never point at a crawlable page
NON_NAVIGABLE_PREFIXES = ('mailto:', 'javascript:', 'tel:')


# =============================================================================
# Scoring Constants
# =============================================================================

STARTING_SCORE = 100
MIN_SCORE = 0
MAX_SCORE = 100

# Points deducted from the technical score per issue severity
SEVERITY_DEDUCTIONS = {
    'error': 10,
    'warning': 5,
}

# Weights of the overall score
TECHNICAL_WEIGHT = 0.5
CONTENT_WEIGHT = 0.5

# Content rules deducting at least this many points are reported as errors
CONTENT_ERROR_DEDUCTION = 10


# =============================================================================
# Markup Constants
# =============================================================================

# Subtrees removed before counting visible words
NON_CONTENT_TAGS = ('script', 'style', 'nav', 'footer', 'noscript', 'iframe')

HEADING_LEVELS = (1, 2, 3, 4, 5, 6)

# Meta tags whose content can carry a noindex directive
ROBOTS_META_NAMES = ('robots', 'googlebot')
