"""Page speed measurement and aggregation.

Speed timings come from the browser's Navigation Timing API, so measuring a
page costs a full render. A SpeedBudget caps how many pages of one crawl job
get measured; it belongs to the job, never to the process.
"""

import logging
from typing import Any, Iterable

from seoaudit.models import PageSpeedMetrics, SiteSpeedSummary
from seoaudit.scoring import round_half_up

logger = logging.getLogger(__name__)


# Evaluated in the page; falls back to the deprecated performance.timing
NAVIGATION_TIMING_SCRIPT = """
() => {
    const nav = performance.getEntriesByType('navigation')[0];
    if (nav) {
        return {
            ttfb: nav.responseStart - nav.requestStart,
            domLoadTime: nav.domContentLoadedEventEnd - nav.domContentLoadedEventStart,
            totalLoadTime: nav.loadEventEnd - nav.fetchStart,
        };
    }
    const t = performance.timing;
    return {
        ttfb: t.responseStart - t.navigationStart,
        domLoadTime: t.domContentLoadedEventEnd - t.navigationStart,
        totalLoadTime: t.loadEventEnd - t.navigationStart,
    };
}
"""


class SpeedBudget:
    """Counts speed measurements for one crawl job."""

    def __init__(self, max_pages: int, enabled: bool = True):
        self.max_pages = max_pages
        self.enabled = enabled
        self.pages_measured = 0

    @property
    def available(self) -> bool:
        return self.enabled and self.pages_measured < self.max_pages

    def consume(self) -> bool:
        """Take one measurement slot.

        Returns:
            True if a slot was available, False once the budget is spent
        """
        if not self.available:
            return False
        self.pages_measured += 1
        return True

    def reset(self) -> None:
        self.pages_measured = 0


def _non_negative_ms(value: Any) -> int:
    try:
        return max(0, int(round(float(value or 0))))
    except (TypeError, ValueError):
        return 0


def speed_from_timings(url: str, timings: dict) -> PageSpeedMetrics:
    """Build PageSpeedMetrics from the raw timing dict returned by the browser."""
    return PageSpeedMetrics(
        url=url,
        ttfb=_non_negative_ms(timings.get("ttfb")),
        dom_load_time=_non_negative_ms(timings.get("domLoadTime")),
        total_load_time=_non_negative_ms(timings.get("totalLoadTime")),
    )


async def extract_page_speed(page) -> PageSpeedMetrics:
    """Read navigation timings from a loaded playwright page.

    Failures are logged and yield zeroed metrics.
    """
    url = page.url
    try:
        timings = await page.evaluate(NAVIGATION_TIMING_SCRIPT)
    except Exception as e:
        logger.warning(f"Failed to extract page speed metrics for {url}: {e}")
        return PageSpeedMetrics(url=url)
    return speed_from_timings(url, timings or {})


def calculate_site_speed(speed_metrics: Iterable[PageSpeedMetrics]) -> SiteSpeedSummary:
    """Average timings over pages with at least one non-zero timing."""
    valid = [m for m in speed_metrics if m.has_data]
    if not valid:
        return SiteSpeedSummary()

    count = len(valid)
    return SiteSpeedSummary(
        average_ttfb=round_half_up(sum(m.ttfb for m in valid) / count),
        average_dom_load_time=round_half_up(sum(m.dom_load_time for m in valid) / count),
        average_total_load_time=round_half_up(sum(m.total_load_time for m in valid) / count),
        pages_with_speed_data=count,
    )
