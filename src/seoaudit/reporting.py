"""Read-only queries over the PageResults of one crawl job.

Nothing here is cached: every summary is recomputed from the (immutable)
page results each time it is asked for.
"""

from dataclasses import asdict
from typing import Any, Iterable, Optional

from seoaudit.config import ScoringThresholds, default_thresholds
from seoaudit.models import (
    ContentSummary,
    IssueBreakdown,
    PageResult,
    ScoreBreakdown,
    SiteScoreSummary,
    SiteSeoScoreSummary,
    SiteSpeedSummary,
    TechnicalSummary,
)
from seoaudit.scoring import (
    calculate_site_score,
    calculate_site_seo_score,
    round_half_up,
    severity_points,
)
from seoaudit.speed import calculate_site_speed


def _mean(values: list[int]) -> int:
    return round_half_up(sum(values) / len(values)) if values else 0


class CrawlReport:
    """Query surface over the results of one crawl.

    Args:
        pages: PageResults in emission order
        thresholds: Thresholds used for the content summary counters
    """

    def __init__(self, pages: Iterable[PageResult], thresholds: ScoringThresholds = default_thresholds):
        self._pages = tuple(pages)
        self._by_url = {page.url: page for page in self._pages}
        self.thresholds = thresholds

    def __len__(self) -> int:
        return len(self._pages)

    def pages(self) -> list[PageResult]:
        return list(self._pages)

    def get_page(self, url: str) -> Optional[PageResult]:
        """Page by exact URL, or None."""
        return self._by_url.get(url)

    def page_score_breakdown(self, url: str) -> Optional[ScoreBreakdown]:
        page = self.get_page(url)
        return page.score if page else None

    def site_score(self) -> SiteScoreSummary:
        return calculate_site_score(self._pages)

    def site_seo_score(self) -> SiteSeoScoreSummary:
        return calculate_site_seo_score(self._pages)

    def speed_summary(self) -> SiteSpeedSummary:
        return calculate_site_speed(page.speed for page in self._pages if page.speed is not None)

    def technical_summary(self) -> TechnicalSummary:
        """Issue totals, per-code breakdown, status codes and load times."""
        if not self._pages:
            return TechnicalSummary()

        by_code: dict[str, list[int]] = {}
        status_codes: dict[int, int] = {}
        errors = 0
        warnings = 0
        indexable = 0

        for page in self._pages:
            errors += page.errors_count
            warnings += page.warnings_count
            if page.indexable:
                indexable += 1
            status_codes[page.status_code] = status_codes.get(page.status_code, 0) + 1
            for issue in page.issues:
                entry = by_code.setdefault(issue.code, [0, 0])
                entry[0] += 1
                entry[1] += severity_points(issue.severity)

        return TechnicalSummary(
            total_pages=len(self._pages),
            indexable_pages=indexable,
            non_indexable_pages=len(self._pages) - indexable,
            total_issues=errors + warnings,
            errors_count=errors,
            warnings_count=warnings,
            issues_by_code=tuple(
                IssueBreakdown(code=code, count=count, points_deducted=points)
                for code, (count, points) in by_code.items()
            ),
            average_load_time_ms=_mean([page.load_time_ms for page in self._pages]),
            status_codes=dict(sorted(status_codes.items())),
            pages_using_render_fallback=sum(1 for page in self._pages if page.used_render_fallback),
        )

    def content_summary(self) -> ContentSummary:
        """Structural content counters over the pages that have metrics.

        Image alt coverage is None when no page has any image.
        """
        metrics = [page.seo_metrics for page in self._pages if page.seo_metrics is not None]
        if not metrics:
            return ContentSummary()

        t = self.thresholds
        total_images = sum(m.total_images for m in metrics)
        images_with_alt = sum(m.images_with_alt for m in metrics)

        return ContentSummary(
            pages_with_metrics=len(metrics),
            average_word_count=_mean([m.word_count for m in metrics]),
            pages_missing_title=sum(1 for m in metrics if m.title_length == 0),
            pages_missing_meta_description=sum(1 for m in metrics if m.meta_description_length == 0),
            pages_with_multiple_h1=sum(1 for m in metrics if m.h1_count > 1),
            pages_with_thin_content=sum(1 for m in metrics if m.word_count < t.thin_content_words),
            total_images=total_images,
            images_with_alt=images_with_alt,
            image_alt_coverage_percent=(
                round_half_up(images_with_alt / total_images * 100) if total_images else None
            ),
            average_internal_links=_mean([m.internal_link_count for m in metrics]),
        )

    def to_dict(self) -> dict[str, Any]:
        """Pages plus every summary, JSON-friendly."""
        technical = asdict(self.technical_summary())
        technical["status_codes"] = {str(code): count for code, count in technical["status_codes"].items()}
        return {
            "pages": [page.to_dict() for page in self._pages],
            "site_score": asdict(self.site_score()),
            "site_seo_score": asdict(self.site_seo_score()),
            "technical_summary": technical,
            "content_summary": asdict(self.content_summary()),
            "speed_summary": asdict(self.speed_summary()),
        }
