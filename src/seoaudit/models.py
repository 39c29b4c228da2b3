"""Data models for crawling, auditing and scoring."""

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

from seoaudit.constants import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_PAGES,
    MAX_ALLOWED_DEPTH,
    MAX_ALLOWED_PAGES,
)


class IssueSeverity(str, Enum):
    """Severity of a technical issue."""
    ERROR = "error"
    WARNING = "warning"


class CrawlStatus(str, Enum):
    """Lifecycle state of a crawl job."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class CrawlJob(BaseModel):
    """
    A single crawl request. Validated on construction and immutable afterwards.
    """
    model_config = ConfigDict(frozen=True)

    seed_url: str = Field(..., description="Absolute http(s) URL the crawl starts from")
    max_depth: int = Field(
        default=DEFAULT_MAX_DEPTH,
        ge=1,
        le=MAX_ALLOWED_DEPTH,
        description="Deepest link level followed from the seed (seed is depth 0)"
    )
    max_pages: int = Field(
        default=DEFAULT_MAX_PAGES,
        ge=1,
        le=MAX_ALLOWED_PAGES,
        description="Hard limit on distinct pages fetched"
    )
    crawl_id: str = Field(default_factory=lambda: str(uuid.uuid4()))

    @field_validator("seed_url")
    @classmethod
    def _check_seed_url(cls, value: str) -> str:
        value = value.strip()
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ValueError(f"Invalid URL format: {value!r}")
        return value

    @property
    def seed_hostname(self) -> str:
        return urlparse(self.seed_url).hostname or ""


@dataclass(frozen=True)
class FrontierEntry:
    """A discovered URL waiting to be fetched, with the depth it was found at."""
    url: str
    depth: int


@dataclass(frozen=True)
class RedirectHop:
    """One hop of an HTTP redirect chain."""
    from_url: str
    to_url: str
    status_code: int


@dataclass(frozen=True)
class LinkStatus:
    """HTTP status observed for an outgoing link."""
    url: str
    status_code: int


@dataclass
class FetchResult:
    """Raw outcome of fetching one URL, lightweight or rendered."""

    url: str
    status_code: int
    html: str = ""
    html_size: int = 0  # UTF-8 bytes of html
    load_time_ms: int = 0
    final_url: Optional[str] = None
    content_type: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    redirect_history: list[RedirectHop] = field(default_factory=list)

    @property
    def is_html(self) -> bool:
        # A missing content type is treated as markup
        return not self.content_type or "html" in self.content_type.lower()


@dataclass(frozen=True)
class TechnicalIssue:
    """A single finding of one audit rule against one page."""
    code: str
    severity: IssueSeverity
    message: str
    page_url: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "severity": self.severity.value,
            "message": self.message,
            "page_url": self.page_url,
        }


@dataclass(frozen=True)
class AuditResult:
    """Issues and passed check labels for one page."""
    url: str
    issues: tuple[TechnicalIssue, ...] = ()
    passed_checks: tuple[str, ...] = ()


@dataclass(frozen=True)
class PageSeoMetrics:
    """Structural SEO signals extracted from page markup."""

    url: str
    title_length: int = 0
    title_count: int = 0
    meta_description_length: int = 0
    h1_count: int = 0
    h2_count: int = 0
    h3_count: int = 0
    h4_count: int = 0
    h5_count: int = 0
    h6_count: int = 0
    word_count: int = 0
    images_with_alt: int = 0
    images_without_alt: int = 0
    internal_link_count: int = 0

    @property
    def total_images(self) -> int:
        return self.images_with_alt + self.images_without_alt

    @property
    def image_alt_coverage_percent(self) -> Optional[float]:
        """Share of images carrying an alt attribute; None when there are no images."""
        if self.total_images == 0:
            return None
        return self.images_with_alt / self.total_images * 100


@dataclass(frozen=True)
class PageSpeedMetrics:
    """Navigation timing captured in a browser (milliseconds)."""
    url: str
    ttfb: int = 0
    dom_load_time: int = 0
    total_load_time: int = 0

    @property
    def has_data(self) -> bool:
        return self.ttfb > 0 or self.dom_load_time > 0 or self.total_load_time > 0


@dataclass(frozen=True)
class ScoreDeduction:
    """Points taken off a score and why."""
    reason: str
    severity: IssueSeverity
    points_deducted: int


@dataclass(frozen=True)
class IssueBreakdown:
    """Issue count and deducted points for one issue code."""
    code: str
    count: int
    points_deducted: int


@dataclass(frozen=True)
class ScoreBreakdown:
    """Technical, content and weighted overall score (0-100) of one page."""
    technical_score: int
    content_score: int
    overall_score: int


@dataclass(frozen=True)
class PageResult:
    """Everything recorded for one fetched page. Never mutated after creation."""

    url: str
    depth: int
    status_code: int
    html_size: int
    load_time_ms: int
    crawled_at: str
    indexable: bool
    seo_score: int
    issues: tuple[TechnicalIssue, ...] = ()
    passed_checks: tuple[str, ...] = ()
    issue_breakdown: tuple[IssueBreakdown, ...] = ()
    score: Optional[ScoreBreakdown] = None
    seo_metrics: Optional[PageSeoMetrics] = None
    speed: Optional[PageSpeedMetrics] = None
    used_render_fallback: bool = False
    title: Optional[str] = None
    final_url: Optional[str] = None

    @property
    def errors_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity is IssueSeverity.ERROR)

    @property
    def warnings_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity is IssueSeverity.WARNING)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-friendly dictionary."""
        return {
            "url": self.url,
            "depth": self.depth,
            "status_code": self.status_code,
            "html_size": self.html_size,
            "load_time_ms": self.load_time_ms,
            "crawled_at": self.crawled_at,
            "indexable": self.indexable,
            "seo_score": self.seo_score,
            "issues": [issue.to_dict() for issue in self.issues],
            "passed_checks": list(self.passed_checks),
            "issue_breakdown": [asdict(b) for b in self.issue_breakdown],
            "score": asdict(self.score) if self.score else None,
            "seo_metrics": asdict(self.seo_metrics) if self.seo_metrics else None,
            "speed": asdict(self.speed) if self.speed else None,
            "used_render_fallback": self.used_render_fallback,
            "title": self.title,
            "final_url": self.final_url,
        }


@dataclass(frozen=True)
class CrawlCompletion:
    """Terminal signal of a crawl job."""
    crawl_id: str
    status: CrawlStatus
    pages_crawled: int
    failed_fetches: int = 0
    error: Optional[str] = None


@dataclass(frozen=True)
class SiteScoreSummary:
    """Site score from the per-page technical (seo) scores plus issue totals."""
    site_score: int = 0
    total_issues: int = 0
    errors_count: int = 0
    warnings_count: int = 0


@dataclass(frozen=True)
class SiteSeoScoreSummary:
    """Average score breakdown over the pages that have one."""
    average_technical_score: int = 0
    average_content_score: int = 0
    average_overall_score: int = 0
    pages_scored: int = 0


@dataclass(frozen=True)
class SiteSpeedSummary:
    """Average navigation timings over the pages with speed data."""
    average_ttfb: int = 0
    average_dom_load_time: int = 0
    average_total_load_time: int = 0
    pages_with_speed_data: int = 0


@dataclass(frozen=True)
class TechnicalSummary:
    """Site-wide technical issue overview."""
    total_pages: int = 0
    indexable_pages: int = 0
    non_indexable_pages: int = 0
    total_issues: int = 0
    errors_count: int = 0
    warnings_count: int = 0
    issues_by_code: tuple[IssueBreakdown, ...] = ()
    average_load_time_ms: int = 0
    status_codes: dict[int, int] = field(default_factory=dict)
    pages_using_render_fallback: int = 0


@dataclass(frozen=True)
class ContentSummary:
    """Site-wide structural content overview."""
    pages_with_metrics: int = 0
    average_word_count: int = 0
    pages_missing_title: int = 0
    pages_missing_meta_description: int = 0
    pages_with_multiple_h1: int = 0
    pages_with_thin_content: int = 0
    total_images: int = 0
    images_with_alt: int = 0
    image_alt_coverage_percent: Optional[int] = None
    average_internal_links: int = 0


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()
