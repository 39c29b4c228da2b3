"""SEO audit crawler: site crawling with technical and content scoring."""

__version__ = "0.1.0"

from seoaudit.config import CrawlerConfig, ScoringThresholds, settings
from seoaudit.fetcher import (
    FetchAdapter,
    FetchAdapterUnavailable,
    FetchError,
    HttpFetchAdapter,
    should_use_render_fallback,
)
from seoaudit.models import (
    CrawlCompletion,
    CrawlJob,
    CrawlStatus,
    FetchResult,
    IssueSeverity,
    PageResult,
    PageSeoMetrics,
    PageSpeedMetrics,
    ScoreBreakdown,
    TechnicalIssue,
)
from seoaudit.page_metrics import extract_metrics
from seoaudit.reporting import CrawlReport
from seoaudit.service import CrawlHandle, CrawlService
from seoaudit.site_crawler import CrawlJobFailed, SiteCrawler
from seoaudit.technical import AuditInputs, run_audits

__all__ = [
    "__version__",
    "AuditInputs",
    "CrawlCompletion",
    "CrawlerConfig",
    "CrawlHandle",
    "CrawlJob",
    "CrawlJobFailed",
    "CrawlReport",
    "CrawlService",
    "CrawlStatus",
    "FetchAdapter",
    "FetchAdapterUnavailable",
    "FetchError",
    "FetchResult",
    "HttpFetchAdapter",
    "IssueSeverity",
    "PageResult",
    "PageSeoMetrics",
    "PageSpeedMetrics",
    "ScoreBreakdown",
    "ScoringThresholds",
    "SiteCrawler",
    "TechnicalIssue",
    "extract_metrics",
    "run_audits",
    "settings",
    "should_use_render_fallback",
]
