"""Site crawler with breadth-first search for multi-page analysis."""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import AsyncIterator, Optional

from seoaudit.config import CrawlerConfig, ScoringThresholds, default_crawler_config, default_thresholds
from seoaudit.constants import SEED_DEPTH
from seoaudit.fetcher import FetchAdapter, FetchAdapterUnavailable, FetchError, should_use_render_fallback
from seoaudit.link_extractor import extract_links, extract_outgoing_links
from seoaudit.markup import meta_content, parse_markup
from seoaudit.models import (
    CrawlJob,
    FetchResult,
    FrontierEntry,
    LinkStatus,
    PageResult,
    PageSpeedMetrics,
    utc_timestamp,
)
from seoaudit.page_metrics import extract_metrics, is_indexable
from seoaudit.scoring import build_content_rules, score_page
from seoaudit.speed import SpeedBudget
from seoaudit.technical import AuditInputs, TechnicalAuditRunner
from seoaudit.urls import is_internal_url, normalize_url

logger = logging.getLogger(__name__)


class CrawlJobFailed(Exception):
    """Raised when a crawl job cannot continue."""
    def __init__(self, crawl_id: str, message: str):
        self.crawl_id = crawl_id
        self.message = message
        super().__init__(f"Crawl {crawl_id} failed: {message}")


@dataclass
class CrawlState:
    """Mutable traversal state of one crawl job."""

    frontier: deque = field(default_factory=deque)
    visited: set[str] = field(default_factory=set)
    queued: set[str] = field(default_factory=set)
    pages_fetched: int = 0
    pages_succeeded: int = 0
    failed_fetches: int = 0
    speed_budget: SpeedBudget = field(default_factory=lambda: SpeedBudget(0, enabled=False))

    def enqueue(self, url: str, depth: int) -> bool:
        """Queue a URL unless it was already visited or queued."""
        if url in self.visited or url in self.queued:
            return False
        self.queued.add(url)
        self.frontier.append(FrontierEntry(url=url, depth=depth))
        return True

    def pop(self) -> FrontierEntry:
        entry = self.frontier.popleft()
        self.queued.discard(entry.url)
        return entry


@dataclass
class FetchedPage:
    """Result of the fetch step, after the fallback decision."""
    result: FetchResult
    used_render_fallback: bool = False


class SiteCrawler:
    """Crawls a site using breadth-first search (BFS).

    Processes pages level by level:
    - depth 0: the seed URL
    - depth 1: all same-host pages linked from the seed
    - depth 2: all same-host pages linked from depth 1
    - etc.

    Pages are emitted in the order they are popped from the frontier, so the
    pages closest to the seed always come first.

    A SiteCrawler holds no per-job state and may run several jobs at once.
    """

    def __init__(
        self,
        adapter: FetchAdapter,
        config: CrawlerConfig = default_crawler_config,
        thresholds: ScoringThresholds = default_thresholds,
    ):
        """Initialize the site crawler.

        Args:
            adapter: FetchAdapter used for every network access
            config: Crawler configuration
            thresholds: Content scoring thresholds
        """
        self.adapter = adapter
        self.config = config
        self.content_rules = build_content_rules(thresholds)
        self.audit_runner = TechnicalAuditRunner()

    def new_state(self, job: CrawlJob) -> CrawlState:
        """Fresh traversal state for a job, seeded with the start URL."""
        state = CrawlState(
            speed_budget=SpeedBudget(self.config.speed_max_pages, enabled=self.config.speed_enabled),
        )
        state.enqueue(normalize_url(job.seed_url), SEED_DEPTH)
        return state

    async def run(
        self,
        job: CrawlJob,
        cancel_event: Optional[asyncio.Event] = None,
        state: Optional[CrawlState] = None,
    ) -> AsyncIterator[PageResult]:
        """Crawl the site described by ``job``.

        Args:
            job: The crawl job
            cancel_event: When set, the crawl stops before the next frontier pop
            state: Traversal state to use; a fresh one is created if omitted

        Yields:
            One PageResult per successfully fetched URL, in BFS order

        Raises:
            CrawlJobFailed: The fetch adapter became unreachable, or no page
                could be fetched at all
        """
        state = state or self.new_state(job)

        logger.info(
            f"Starting crawl {job.crawl_id} from {job.seed_url} "
            f"(max_depth={job.max_depth}, max_pages={job.max_pages})"
        )

        while state.frontier and state.pages_fetched < job.max_pages:
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Crawl {job.crawl_id} cancelled after {state.pages_succeeded} pages")
                return

            entry = state.pop()
            if entry.url in state.visited:
                continue
            state.visited.add(entry.url)
            state.pages_fetched += 1

            try:
                fetched = await self._fetch_page(entry.url)
            except FetchAdapterUnavailable as e:
                logger.error(f"Fetch adapter unavailable during crawl {job.crawl_id}: {e.message}")
                raise CrawlJobFailed(job.crawl_id, f"Fetch adapter unavailable: {e.message}") from e
            except FetchError as e:
                state.failed_fetches += 1
                logger.warning(f"Failed to fetch {entry.url}: {e.message}")
                continue

            state.pages_succeeded += 1
            if fetched.result.final_url:
                # A redirect target is not fetched a second time under its own URL
                state.visited.add(normalize_url(fetched.result.final_url))
            page, links = await self._process_page(job, entry, fetched, state)

            logger.info(
                f"[{state.pages_fetched}/{job.max_pages}] depth={entry.depth} {page.url} "
                f"status={page.status_code} score={page.seo_score} issues={len(page.issues)}"
            )
            yield page

            if entry.depth < job.max_depth:
                added = sum(1 for link in links if state.enqueue(link, entry.depth + 1))
                if added:
                    logger.debug(f"Queued {added} new links from {entry.url} at depth {entry.depth + 1}")

        if state.pages_succeeded == 0 and state.failed_fetches:
            raise CrawlJobFailed(job.crawl_id, f"Seed URL could not be fetched: {job.seed_url}")

        logger.info(
            f"Crawl {job.crawl_id} complete: {state.pages_succeeded} pages, "
            f"{state.failed_fetches} failed fetches"
        )

    async def _fetch_page(self, url: str) -> FetchedPage:
        """Lightweight fetch plus at most one browser render for tiny 2xx responses."""
        result = await self.adapter.fetch(url)

        if not should_use_render_fallback(
            result.status_code, result.html_size, self.config.render_fallback_min_bytes
        ):
            return FetchedPage(result)

        logger.info(f"Small response ({result.html_size} bytes) for {url}, rendering with browser")
        try:
            rendered = await self.adapter.fetch_rendered(url)
        except FetchAdapterUnavailable:
            raise
        except FetchError as e:
            logger.warning(f"Render fallback failed for {url}, keeping lightweight result: {e.message}")
            return FetchedPage(result)

        if not rendered.redirect_history:
            rendered.redirect_history = result.redirect_history
        logger.info(f"Render fallback for {url}: {result.html_size} -> {rendered.html_size} bytes")
        return FetchedPage(rendered, used_render_fallback=True)

    async def _link_statuses(self, links: list[str]) -> Optional[list[LinkStatus]]:
        if not self.config.check_link_status or not links:
            return None
        try:
            return await self.adapter.check_links(links)
        except FetchAdapterUnavailable:
            raise
        except FetchError as e:
            logger.warning(f"Link status check failed: {e.message}")
            return None

    async def _measure_speed(self, url: str, state: CrawlState) -> Optional[PageSpeedMetrics]:
        if not state.speed_budget.consume():
            return None
        try:
            speed = await self.adapter.measure_speed(url)
        except FetchAdapterUnavailable:
            raise
        except FetchError as e:
            logger.warning(f"Speed measurement failed for {url}: {e.message}")
            return None
        if speed is not None and not speed.has_data:
            return None
        return speed

    async def _process_page(
        self,
        job: CrawlJob,
        entry: FrontierEntry,
        fetched: FetchedPage,
        state: CrawlState,
    ) -> tuple[PageResult, list[str]]:
        """Extract metrics, run audits and score one fetched page.

        Returns:
            The PageResult and the internal links discovered on the page
        """
        result = fetched.result
        page_url = result.final_url or entry.url
        soup = parse_markup(result.html if result.is_html else "")

        metrics = extract_metrics(soup, page_url) if result.is_html else None
        links = extract_links(soup, page_url, job.seed_hostname, self.config.skip_asset_links)

        robots = meta_content(soup, "robots")
        if robots is None:
            robots = meta_content(soup, "googlebot")

        outgoing = await self._link_statuses(extract_outgoing_links(soup, page_url))

        audit = self.audit_runner.run_all_audits(AuditInputs(
            page_url=page_url,
            soup=soup,
            report_url=entry.url,
            outgoing_links=outgoing,
            redirect_history=result.redirect_history,
            meta_robots_content=robots,
            is_internal_page=is_internal_url(page_url, job.seed_url),
        ))
        scored = score_page(audit.issues, metrics, self.content_rules)

        speed = None
        if result.is_html and 200 <= result.status_code < 400:
            speed = await self._measure_speed(entry.url, state)

        title_tag = soup.find("title")
        title = title_tag.get_text().strip() if title_tag else None

        page = PageResult(
            url=entry.url,
            depth=entry.depth,
            status_code=result.status_code,
            html_size=result.html_size,
            load_time_ms=result.load_time_ms,
            crawled_at=utc_timestamp(),
            indexable=is_indexable(soup),
            seo_score=scored.seo_score,
            issues=audit.issues,
            passed_checks=audit.passed_checks,
            issue_breakdown=scored.issue_breakdown,
            score=scored.breakdown,
            seo_metrics=metrics,
            speed=speed,
            used_render_fallback=fetched.used_render_fallback,
            title=title or None,
            final_url=result.final_url,
        )
        return page, links
