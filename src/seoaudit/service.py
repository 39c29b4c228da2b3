"""Crawl service: runs crawl jobs as background tasks and exposes their progress."""

import asyncio
import logging
from typing import AsyncIterator, Dict, List, Optional

from seoaudit.config import CrawlerConfig, ScoringThresholds, default_crawler_config, default_thresholds
from seoaudit.fetcher import FetchAdapter
from seoaudit.models import CrawlCompletion, CrawlJob, CrawlStatus, PageResult
from seoaudit.reporting import CrawlReport
from seoaudit.site_crawler import CrawlJobFailed, SiteCrawler

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({CrawlStatus.COMPLETED, CrawlStatus.FAILED, CrawlStatus.CANCELLED})


class CrawlHandle:
    """
    A running (or finished) crawl job.

    Pages can be streamed while the crawl runs; every iterator starts from
    the first page, so late consumers miss nothing:

        handle = service.start_crawl(job)
        async for page in handle:
            print(page.url, page.seo_score)
        completion = await handle.wait()
    """

    def __init__(self, job: CrawlJob, crawler: SiteCrawler):
        self.job = job
        self._crawler = crawler
        self._results: List[PageResult] = []
        self._status = CrawlStatus.PENDING
        self._error: Optional[str] = None
        self._failed_fetches = 0
        self._cancel_event = asyncio.Event()
        self._changed = asyncio.Condition()
        self._task: Optional[asyncio.Task] = None

    @property
    def crawl_id(self) -> str:
        return self.job.crawl_id

    @property
    def status(self) -> CrawlStatus:
        return self._status

    @property
    def done(self) -> bool:
        return self._status in TERMINAL_STATUSES

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def results(self) -> List[PageResult]:
        """Pages emitted so far, in crawl order."""
        return list(self._results)

    @property
    def completion(self) -> CrawlCompletion:
        return CrawlCompletion(
            crawl_id=self.crawl_id,
            status=self._status,
            pages_crawled=len(self._results),
            failed_fetches=self._failed_fetches,
            error=self._error,
        )

    def report(self, thresholds: ScoringThresholds = default_thresholds) -> CrawlReport:
        """Query surface over the pages emitted so far."""
        return CrawlReport(self._results, thresholds)

    def start(self) -> None:
        """Schedule the crawl on the running event loop."""
        if self._task is not None:
            raise RuntimeError(f"Crawl {self.crawl_id} already started")
        self._task = asyncio.create_task(self._run(), name=f"crawl-{self.crawl_id}")

    def cancel(self) -> None:
        """Ask the crawl to stop before its next frontier pop.

        The page being processed is finished and emitted first.
        """
        if not self.done:
            logger.info(f"Cancellation requested for crawl {self.crawl_id}")
            self._cancel_event.set()

    async def wait(self) -> CrawlCompletion:
        """Wait for the crawl to finish and return its terminal signal."""
        if self._task is not None:
            await asyncio.wait({self._task})
        return self.completion

    async def _notify(self) -> None:
        async with self._changed:
            self._changed.notify_all()

    async def _run(self) -> None:
        self._status = CrawlStatus.RUNNING
        state = self._crawler.new_state(self.job)

        try:
            async for page in self._crawler.run(self.job, self._cancel_event, state):
                self._results.append(page)
                await self._notify()
        except CrawlJobFailed as e:
            logger.error(str(e))
            self._error = e.message
            self._status = CrawlStatus.FAILED
        except asyncio.CancelledError:
            self._status = CrawlStatus.CANCELLED
            raise
        except Exception as e:
            logger.exception(f"Crawl {self.crawl_id} aborted by unexpected error")
            self._error = f"{type(e).__name__}: {e}"
            self._status = CrawlStatus.FAILED
        else:
            stopped_early = bool(state.frontier) and state.pages_fetched < self.job.max_pages
            if self._cancel_event.is_set() and stopped_early:
                self._status = CrawlStatus.CANCELLED
            else:
                self._status = CrawlStatus.COMPLETED
        finally:
            self._failed_fetches = state.failed_fetches
            await self._notify()

    async def __aiter__(self) -> AsyncIterator[PageResult]:
        index = 0
        while True:
            async with self._changed:
                await self._changed.wait_for(lambda: index < len(self._results) or self.done)
            while index < len(self._results):
                yield self._results[index]
                index += 1
            if self.done and index >= len(self._results):
                return


class CrawlService:
    """
    Starts crawl jobs and keeps track of them by crawl id.

    Jobs run concurrently and share only the fetch adapter; each job gets
    its own traversal state and speed budget.
    """

    def __init__(
        self,
        adapter: FetchAdapter,
        config: CrawlerConfig = default_crawler_config,
        thresholds: ScoringThresholds = default_thresholds,
    ):
        self.adapter = adapter
        self.thresholds = thresholds
        self.crawler = SiteCrawler(adapter, config, thresholds)
        self._handles: Dict[str, CrawlHandle] = {}

    def start_crawl(self, job: CrawlJob) -> CrawlHandle:
        """Start a crawl job in the background.

        Must be called from within a running event loop.

        Raises:
            ValueError: A job with the same crawl id was already started
        """
        if job.crawl_id in self._handles:
            raise ValueError(f"Crawl {job.crawl_id} already exists")

        handle = CrawlHandle(job, self.crawler)
        self._handles[job.crawl_id] = handle
        handle.start()
        logger.info(f"Crawl {job.crawl_id} started for {job.seed_url}")
        return handle

    def get(self, crawl_id: str) -> Optional[CrawlHandle]:
        return self._handles.get(crawl_id)

    def get_status(self, crawl_id: str) -> Optional[CrawlStatus]:
        handle = self.get(crawl_id)
        return handle.status if handle else None

    def get_report(self, crawl_id: str) -> Optional[CrawlReport]:
        handle = self.get(crawl_id)
        return handle.report(self.thresholds) if handle else None

    def list_crawls(self) -> List[CrawlCompletion]:
        return [handle.completion for handle in self._handles.values()]

    def cancel(self, crawl_id: str) -> bool:
        handle = self.get(crawl_id)
        if handle is None or handle.done:
            return False
        handle.cancel()
        return True

    async def shutdown(self) -> None:
        """Cancel all running crawls and wait for them to stop."""
        running = [handle for handle in self._handles.values() if not handle.done]
        for handle in running:
            handle.cancel()
        for handle in running:
            await handle.wait()
        logger.info(f"Crawl service stopped ({len(running)} running crawls cancelled)")
