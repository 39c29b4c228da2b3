"""Tests for the BFS site crawler."""

import asyncio

import pytest

from seoaudit.config import CrawlerConfig
from seoaudit.fetcher import FetchAdapterUnavailable, FetchError
from seoaudit.models import CrawlJob, IssueSeverity, PageSpeedMetrics, RedirectHop
from seoaudit.site_crawler import CrawlJobFailed, CrawlState, SiteCrawler

from helpers import FakeFetchAdapter, fetch_result, link_page, make_html


SEED = "https://example.com/"


def url(path: str) -> str:
    return f"https://example.com{path}"


async def collect(crawler: SiteCrawler, job: CrawlJob, **kwargs) -> list:
    return [page async for page in crawler.run(job, **kwargs)]


class TestTraversal:
    """Tests for frontier handling and budgets."""

    @pytest.mark.asyncio
    async def test_depth_limit(self):
        adapter = FakeFetchAdapter({
            SEED: link_page("/a", "/b"),
            url("/a"): link_page("/deep"),
            url("/b"): link_page("/deeper"),
            url("/deep"): link_page(),
            url("/deeper"): link_page(),
        })
        job = CrawlJob(seed_url="https://example.com", max_depth=1, max_pages=10)

        pages = await collect(SiteCrawler(adapter), job)

        assert [(p.url, p.depth) for p in pages] == [(SEED, 0), (url("/a"), 1), (url("/b"), 1)]
        assert url("/deep") not in adapter.fetched

    @pytest.mark.asyncio
    async def test_breadth_first_order(self):
        adapter = FakeFetchAdapter({
            SEED: link_page("/a", "/b"),
            url("/a"): link_page("/a1"),
            url("/b"): link_page("/b1"),
            url("/a1"): link_page(),
            url("/b1"): link_page(),
        })
        job = CrawlJob(seed_url=SEED, max_depth=2, max_pages=10)

        pages = await collect(SiteCrawler(adapter), job)

        assert [p.url for p in pages] == [SEED, url("/a"), url("/b"), url("/a1"), url("/b1")]
        assert [p.depth for p in pages] == [0, 1, 1, 2, 2]

    @pytest.mark.asyncio
    async def test_page_budget(self):
        adapter = FakeFetchAdapter(
            {SEED: link_page(*[f"/p{i}" for i in range(10)])}
            | {url(f"/p{i}"): link_page() for i in range(10)}
        )
        job = CrawlJob(seed_url=SEED, max_depth=3, max_pages=4)

        pages = await collect(SiteCrawler(adapter), job)

        assert len(pages) == 4
        assert len(adapter.fetched) == 4

    @pytest.mark.asyncio
    async def test_no_duplicate_visits(self):
        adapter = FakeFetchAdapter({
            SEED: link_page("/a", "/b", "/a#top", "/a/"),
            url("/a"): link_page("/", "/b", "/a"),
            url("/b"): link_page("/a", "/"),
        })
        job = CrawlJob(seed_url=SEED, max_depth=5, max_pages=50)

        pages = await collect(SiteCrawler(adapter), job)

        assert [p.url for p in pages] == [SEED, url("/a"), url("/b")]
        assert len(adapter.fetched) == len(set(adapter.fetched)) == 3

    @pytest.mark.asyncio
    async def test_external_links_never_fetched(self):
        adapter = FakeFetchAdapter({
            SEED: link_page("https://other.com/", "https://blog.example.com/", "/asset.css", "/ok"),
            url("/ok"): link_page(),
        })
        job = CrawlJob(seed_url=SEED, max_depth=2, max_pages=10)

        pages = await collect(SiteCrawler(adapter), job)

        assert adapter.fetched == [SEED, url("/ok")]
        assert all(p.url.startswith("https://example.com/") for p in pages)

    @pytest.mark.asyncio
    async def test_redirect_target_not_fetched_twice(self):
        adapter = FakeFetchAdapter({
            SEED: link_page("/old", "/new"),
            url("/old"): fetch_result(url("/old"), link_page("/"), final_url=url("/new")),
            url("/new"): link_page(),
        })
        job = CrawlJob(seed_url=SEED, max_depth=2, max_pages=10)

        pages = await collect(SiteCrawler(adapter), job)

        assert [p.url for p in pages] == [SEED, url("/old")]
        assert pages[1].final_url == url("/new")

    @pytest.mark.asyncio
    async def test_state_is_per_run(self):
        adapter = FakeFetchAdapter({SEED: link_page("/a"), url("/a"): link_page()})
        crawler = SiteCrawler(adapter)
        job = CrawlJob(seed_url=SEED, max_depth=1, max_pages=10)

        first = await collect(crawler, job)
        second = await collect(crawler, job)

        assert [p.url for p in first] == [p.url for p in second]

    def test_new_state_is_seeded(self):
        state = SiteCrawler(FakeFetchAdapter({})).new_state(CrawlJob(seed_url="https://Example.com"))

        assert [(e.url, e.depth) for e in state.frontier] == [(SEED, 0)]
        assert state.enqueue(SEED, 1) is False


class TestRenderFallback:
    """Tests for the render fallback path."""

    @pytest.mark.asyncio
    async def test_failed_render_keeps_lightweight_result(self):
        small = "<html><body>" + "x" * 174 + "</body></html>"
        assert len(small) == 200
        adapter = FakeFetchAdapter({SEED: small}, rendered={SEED: FetchError(SEED, "render timeout")})
        job = CrawlJob(seed_url=SEED, max_depth=1, max_pages=5)

        pages = await collect(SiteCrawler(adapter), job)

        assert adapter.render_calls == [SEED]
        assert len(pages) == 1
        assert pages[0].html_size == 200
        assert pages[0].status_code == 200
        assert pages[0].used_render_fallback is False

    @pytest.mark.asyncio
    async def test_rendered_result_replaces_lightweight(self):
        rendered_html = link_page("/from-js")
        adapter = FakeFetchAdapter(
            {SEED: "<html><body><div id=app></div></body></html>", url("/from-js"): link_page()},
            rendered={SEED: rendered_html},
        )
        job = CrawlJob(seed_url=SEED, max_depth=1, max_pages=5)

        pages = await collect(SiteCrawler(adapter), job)

        assert pages[0].used_render_fallback is True
        assert pages[0].html_size == len(rendered_html)
        assert [p.url for p in pages] == [SEED, url("/from-js")]

    @pytest.mark.asyncio
    async def test_no_render_for_large_or_error_pages(self):
        adapter = FakeFetchAdapter({
            SEED: link_page("/missing"),
            url("/missing"): fetch_result(url("/missing"), "<p>404</p>", status_code=404),
        })
        job = CrawlJob(seed_url=SEED, max_depth=1, max_pages=5)

        pages = await collect(SiteCrawler(adapter), job)

        assert adapter.render_calls == []
        assert pages[1].status_code == 404


class TestFailures:
    """Tests for fetch failures and job failure."""

    @pytest.mark.asyncio
    async def test_failed_page_is_skipped(self):
        adapter = FakeFetchAdapter({SEED: link_page("/broken", "/ok"), url("/ok"): link_page()})
        job = CrawlJob(seed_url=SEED, max_depth=1, max_pages=10)
        crawler = SiteCrawler(adapter)
        state = crawler.new_state(job)

        pages = await collect(crawler, job, state=state)

        assert [p.url for p in pages] == [SEED, url("/ok")]
        assert state.failed_fetches == 1

    @pytest.mark.asyncio
    async def test_unreachable_seed_fails_job(self):
        job = CrawlJob(seed_url=SEED)

        with pytest.raises(CrawlJobFailed) as exc_info:
            await collect(SiteCrawler(FakeFetchAdapter({})), job)

        assert exc_info.value.crawl_id == job.crawl_id

    @pytest.mark.asyncio
    async def test_adapter_unavailable_fails_job_keeping_pages(self):
        adapter = FakeFetchAdapter({
            SEED: link_page("/a"),
            url("/a"): FetchAdapterUnavailable(url("/a"), "client closed"),
        })
        job = CrawlJob(seed_url=SEED, max_depth=1)
        pages = []

        with pytest.raises(CrawlJobFailed):
            async for page in SiteCrawler(adapter).run(job):
                pages.append(page)

        assert [p.url for p in pages] == [SEED]

    @pytest.mark.asyncio
    async def test_run_of_failures_after_success_does_not_stop_job(self):
        slow = [f"/slow{i}" for i in range(6)]
        adapter = FakeFetchAdapter({SEED: link_page(*slow, "/ok"), url("/ok"): link_page()})
        job = CrawlJob(seed_url=SEED, max_depth=1)
        crawler = SiteCrawler(adapter)
        state = crawler.new_state(job)

        pages = await collect(crawler, job, state=state)

        assert [p.url for p in pages] == [SEED, url("/ok")]
        assert state.failed_fetches == 6
        assert adapter.fetched[-1] == url("/ok")

    @pytest.mark.asyncio
    async def test_cancel_between_pops(self):
        adapter = FakeFetchAdapter({
            SEED: link_page("/a", "/b"),
            url("/a"): link_page(),
            url("/b"): link_page(),
        })
        job = CrawlJob(seed_url=SEED, max_depth=1)
        cancel = asyncio.Event()
        pages = []

        async for page in SiteCrawler(adapter).run(job, cancel_event=cancel):
            pages.append(page)
            cancel.set()

        assert [p.url for p in pages] == [SEED]
        assert adapter.fetched == [SEED]


class TestPageResults:
    """Tests for what gets recorded per page."""

    @pytest.mark.asyncio
    async def test_scores_and_metrics(self):
        adapter = FakeFetchAdapter({SEED: link_page()})

        pages = await collect(SiteCrawler(adapter), CrawlJob(seed_url=SEED))

        page = pages[0]
        assert page.seo_metrics is not None
        assert page.score is not None
        assert page.title == "A perfectly reasonable page title here"
        assert page.indexable is True
        assert page.crawled_at.endswith("+00:00")
        assert 0 <= page.seo_score <= 100
        assert [b.code for b in page.issue_breakdown] == ["MISSING_CANONICAL"]

    @pytest.mark.asyncio
    async def test_redirect_chain_is_reported(self):
        history = [
            RedirectHop(url("/r0"), url("/r1"), 301),
            RedirectHop(url("/r1"), url("/r2"), 302),
            RedirectHop(url("/r2"), SEED, 301),
        ]
        adapter = FakeFetchAdapter({SEED: fetch_result(SEED, link_page(), redirect_history=history)})

        pages = await collect(SiteCrawler(adapter), CrawlJob(seed_url=SEED))

        chain = [i for i in pages[0].issues if i.code == "REDIRECT_CHAIN"]
        assert len(chain) == 1
        assert chain[0].severity is IssueSeverity.ERROR

    @pytest.mark.asyncio
    async def test_audits_use_redirect_target(self):
        final = "https://www.example.com/"
        html = make_html(
            body="x" * 600,
            head_extra=f'<link rel="canonical" href="{final}">',
        )
        history = [RedirectHop(SEED, final, 301)]
        adapter = FakeFetchAdapter({
            SEED: fetch_result(SEED, html, final_url=final, redirect_history=history),
        })

        pages = await collect(SiteCrawler(adapter), CrawlJob(seed_url=SEED))

        assert pages[0].url == SEED
        assert pages[0].final_url == final
        assert pages[0].issues == ()
        assert "canonical" in pages[0].passed_checks

    @pytest.mark.asyncio
    async def test_noindex_page(self):
        html = make_html(
            body="x" * 600,
            head_extra='<meta name="robots" content="noindex"><link rel="canonical" href="/">',
        )
        adapter = FakeFetchAdapter({SEED: html})

        pages = await collect(SiteCrawler(adapter), CrawlJob(seed_url=SEED))

        assert pages[0].indexable is False
        assert [i.code for i in pages[0].issues] == ["NOINDEX_INTERNAL_PAGE"]

    @pytest.mark.asyncio
    async def test_link_status_checks(self):
        adapter = FakeFetchAdapter(
            {SEED: link_page("/gone", "https://other.com/down")},
            link_statuses={url("/gone"): 404, "https://other.com/down": 502},
        )
        crawler = SiteCrawler(adapter, CrawlerConfig(check_link_status=True))

        pages = await collect(crawler, CrawlJob(seed_url=SEED, max_depth=1, max_pages=1))

        codes = [i.code for i in pages[0].issues]
        assert "BROKEN_LINK_4XX" in codes
        assert "BROKEN_LINK_5XX" in codes
        assert adapter.link_check_calls == [[url("/gone"), "https://other.com/down"]]

    @pytest.mark.asyncio
    async def test_link_checks_disabled_by_default(self):
        adapter = FakeFetchAdapter({SEED: link_page("/gone")}, link_statuses={url("/gone"): 404})

        pages = await collect(SiteCrawler(adapter), CrawlJob(seed_url=SEED, max_depth=1, max_pages=1))

        assert adapter.link_check_calls == []
        assert "broken-links" not in pages[0].passed_checks

    @pytest.mark.asyncio
    async def test_non_html_has_no_metrics(self):
        adapter = FakeFetchAdapter({
            SEED: fetch_result(SEED, '{"ok": true}' + " " * 600, content_type="application/json"),
        })

        pages = await collect(SiteCrawler(adapter), CrawlJob(seed_url=SEED))

        assert pages[0].seo_metrics is None
        assert pages[0].score is None


class TestSpeedBudget:
    """Tests for per-job speed measurement."""

    @pytest.fixture
    def site(self):
        return {SEED: link_page(*[f"/p{i}" for i in range(4)])} | {url(f"/p{i}"): link_page() for i in range(4)}

    @pytest.mark.asyncio
    async def test_speed_capped_per_job(self, site):
        adapter = FakeFetchAdapter(site, speed={})
        crawler = SiteCrawler(adapter, CrawlerConfig(speed_max_pages=2))
        job = CrawlJob(seed_url=SEED, max_depth=1)

        pages = await collect(crawler, job)

        assert [p.speed is not None for p in pages] == [True, True, False, False, False]
        assert len(adapter.speed_calls) == 2

        # A second job gets a fresh budget
        again = await collect(crawler, CrawlJob(seed_url=SEED, max_depth=1))
        assert sum(1 for p in again if p.speed is not None) == 2

    @pytest.mark.asyncio
    async def test_speed_disabled(self, site):
        adapter = FakeFetchAdapter(site, speed={})
        crawler = SiteCrawler(adapter, CrawlerConfig(speed_enabled=False))

        pages = await collect(crawler, CrawlJob(seed_url=SEED, max_depth=1))

        assert adapter.speed_calls == []
        assert all(p.speed is None for p in pages)

    @pytest.mark.asyncio
    async def test_empty_measurement_is_omitted(self, site):
        adapter = FakeFetchAdapter(site, speed={SEED: PageSpeedMetrics(url=SEED)})

        pages = await collect(SiteCrawler(adapter), CrawlJob(seed_url=SEED, max_depth=1))

        assert pages[0].speed is None
        assert pages[1].speed is not None

    def test_state_budget_default(self):
        assert CrawlState().speed_budget.available is False
