"""Tests for speed metrics and the per-job speed budget."""

import pytest

from seoaudit.models import PageSpeedMetrics
from seoaudit.speed import SpeedBudget, calculate_site_speed, extract_page_speed, speed_from_timings


class FakePage:
    """Minimal stand-in for a playwright page."""

    def __init__(self, timings=None, error=None):
        self.url = "https://example.com/"
        self._timings = timings
        self._error = error

    async def evaluate(self, script):
        if self._error:
            raise self._error
        return self._timings


class TestSpeedBudget:
    """Tests for SpeedBudget."""

    def test_caps_measurements(self):
        budget = SpeedBudget(max_pages=2)

        assert [budget.consume() for _ in range(4)] == [True, True, False, False]
        assert budget.pages_measured == 2

    def test_disabled(self):
        budget = SpeedBudget(max_pages=10, enabled=False)

        assert budget.available is False
        assert budget.consume() is False

    def test_budgets_are_independent(self):
        first = SpeedBudget(max_pages=1)
        second = SpeedBudget(max_pages=1)

        first.consume()

        assert second.available is True

    def test_reset(self):
        budget = SpeedBudget(max_pages=1)
        budget.consume()

        budget.reset()

        assert budget.available is True


class TestPageSpeed:
    """Tests for timing extraction."""

    def test_from_timings(self):
        metrics = speed_from_timings("https://example.com/", {
            "ttfb": 120.6, "domLoadTime": 340.2, "totalLoadTime": -5,
        })

        assert metrics == PageSpeedMetrics(
            url="https://example.com/", ttfb=121, dom_load_time=340, total_load_time=0,
        )

    @pytest.mark.asyncio
    async def test_extract_page_speed(self):
        page = FakePage({"ttfb": 80, "domLoadTime": 200, "totalLoadTime": 900})

        metrics = await extract_page_speed(page)

        assert metrics.ttfb == 80
        assert metrics.total_load_time == 900
        assert metrics.has_data is True

    @pytest.mark.asyncio
    async def test_extract_failure_yields_zero_metrics(self):
        metrics = await extract_page_speed(FakePage(error=RuntimeError("page closed")))

        assert metrics.has_data is False


class TestSiteSpeed:
    """Tests for site speed averages."""

    def test_ignores_pages_without_data(self):
        summary = calculate_site_speed([
            PageSpeedMetrics(url="a", ttfb=100, dom_load_time=300, total_load_time=1000),
            PageSpeedMetrics(url="b", ttfb=201, dom_load_time=400, total_load_time=1501),
            PageSpeedMetrics(url="c"),
        ])

        assert summary.pages_with_speed_data == 2
        assert summary.average_ttfb == 151
        assert summary.average_dom_load_time == 350
        assert summary.average_total_load_time == 1251

    def test_empty(self):
        summary = calculate_site_speed([])

        assert summary.pages_with_speed_data == 0
        assert summary.average_ttfb == 0
