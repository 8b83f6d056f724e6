"""
Tests for the Playwright renderer lifecycle.

``async_playwright`` is replaced with in-memory stand-ins so start-up,
page pooling and teardown run without a real browser.
"""

import asyncio
from types import SimpleNamespace

import pytest

from conftest import ROOT, FakeClassifier
from shop_crawler import renderer as renderer_module
from shop_crawler.crawler import CrawlConfig, ProductCrawler
from shop_crawler.renderer import PlaywrightRenderer


class StubPage:
    def __init__(self, status=200):
        self.status = status
        self.closed = False
        self.url = ""

    def is_closed(self):
        return self.closed

    async def close(self):
        self.closed = True

    async def goto(self, url, timeout, wait_until):
        self.url = url
        return SimpleNamespace(status=self.status, url=url)

    async def wait_for_load_state(self, state, timeout):
        return None

    async def wait_for_selector(self, selector, timeout):
        return None

    async def content(self):
        return "<html><body>ok</body></html>"

    async def evaluate(self, script):
        return [ROOT + "item"]


class StubBrowserStack:
    """Records every lifecycle call made against the fake browser."""

    def __init__(self, page_error=None, status=200):
        self.page_error = page_error
        self.status = status
        self.pages = []
        self.context_closed = False
        self.browser_closed = False
        self.stopped = False

    # async_playwright() -> object with start()
    def __call__(self):
        return self

    async def start(self):
        self.chromium = SimpleNamespace(launch=self._launch)
        return self

    async def stop(self):
        self.stopped = True

    async def _launch(self, headless, args):
        return SimpleNamespace(new_context=self._new_context, close=self._close_browser)

    async def _close_browser(self):
        self.browser_closed = True

    async def _new_context(self, **kwargs):
        return SimpleNamespace(
            route=self._route,
            new_page=self._new_page,
            close=self._close_context,
        )

    async def _route(self, pattern, handler):
        return None

    async def _new_page(self):
        if self.page_error is not None:
            raise self.page_error
        page = StubPage(self.status)
        self.pages.append(page)
        return page

    async def _close_context(self):
        self.context_closed = True


@pytest.fixture
def stack(monkeypatch):
    def install(**kwargs):
        fake = StubBrowserStack(**kwargs)
        monkeypatch.setattr(renderer_module, "async_playwright", fake)
        return fake
    return install


# ====================================================================
# Start-up
# ====================================================================

class TestStartup:

    def test_start_opens_one_idle_page(self, stack):
        fake = stack()
        renderer = PlaywrightRenderer(pool_size=3)

        async def scenario():
            await renderer.start()
            idle = renderer.pool.idle
            await renderer.close()
            return idle

        assert asyncio.run(scenario()) == 1
        assert len(fake.pages) == 1
        assert fake.pages[0].closed
        assert fake.context_closed and fake.browser_closed and fake.stopped

    def test_page_creation_failure_fails_start_and_tears_down(self, stack):
        fake = stack(page_error=RuntimeError("cannot open page"))
        renderer = PlaywrightRenderer(pool_size=2)

        with pytest.raises(RuntimeError, match="cannot open page"):
            asyncio.run(renderer.start())

        assert renderer.pool is None
        assert fake.context_closed
        assert fake.browser_closed
        assert fake.stopped

    def test_page_creation_failure_reported_as_crawl_error(self, stack):
        stack(page_error=RuntimeError("cannot open page"))
        crawler = ProductCrawler(
            CrawlConfig(report_interval_s=0),
            renderer=PlaywrightRenderer(pool_size=2),
            classifier=FakeClassifier(),
        )
        result = asyncio.run(crawler.crawl(ROOT))

        assert result.error.startswith("Failed to start renderer")
        assert "cannot open page" in result.error
        assert result.products == []
        assert result.visited_urls == []


# ====================================================================
# Fetch
# ====================================================================

class TestFetch:

    def test_fetch_reuses_warmed_page(self, stack):
        fake = stack()
        renderer = PlaywrightRenderer(pool_size=2)

        async def scenario():
            await renderer.start()
            try:
                return await renderer.fetch(ROOT, timeout_ms=1000)
            finally:
                await renderer.close()

        page = asyncio.run(scenario())
        assert page.final_url == ROOT
        assert page.links == [ROOT + "item"]
        assert len(fake.pages) == 1

    def test_not_found_status_returns_none(self, stack):
        stack(status=404)
        renderer = PlaywrightRenderer(pool_size=1)

        async def scenario():
            await renderer.start()
            try:
                return await renderer.fetch(ROOT + "gone", timeout_ms=1000)
            finally:
                await renderer.close()

        assert asyncio.run(scenario()) is None
