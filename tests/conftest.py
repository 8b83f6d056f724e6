"""
Shared fakes for crawler tests.

``FakeRenderer`` and ``FakeClassifier`` stand in for Playwright and Gemini so
the orchestrator can be exercised end-to-end without a browser or network.
"""

import asyncio
from typing import Dict, Iterable, List, Optional, Union

from shop_crawler.classifier import PageClassifier
from shop_crawler.models import PageAnalysis, PageType, ProductRecord, RenderedPage
from shop_crawler.renderer import FetchError, Renderer


ROOT = "https://shop.example.com/"


def product_page(name: str, price: str = "", description: str = "") -> PageAnalysis:
    return PageAnalysis(
        page_type=PageType.PRODUCT,
        product=ProductRecord(name=name, price=price, description=description),
    )


def listing_page(
    product_links: Iterable[str] = (),
    pagination_links: Iterable[str] = (),
    category_links: Iterable[str] = (),
    other_links: Iterable[str] = (),
) -> PageAnalysis:
    return PageAnalysis(
        page_type=PageType.LISTING,
        product_links=tuple(product_links),
        pagination_links=tuple(pagination_links),
        category_links=tuple(category_links),
        other_relevant_links=tuple(other_links),
    )


class FakeRenderer(Renderer):
    """Serves every URL as a tiny document; failures and redirects are scripted."""

    def __init__(
        self,
        redirects: Optional[Dict[str, str]] = None,
        failures: Iterable[str] = (),
        flaky: Optional[Dict[str, int]] = None,
        not_found: Iterable[str] = (),
        crashes: Iterable[str] = (),
        html: Optional[Dict[str, str]] = None,
        start_error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.redirects = redirects or {}
        self.failures = set(failures)
        self.flaky = dict(flaky or {})      # url -> failures before success
        self.not_found = set(not_found)
        self.crashes = set(crashes)
        self.html = html or {}
        self.start_error = start_error
        self.delay = delay

        self.fetched: List[str] = []
        self.started = False
        self.closed = False
        self.in_flight = 0
        self.max_in_flight = 0

    async def start(self) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    async def close(self) -> None:
        self.closed = True

    async def fetch(self, url: str, timeout_ms: int) -> Optional[RenderedPage]:
        self.fetched.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if url in self.failures:
                raise FetchError(url, "navigation timeout after 1ms")
            if self.flaky.get(url, 0) > 0:
                self.flaky[url] -= 1
                raise FetchError(url, "net::ERR_CONNECTION_RESET")
            if url in self.crashes:
                raise RuntimeError("page crashed")
            if url in self.not_found:
                return None
            final_url = self.redirects.get(url, url)
            body = self.html.get(url, f"<html><body><h1>{final_url}</h1></body></html>")
            return RenderedPage(requested_url=url, final_url=final_url, html=body)
        finally:
            self.in_flight -= 1


class FakeClassifier(PageClassifier):
    """Returns scripted analyses by URL; unknown URLs are ``other``."""

    def __init__(self, analyses: Optional[Dict[str, Union[PageAnalysis, Exception]]] = None):
        self.analyses = analyses or {}
        self.calls: List[str] = []
        self.seen_html: Dict[str, str] = {}
        self.seen_links: Dict[str, List[str]] = {}

    async def classify(self, html, url, links) -> PageAnalysis:
        self.calls.append(url)
        self.seen_html[url] = html
        self.seen_links[url] = list(links)
        await asyncio.sleep(0)
        outcome = self.analyses.get(url, PageAnalysis.empty())
        if isinstance(outcome, Exception):
            raise outcome
        return outcome
