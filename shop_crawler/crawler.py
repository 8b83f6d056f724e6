"""
Product Crawler Engine
======================
Discovers product pages on one e-commerce site and extracts product records.

Architecture:
- One ``Renderer`` (headless browser + bounded page pool) per run
- ``Frontier`` priority queue: product links > pagination/category > other
- Batches popped from the frontier, dispatched in chunks of at most
  ``pool_size`` concurrent fetch+classify tasks
- Chunk-synchronous: a chunk's discoveries are folded into the frontier
  before the next chunk starts, so priorities actually steer the crawl
- ``AnalysisCache`` memoizes classifier output per normalized URL
- Products merged by normalized URL, first seen wins

Failure policy:
- Invalid start URL, or a renderer that cannot start → ``CrawlResult.error``
- Any per-URL failure (404, timeout, render error, classifier error) is
  logged and contributes nothing; it never stops the run
- A popped URL is attempted at most once (plus optional bounded retries of
  the fetch step); it never re-enters the frontier
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Tuple

from .cache import AnalysisCache
from .classifier import DEFAULT_MODEL, GeminiClassifier, PageClassifier
from .frontier import Frontier, LinkPriority
from .models import CrawlResult, PageAnalysis, ProductRecord, RenderedPage
from .monitor import PageTiming, PerformanceMonitor
from .page_pool import PoolExhausted
from .renderer import DEFAULT_USER_AGENT, FetchError, PlaywrightRenderer, Renderer
from .scope_filter import ScopeFilter, is_resource_url
from .utils import (
    InvalidUrl,
    chunked,
    clean_html,
    is_valid_url,
    normalize_url,
    resolve_url,
    sample_links,
    truncate_html,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class CrawlConfig:
    """Configuration for the product crawler."""
    # Budget
    max_pages: int = 100

    # Concurrency
    pool_size: int = 5            # renderer pages checked out at once
    batch_size: int = 4           # URLs popped from the frontier per round

    # Per-URL limits
    timeout_ms: int = 30000       # navigation timeout
    max_retries_per_page: int = 0 # fetch retries; 0 = at-most-once
    retry_backoff_s: float = 1.0

    # What the classifier gets to see
    max_html_chars: int = 15000
    max_link_sample: int = 100
    strip_scripts: bool = True

    # Browser
    headless: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    viewport_width: int = 1366
    viewport_height: int = 900
    block_media: bool = True
    block_analytics: bool = True

    # Classifier
    gemini_model: str = DEFAULT_MODEL

    # Monitoring
    report_interval_s: float = 10.0


# ---------------------------------------------------------------------------
# Per-run state
# ---------------------------------------------------------------------------

@dataclass
class _UrlOutcome:
    """What one fetch+classify task hands to the integration phase."""
    url: str
    final_url: str = ""
    base_url: str = ""
    analysis: Optional[PageAnalysis] = None


@dataclass
class _CrawlRun:
    """Everything owned by one ``crawl()`` invocation."""
    start_url: str
    renderer: Renderer
    classifier: PageClassifier
    frontier: Frontier
    scope: ScopeFilter
    monitor: PerformanceMonitor
    cache: AnalysisCache = field(default_factory=AnalysisCache)
    products: Dict[str, ProductRecord] = field(default_factory=dict)
    processed: int = 0


# ---------------------------------------------------------------------------
# Main crawler
# ---------------------------------------------------------------------------

class ProductCrawler:
    """
    Budgeted, prioritized, single-domain product crawler.

    Usage::

        crawler = ProductCrawler(CrawlConfig(max_pages=50))
        result = await crawler.crawl("https://shop.example.com")

        # Or from sync code:
        result = crawler.run("https://shop.example.com")

    ``renderer`` and ``classifier`` may be injected (tests, alternative
    backends); otherwise a Playwright renderer and a Gemini classifier are
    built per run.
    """

    def __init__(
        self,
        config: Optional[CrawlConfig] = None,
        renderer: Optional[Renderer] = None,
        classifier: Optional[PageClassifier] = None,
    ):
        self.config = config or CrawlConfig()
        self._renderer = renderer
        self._classifier = classifier
        self._progress_callback: Optional[Callable] = None

    def set_progress_callback(self, callback: Callable) -> None:
        """Set callback: callback(pages_processed, current_url, stats_dict)"""
        self._progress_callback = callback

    # ------------------------------------------------------------------
    # Sync entry point
    # ------------------------------------------------------------------

    def run(self, start_url: str, max_pages: Optional[int] = None) -> CrawlResult:
        """Sync wrapper: run the async crawl from synchronous code."""
        return asyncio.run(self.crawl(start_url, max_pages))

    # ------------------------------------------------------------------
    # Main async crawl
    # ------------------------------------------------------------------

    async def crawl(self, start_url: str, max_pages: Optional[int] = None) -> CrawlResult:
        """
        Crawl ``start_url``'s domain for products.

        1. Validate input (no work at all on invalid input)
        2. Start the renderer (fatal on failure)
        3. Select → fetch+classify → integrate until the frontier is empty
        4. Tear down the renderer and return the result
        """
        budget = self.config.max_pages if max_pages is None else max_pages

        if not isinstance(start_url, str) or not is_valid_url(start_url):
            logger.warning(f"Rejected start URL: {start_url!r}")
            return CrawlResult.failed("Invalid start URL")
        if not isinstance(budget, int) or budget < 1:
            logger.warning(f"Rejected page budget: {budget!r}")
            return CrawlResult.failed("Invalid max pages")
        if not isinstance(self.config.batch_size, int) or self.config.batch_size < 1:
            logger.warning(f"Rejected batch size: {self.config.batch_size!r}")
            return CrawlResult.failed("Invalid batch size")
        if not isinstance(self.config.pool_size, int) or self.config.pool_size < 1:
            logger.warning(f"Rejected pool size: {self.config.pool_size!r}")
            return CrawlResult.failed("Invalid pool size")

        try:
            classifier = self._classifier or GeminiClassifier(model=self.config.gemini_model)
        except Exception as e:
            logger.error(f"Classifier initialization failed: {e}")
            return CrawlResult.failed(f"Failed to initialize classifier: {e}")

        renderer = self._renderer or self._build_renderer()
        seed = normalize_url(start_url)
        run = _CrawlRun(
            start_url=start_url,
            renderer=renderer,
            classifier=classifier,
            frontier=Frontier(capacity=budget),
            scope=ScopeFilter(root_url=seed),
            monitor=PerformanceMonitor(
                max_workers=self.config.pool_size,
                report_interval_s=self.config.report_interval_s,
            ),
        )
        run.frontier.push(seed, LinkPriority.SEED)

        logger.info("=" * 65)
        logger.info("PRODUCT CRAWL STARTED")
        logger.info(f"Start URL: {start_url}")
        run.scope.log_scope()
        logger.info(f"Limits: max_pages={budget}, pool={self.config.pool_size}, "
                    f"batch={self.config.batch_size}")
        logger.info(f"Timeout: {self.config.timeout_ms}ms/page")
        logger.info("=" * 65)

        try:
            await renderer.start()
        except Exception as e:
            logger.error(f"Renderer failed to start: {e}", exc_info=True)
            await self._close_renderer(renderer)
            return CrawlResult.failed(f"Failed to start renderer: {e}")

        await run.monitor.start()
        stop_reason = "completed"
        error: Optional[str] = None
        try:
            await self._crawl_loop(run)
            if run.frontier.budget_exhausted:
                stop_reason = f"Page budget reached ({budget})"
            else:
                stop_reason = "Frontier exhausted"
        except Exception as e:
            stop_reason = f"Error: {e}"
            error = f"Crawl error: {e}"
            logger.error(f"Crawl error: {e}", exc_info=True)
        finally:
            await run.monitor.stop(stop_reason)
            await self._close_renderer(renderer)

        metrics = await run.monitor.snapshot()
        logger.info("\n" + run.monitor.format_summary(metrics))

        stats = metrics.to_dict()
        stats.update(run.scope.stats())
        stats['pages_visited'] = run.frontier.visited_count
        stats['cache_entries'] = len(run.cache)

        return CrawlResult(
            products=list(run.products.values()),
            visited_urls=run.frontier.visited_list(),
            error=error,
            stats=stats,
        )

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def _crawl_loop(self, run: _CrawlRun) -> None:
        """Select a batch, run it chunk by chunk, integrate after each chunk."""
        while run.frontier:
            batch = run.frontier.pop_batch(self.config.batch_size)
            for chunk in chunked(batch, self.config.pool_size):
                outcomes = await asyncio.gather(
                    *(self._process_url(run, entry.url) for entry in chunk)
                )
                for outcome in outcomes:
                    await self._integrate(run, outcome)
                await run.monitor.update_frontier_size(len(run.frontier))

    # ------------------------------------------------------------------
    # Fetch + classify (concurrent, never mutates run state directly)
    # ------------------------------------------------------------------

    async def _process_url(self, run: _CrawlRun, url: str) -> _UrlOutcome:
        """Fetch and classify one URL. Never raises (except on cancellation)."""
        timing = PageTiming(url=url)
        t_start = time.monotonic()
        outcome = _UrlOutcome(url=url)

        if is_resource_url(url):
            logger.debug(f"[SKIP] {url[:80]} — static resource")
            timing.status = "skipped"
            await run.monitor.record_page(timing)
            return outcome

        await run.monitor.worker_started()
        try:
            t_render = time.monotonic()
            page = await self._fetch(run, url)
            timing.render_ms = (time.monotonic() - t_render) * 1000
            if page is None:
                timing.status = "not_found"
                return outcome

            try:
                final_url = normalize_url(page.final_url)
            except InvalidUrl:
                final_url = url
            if final_url != url:
                logger.debug(f"[REDIRECT] {url[:70]} -> {final_url[:70]}")

            timing.cache_hit = final_url in run.cache
            t_classify = time.monotonic()
            analysis = await run.cache.get_or_compute(
                final_url, lambda: self._classify(run, final_url, page)
            )
            timing.classify_ms = (time.monotonic() - t_classify) * 1000
            timing.link_count = analysis.link_count

            outcome.final_url = final_url
            outcome.base_url = page.final_url or url
            outcome.analysis = analysis
            logger.info(
                f"Completed {url[:80]} — {analysis.page_type.value}, "
                f"{analysis.link_count} links "
                f"({(time.monotonic() - t_start):.2f}s)"
            )
        except (FetchError, PoolExhausted) as e:
            timing.status = "failed"
            logger.warning(f"[FETCH] {url[:80]} failed: {e}")
        except Exception as e:
            timing.status = "failed"
            logger.error(f"Error processing {url[:80]}: {e}", exc_info=True)
        finally:
            timing.total_ms = (time.monotonic() - t_start) * 1000
            await run.monitor.record_page(timing)
            await run.monitor.worker_finished()
            run.processed += 1
            self._report_progress(run, url)

        return outcome

    async def _fetch(self, run: _CrawlRun, url: str) -> Optional[RenderedPage]:
        """Render with optional bounded retries. None means not found."""
        attempt = 0
        while True:
            try:
                return await run.renderer.fetch(url, self.config.timeout_ms)
            except (FetchError, PoolExhausted) as e:
                if attempt >= self.config.max_retries_per_page:
                    raise
                attempt += 1
                logger.info(
                    f"[RETRY] {url[:60]} — attempt {attempt}/"
                    f"{self.config.max_retries_per_page} after: {e}"
                )
                await run.monitor.record_retry()
                await asyncio.sleep(self.config.retry_backoff_s * attempt)

    async def _classify(self, run: _CrawlRun, url: str, page: RenderedPage) -> PageAnalysis:
        """Classifier call on a trimmed document; failures degrade to 'other'."""
        try:
            html = clean_html(page.html) if self.config.strip_scripts else page.html
            html = truncate_html(html, self.config.max_html_chars)
            links = sample_links(page.links, self.config.max_link_sample)
            return await run.classifier.classify(html, url, links)
        except Exception as e:
            logger.warning(f"[CLASSIFY] {url[:80]} degraded to 'other': {e}")
            await run.monitor.record_classifier_failure()
            return PageAnalysis.empty()

    # ------------------------------------------------------------------
    # Integration (sequential, sole writer of frontier + products)
    # ------------------------------------------------------------------

    async def _integrate(self, run: _CrawlRun, outcome: _UrlOutcome) -> None:
        analysis = outcome.analysis
        if analysis is None:
            return

        if analysis.has_product:
            key = outcome.final_url
            if key not in run.products:
                run.products[key] = replace(analysis.product, url=key)
                await run.monitor.record_product()
                logger.info(f"[PRODUCT] {analysis.product.name[:60]} — {key[:80]}")
            else:
                logger.debug(f"[PRODUCT] Duplicate ignored: {key[:80]}")

        new_count = 0
        for raw_link, priority in self._prioritized_links(analysis):
            absolute = resolve_url(raw_link, outcome.base_url)
            if not absolute:
                continue
            try:
                link = normalize_url(absolute)
            except InvalidUrl:
                continue
            if not run.scope.accept(link):
                continue
            if run.frontier.push(link, priority):
                new_count += 1

        if new_count:
            await run.monitor.record_enqueue(new_count)

    @staticmethod
    def _prioritized_links(analysis: PageAnalysis) -> List[Tuple[str, int]]:
        links: List[Tuple[str, int]] = []
        links.extend((l, LinkPriority.PRODUCT) for l in analysis.product_links)
        links.extend((l, LinkPriority.PAGINATION) for l in analysis.pagination_links)
        links.extend((l, LinkPriority.CATEGORY) for l in analysis.category_links)
        links.extend((l, LinkPriority.OTHER) for l in analysis.other_relevant_links)
        return links

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _build_renderer(self) -> Renderer:
        cfg = self.config
        return PlaywrightRenderer(
            pool_size=cfg.pool_size,
            headless=cfg.headless,
            user_agent=cfg.user_agent,
            viewport_width=cfg.viewport_width,
            viewport_height=cfg.viewport_height,
            block_media=cfg.block_media,
            block_analytics=cfg.block_analytics,
        )

    @staticmethod
    async def _close_renderer(renderer: Renderer) -> None:
        try:
            await renderer.close()
        except Exception as e:
            logger.error(f"Error closing renderer: {e}")

    def _report_progress(self, run: _CrawlRun, url: str) -> None:
        if not self._progress_callback:
            return
        try:
            self._progress_callback(run.processed, url, {
                'products_found': len(run.products),
                'pages_visited': run.frontier.visited_count,
                'frontier_size': len(run.frontier),
            })
        except Exception as e:
            logger.debug(f"Progress callback failed: {e}")


# ---------------------------------------------------------------------------
# One-call entry point
# ---------------------------------------------------------------------------

def crawl_website(start_url: str, max_pages: int = 100, **config_overrides) -> CrawlResult:
    """
    Crawl one site for products and return when the run is over.

    ``config_overrides`` are ``CrawlConfig`` fields (``pool_size``,
    ``timeout_ms``, ...). Renderer/classifier may be passed as the
    ``renderer`` / ``classifier`` keywords.
    """
    renderer = config_overrides.pop('renderer', None)
    classifier = config_overrides.pop('classifier', None)
    config = CrawlConfig(max_pages=max_pages, **config_overrides)
    return ProductCrawler(config, renderer=renderer, classifier=classifier).run(start_url)
