"""
Performance Monitor
====================
Real-time metrics tracking for the product crawler.

Tracks:
- Pages/sec (rolling 30s window + overall)
- Frontier size over time
- Outcome counts (ok, not found, failed, resource-skipped)
- Classifier failures and cache hits
- Products found, links enqueued
- Per-phase timing (render, classify)

Async-safe: all methods use asyncio.Lock for safe concurrent access.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, asdict
from typing import Callable, Optional

logger = logging.getLogger(__name__)

# Rolling window for pages/sec calculation
_ROLLING_WINDOW_SEC = 30.0


@dataclass
class PageTiming:
    """Timing breakdown for a single URL."""
    url: str = ""
    render_ms: float = 0.0
    classify_ms: float = 0.0
    total_ms: float = 0.0
    link_count: int = 0
    cache_hit: bool = False
    status: str = "ok"   # ok | not_found | failed | skipped


@dataclass
class CrawlMetrics:
    """Snapshot of all crawler metrics at a point in time."""
    # Counts
    pages_fetched: int = 0
    pages_not_found: int = 0
    pages_failed: int = 0
    pages_skipped: int = 0
    pages_retried: int = 0
    classifier_failures: int = 0
    cache_hits: int = 0
    products_found: int = 0
    links_enqueued: int = 0

    # Speed
    pages_per_sec_rolling: float = 0.0
    pages_per_sec_overall: float = 0.0

    # Frontier
    frontier_size: int = 0
    frontier_peak: int = 0

    # Workers
    active_workers: int = 0
    max_workers: int = 0

    # Timing
    avg_page_ms: float = 0.0
    avg_render_ms: float = 0.0
    avg_classify_ms: float = 0.0
    p95_page_ms: float = 0.0

    elapsed_sec: float = 0.0
    stop_reason: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


class PerformanceMonitor:
    """
    Async-safe performance monitor for the crawler.

    Usage::

        monitor = PerformanceMonitor(max_workers=5)
        await monitor.start()

        timing = PageTiming(url=url)
        timing.render_ms = ...
        await monitor.record_page(timing)

        metrics = await monitor.snapshot()
        await monitor.stop("completed")
    """

    def __init__(self, max_workers: int = 5, report_interval_s: float = 10.0):
        self._lock = asyncio.Lock()
        self._start_time: float = 0.0
        self._max_workers = max_workers
        self._report_interval_s = report_interval_s

        # Counters
        self._pages_fetched = 0
        self._pages_not_found = 0
        self._pages_failed = 0
        self._pages_skipped = 0
        self._pages_retried = 0
        self._classifier_failures = 0
        self._cache_hits = 0
        self._products_found = 0
        self._links_enqueued = 0

        # Frontier tracking
        self._frontier_size = 0
        self._frontier_peak = 0

        # Worker tracking
        self._active_workers = 0

        # Rolling window
        self._recent_timestamps: deque[float] = deque()

        # Page timings (keep last 1000 for percentile calc)
        self._page_timings: deque[PageTiming] = deque(maxlen=1000)

        self._progress_callback: Optional[Callable] = None
        self._reporter_task: Optional[asyncio.Task] = None
        self._running = False
        self._stop_reason = ""

    def set_progress_callback(self, callback: Callable) -> None:
        """Set callback: callback(metrics: CrawlMetrics)"""
        self._progress_callback = callback

    async def start(self) -> None:
        """Start the monitor and periodic reporter."""
        self._start_time = time.monotonic()
        self._running = True
        if self._report_interval_s > 0:
            self._reporter_task = asyncio.create_task(self._reporter_loop())

    async def stop(self, reason: str = "completed") -> None:
        """Stop the monitor."""
        self._running = False
        self._stop_reason = reason
        if self._reporter_task:
            self._reporter_task.cancel()
            try:
                await self._reporter_task
            except asyncio.CancelledError:
                pass
            self._reporter_task = None

    async def record_page(self, timing: PageTiming) -> None:
        """Record metrics for a completed URL."""
        now = time.monotonic()
        async with self._lock:
            if timing.status == "ok":
                self._pages_fetched += 1
            elif timing.status == "not_found":
                self._pages_not_found += 1
            elif timing.status == "skipped":
                self._pages_skipped += 1
            elif timing.status == "failed":
                self._pages_failed += 1
            if timing.cache_hit:
                self._cache_hits += 1

            self._recent_timestamps.append(now)
            self._page_timings.append(timing)

            cutoff = now - _ROLLING_WINDOW_SEC
            while self._recent_timestamps and self._recent_timestamps[0] < cutoff:
                self._recent_timestamps.popleft()

    async def record_retry(self) -> None:
        async with self._lock:
            self._pages_retried += 1

    async def record_classifier_failure(self) -> None:
        async with self._lock:
            self._classifier_failures += 1

    async def record_product(self) -> None:
        async with self._lock:
            self._products_found += 1

    async def record_enqueue(self, count: int = 1) -> None:
        async with self._lock:
            self._links_enqueued += count

    async def update_frontier_size(self, size: int) -> None:
        async with self._lock:
            self._frontier_size = size
            if size > self._frontier_peak:
                self._frontier_peak = size

    async def worker_started(self) -> None:
        async with self._lock:
            self._active_workers += 1

    async def worker_finished(self) -> None:
        async with self._lock:
            self._active_workers = max(0, self._active_workers - 1)

    async def snapshot(self) -> CrawlMetrics:
        """Take a consistent snapshot of all metrics."""
        now = time.monotonic()
        async with self._lock:
            elapsed = now - self._start_time if self._start_time else 0.0

            cutoff = now - _ROLLING_WINDOW_SEC
            while self._recent_timestamps and self._recent_timestamps[0] < cutoff:
                self._recent_timestamps.popleft()
            rolling_count = len(self._recent_timestamps)
            rolling_pps = rolling_count / _ROLLING_WINDOW_SEC if rolling_count else 0.0

            overall_pps = self._pages_fetched / elapsed if elapsed > 0 else 0.0

            timings = [t.total_ms for t in self._page_timings if t.total_ms > 0]
            avg_page = sum(timings) / len(timings) if timings else 0.0
            render_times = [t.render_ms for t in self._page_timings if t.render_ms > 0]
            avg_render = sum(render_times) / len(render_times) if render_times else 0.0
            classify_times = [t.classify_ms for t in self._page_timings if t.classify_ms > 0]
            avg_classify = sum(classify_times) / len(classify_times) if classify_times else 0.0

            p95 = 0.0
            if timings:
                sorted_t = sorted(timings)
                idx = int(len(sorted_t) * 0.95)
                p95 = sorted_t[min(idx, len(sorted_t) - 1)]

            return CrawlMetrics(
                pages_fetched=self._pages_fetched,
                pages_not_found=self._pages_not_found,
                pages_failed=self._pages_failed,
                pages_skipped=self._pages_skipped,
                pages_retried=self._pages_retried,
                classifier_failures=self._classifier_failures,
                cache_hits=self._cache_hits,
                products_found=self._products_found,
                links_enqueued=self._links_enqueued,
                pages_per_sec_rolling=round(rolling_pps, 2),
                pages_per_sec_overall=round(overall_pps, 2),
                frontier_size=self._frontier_size,
                frontier_peak=self._frontier_peak,
                active_workers=self._active_workers,
                max_workers=self._max_workers,
                avg_page_ms=round(avg_page, 1),
                avg_render_ms=round(avg_render, 1),
                avg_classify_ms=round(avg_classify, 1),
                p95_page_ms=round(p95, 1),
                elapsed_sec=round(elapsed, 2),
                stop_reason=self._stop_reason,
            )

    async def _reporter_loop(self) -> None:
        """Periodically log metrics."""
        while self._running:
            await asyncio.sleep(self._report_interval_s)
            if not self._running:
                break
            try:
                m = await self.snapshot()
                logger.info(
                    f"[MONITOR] "
                    f"pages={m.pages_fetched} "
                    f"404={m.pages_not_found} "
                    f"fail={m.pages_failed} "
                    f"products={m.products_found} "
                    f"frontier={m.frontier_size} "
                    f"workers={m.active_workers}/{m.max_workers} "
                    f"speed={m.pages_per_sec_rolling:.1f} p/s (rolling) "
                    f"avg={m.avg_page_ms:.0f}ms "
                    f"elapsed={m.elapsed_sec:.0f}s"
                )
                if self._progress_callback:
                    try:
                        self._progress_callback(m)
                    except Exception as e:
                        logger.debug(f"[MONITOR] Progress callback failed: {e}")
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.debug(f"[MONITOR] Reporter error: {e}")

    def format_summary(self, metrics: CrawlMetrics) -> str:
        """Format a human-readable summary string."""
        lines = [
            "=" * 65,
            "  CRAWL PERFORMANCE SUMMARY",
            "=" * 65,
            f"  Pages fetched:       {metrics.pages_fetched}",
            f"  Pages not found:     {metrics.pages_not_found}",
            f"  Pages failed:        {metrics.pages_failed}",
            f"  Resources skipped:   {metrics.pages_skipped}",
            f"  Pages retried:       {metrics.pages_retried}",
            f"  Classifier failures: {metrics.classifier_failures}",
            f"  Cache hits:          {metrics.cache_hits}",
            "-" * 65,
            f"  Products found:      {metrics.products_found}",
            f"  Links enqueued:      {metrics.links_enqueued}",
            f"  Frontier peak:       {metrics.frontier_peak}",
            "-" * 65,
            f"  Overall speed:       {metrics.pages_per_sec_overall:.2f} pages/sec",
            f"  Avg page time:       {metrics.avg_page_ms:.0f} ms",
            f"  Avg render time:     {metrics.avg_render_ms:.0f} ms",
            f"  Avg classify time:   {metrics.avg_classify_ms:.0f} ms",
            f"  P95 page time:       {metrics.p95_page_ms:.0f} ms",
            f"  Workers:             {metrics.max_workers}",
            "-" * 65,
            f"  Elapsed time:        {metrics.elapsed_sec:.1f} s",
            f"  Stop reason:         {metrics.stop_reason}",
            "=" * 65,
        ]
        return "\n".join(lines)
