"""
Analysis Cache
==============
Per-run memoization of classifier output keyed by normalized URL.

Never evicts: the number of entries is bounded by the page budget.
Concurrent misses for the same key share one in-flight computation.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from .models import PageAnalysis

logger = logging.getLogger(__name__)


class AnalysisCache:
    """Run-scoped ``url -> PageAnalysis`` map with hit/miss counters."""

    def __init__(self):
        self._entries: Dict[str, PageAnalysis] = {}
        self._inflight: Dict[str, asyncio.Future] = {}
        self.hits = 0
        self.misses = 0

    def get(self, url: str) -> Optional[PageAnalysis]:
        return self._entries.get(url)

    def put(self, url: str, analysis: PageAnalysis) -> None:
        self._entries[url] = analysis

    async def get_or_compute(
        self,
        url: str,
        compute: Callable[[], Awaitable[PageAnalysis]],
    ) -> PageAnalysis:
        """Return the cached analysis, computing it once on a miss."""
        cached = self._entries.get(url)
        if cached is not None:
            self.hits += 1
            return cached

        pending = self._inflight.get(url)
        if pending is not None:
            self.hits += 1
            return await asyncio.shield(pending)

        self.misses += 1
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._inflight[url] = future
        try:
            analysis = await compute()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Mark retrieved so an unawaited failure does not warn at GC
            future.exception()
            raise
        else:
            self._entries[url] = analysis
            future.set_result(analysis)
            return analysis
        finally:
            self._inflight.pop(url, None)

    def __contains__(self, url: str) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)
