"""
URL Frontier
============
Priority queue of pending URLs plus the set of every URL ever admitted.

The visited set doubles as the page budget: once it holds ``capacity`` URLs
no further URL is admitted, so a run can never touch more than ``capacity``
distinct pages.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import AbstractSet, Dict, List, Tuple

logger = logging.getLogger(__name__)


class LinkPriority(IntEnum):
    """Enqueue priority by classified link category (higher pops first)."""
    PRODUCT = 3
    PAGINATION = 2
    CATEGORY = 2
    OTHER = 1
    SEED = 1


@dataclass(frozen=True)
class PendingEntry:
    url: str
    priority: int


class Frontier:
    """
    Highest-priority-first queue, FIFO among equal priorities.

    ``push`` is check-then-insert against the visited set and must only be
    called from the single-threaded integration phase.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._heap: List[Tuple[int, int, str]] = []
        self._visited: Dict[str, None] = {}  # insertion-ordered set
        self._counter = itertools.count()

    def push(self, url: str, priority: int) -> bool:
        """Admit ``url`` unless already seen or the budget is spent."""
        if url in self._visited:
            return False
        if len(self._visited) >= self.capacity:
            return False
        self._visited[url] = None
        heapq.heappush(self._heap, (-int(priority), next(self._counter), url))
        return True

    def pop_batch(self, k: int) -> List[PendingEntry]:
        """Remove and return up to ``k`` highest-priority entries."""
        batch: List[PendingEntry] = []
        while self._heap and len(batch) < k:
            neg_priority, _, url = heapq.heappop(self._heap)
            batch.append(PendingEntry(url=url, priority=-neg_priority))
        return batch

    @property
    def visited(self) -> AbstractSet[str]:
        return frozenset(self._visited)

    @property
    def visited_count(self) -> int:
        return len(self._visited)

    @property
    def budget_exhausted(self) -> bool:
        return len(self._visited) >= self.capacity

    def visited_list(self) -> List[str]:
        return list(self._visited)

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)

    def __contains__(self, url: str) -> bool:
        return url in self._visited
