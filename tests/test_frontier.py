"""
Tests for the URL frontier: priority order, dedupe and the page budget.
"""

import pytest

from shop_crawler.frontier import Frontier, LinkPriority, PendingEntry


class TestOrdering:

    def test_highest_priority_first(self):
        f = Frontier(capacity=10)
        f.push("https://s.com/about", LinkPriority.OTHER)
        f.push("https://s.com/p/1", LinkPriority.PRODUCT)
        f.push("https://s.com/c/1", LinkPriority.CATEGORY)
        urls = [e.url for e in f.pop_batch(3)]
        assert urls == ["https://s.com/p/1", "https://s.com/c/1", "https://s.com/about"]

    def test_fifo_within_priority(self):
        f = Frontier(capacity=10)
        for i in range(4):
            f.push(f"https://s.com/p/{i}", LinkPriority.PRODUCT)
        assert [e.url for e in f.pop_batch(4)] == [f"https://s.com/p/{i}" for i in range(4)]

    def test_pagination_ties_with_category(self):
        f = Frontier(capacity=10)
        f.push("https://s.com/c/1", LinkPriority.CATEGORY)
        f.push("https://s.com/c/1?page=2", LinkPriority.PAGINATION)
        assert [e.url for e in f.pop_batch(2)] == ["https://s.com/c/1", "https://s.com/c/1?page=2"]

    def test_pop_batch_returns_entries_with_priority(self):
        f = Frontier(capacity=10)
        f.push("https://s.com/p/1", LinkPriority.PRODUCT)
        assert f.pop_batch(5) == [PendingEntry(url="https://s.com/p/1", priority=3)]

    def test_pop_batch_partial_and_empty(self):
        f = Frontier(capacity=10)
        f.push("https://s.com/a", 1)
        f.push("https://s.com/b", 1)
        assert len(f.pop_batch(1)) == 1
        assert len(f) == 1
        assert len(f.pop_batch(5)) == 1
        assert f.pop_batch(5) == []
        assert not f


class TestVisitedAndBudget:

    def test_duplicate_push_rejected(self):
        f = Frontier(capacity=10)
        assert f.push("https://s.com/a", 1)
        assert not f.push("https://s.com/a", 3)
        assert len(f) == 1

    def test_popped_url_never_readmitted(self):
        f = Frontier(capacity=10)
        f.push("https://s.com/a", 1)
        f.pop_batch(1)
        assert not f.push("https://s.com/a", 1)
        assert "https://s.com/a" in f

    def test_capacity_caps_admissions(self):
        f = Frontier(capacity=3)
        admitted = [f.push(f"https://s.com/{i}", 1) for i in range(5)]
        assert admitted == [True, True, True, False, False]
        assert f.visited_count == 3
        assert f.budget_exhausted

    def test_capacity_counts_popped_urls(self):
        f = Frontier(capacity=2)
        f.push("https://s.com/a", 1)
        f.pop_batch(1)
        f.push("https://s.com/b", 1)
        assert not f.push("https://s.com/c", 1)

    def test_visited_list_in_admission_order(self):
        f = Frontier(capacity=10)
        for url in ["https://s.com/z", "https://s.com/a", "https://s.com/m"]:
            f.push(url, 1)
        assert f.visited_list() == ["https://s.com/z", "https://s.com/a", "https://s.com/m"]
        assert f.visited == {"https://s.com/z", "https://s.com/a", "https://s.com/m"}

    def test_zero_capacity_rejected(self):
        with pytest.raises(ValueError):
            Frontier(capacity=0)
