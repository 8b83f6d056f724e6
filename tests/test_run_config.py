"""
Tests for the run configuration and CLI argument handling.
"""

import json

from shop_crawler.__main__ import _base_name_from_url, build_parser, run_cli_with_args
from shop_crawler.crawler import ProductCrawler
from shop_crawler.models import CrawlResult, ProductRecord
from shop_crawler.run_config import CrawlerRunConfig


class TestCrawlerRunConfig:

    def test_defaults(self):
        cfg = CrawlerRunConfig()
        assert cfg.max_pages == 100
        assert cfg.workers == 5
        assert cfg.batch_size == 4
        assert cfg.max_retries_per_page == 0

    def test_to_crawl_config(self):
        cfg = CrawlerRunConfig(max_pages=20, workers=3, timeout_seconds=10, model="m")
        crawl = cfg.to_crawl_config()
        assert crawl.max_pages == 20
        assert crawl.pool_size == 3
        assert crawl.timeout_ms == 10000
        assert crawl.gemini_model == "m"
        assert crawl.max_html_chars == 15000
        assert crawl.max_link_sample == 100

    def test_from_cli_args(self):
        args = build_parser().parse_args([
            "shop.example.com", "--pages", "7", "--workers", "2", "--batch", "3",
            "--timeout", "15", "--retries", "1", "--headed", "--output-csv", "out.csv",
        ])
        cfg = CrawlerRunConfig.from_cli_args(args)
        assert cfg.max_pages == 7
        assert cfg.workers == 2
        assert cfg.batch_size == 3
        assert cfg.timeout_seconds == 15
        assert cfg.max_retries_per_page == 1
        assert cfg.headless is False
        assert cfg.output_csv == "out.csv"
        assert cfg.output_json is None

    def test_parser_defaults_match_config(self):
        args = build_parser().parse_args(["https://shop.example.com"])
        cfg = CrawlerRunConfig.from_cli_args(args)
        assert cfg == CrawlerRunConfig()


def test_base_name_from_url():
    assert _base_name_from_url("https://shop.example.com:8080/x") == "shop_example_com_8080"


class TestCliRun:

    def test_partial_results_exported_when_crawl_errors(self, monkeypatch, tmp_path):
        partial = CrawlResult(
            products=[ProductRecord(name="Widget", price="$10", url="https://shop.example.com/widget")],
            visited_urls=["https://shop.example.com/", "https://shop.example.com/widget"],
            error="Crawl error: browser disconnected",
        )
        monkeypatch.setattr(ProductCrawler, "run", lambda self, url: partial)
        out = tmp_path / "products.json"

        code = run_cli_with_args(["https://shop.example.com", "--output-json", str(out)])

        assert code == 1
        data = json.loads(out.read_text(encoding="utf-8"))
        assert [p["name"] for p in data["products"]] == ["Widget"]
        assert data["error"] == "Crawl error: browser disconnected"

    def test_nothing_exported_when_crawl_never_started(self, monkeypatch, tmp_path):
        monkeypatch.setattr(
            ProductCrawler, "run",
            lambda self, url: CrawlResult.failed("Failed to start renderer: no chromium"),
        )
        out = tmp_path / "products.json"

        code = run_cli_with_args(["https://shop.example.com", "--output-json", str(out)])

        assert code == 1
        assert not out.exists()
