#!/usr/bin/env python3
"""
Command-line entry point for the product crawler
=================================================
Crawls one e-commerce site with a headless browser, lets Gemini classify
each page, and writes the discovered products to JSON / CSV / DOCX.

All configuration flows through ``CrawlerRunConfig``.

Run with: python -m shop_crawler https://shop.example.com --pages 50
"""

import argparse
import logging
import sys
from pathlib import Path
from urllib.parse import urlparse

from dotenv import load_dotenv

from .crawler import ProductCrawler
from .exporter import export_csv, export_json
from .models import CrawlResult
from .run_config import _DEFAULTS, CrawlerRunConfig
from .word_exporter import export_docx

# Load .env (GEMINI_API_KEY) before anything reads the environment
env_path = Path(__file__).resolve().parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)
else:
    load_dotenv()  # tries CWD

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s | %(levelname)s | %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger(__name__)


def _base_name_from_url(url: str) -> str:
    """Derive a filesystem-safe base name from a URL."""
    parsed = urlparse(url)
    return parsed.netloc.replace('.', '_').replace(':', '_') or 'crawl'


def _export(result: CrawlResult, cfg: CrawlerRunConfig) -> None:
    """Export crawl results to configured formats."""
    exported = []
    if cfg.output_json:
        exported.append(export_json(result, cfg.output_json))
    if cfg.output_csv:
        exported.append(export_csv(result, cfg.output_csv))
    if cfg.output_docx:
        exported.append(export_docx(result, cfg.output_docx))
    if exported:
        print("\n" + "-" * 40)
        for path in exported:
            print(f"  Exported: {path}")
        print("-" * 40)
    else:
        logger.warning("No output format was configured — nothing exported")


def print_summary(result: CrawlResult) -> None:
    """Print crawl summary."""
    stats = result.stats
    print("\n" + "=" * 65)
    print("CRAWL COMPLETE" if not result.error else "CRAWL FAILED")
    print("=" * 65)
    if result.error:
        print(f"  Error:               {result.error}")
    print(f"  Products found:      {len(result.products)}")
    print(f"  Pages visited:       {len(result.visited_urls)}")
    if stats.get('pages_not_found', 0) > 0:
        print(f"  Pages not found:     {stats.get('pages_not_found', 0)}")
    print(f"  Failed pages:        {stats.get('pages_failed', 0)}")
    if stats.get('pages_retried', 0) > 0:
        print(f"  Pages retried:       {stats.get('pages_retried', 0)}")
    if stats.get('classifier_failures', 0) > 0:
        print(f"  Classifier failures: {stats.get('classifier_failures', 0)}")
    if 'elapsed_sec' in stats:
        print(f"  Total time:          {stats.get('elapsed_sec', 0):.1f}s")
        print(f"  Overall speed:       {stats.get('pages_per_sec_overall', 0):.2f} pages/sec")
    if stats.get('p95_page_ms'):
        print(f"  P95 page time:       {stats.get('p95_page_ms', 0):.0f} ms")
    if stats.get('stop_reason'):
        print(f"  Stop reason:         {stats.get('stop_reason')}")
    print("=" * 65)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='shop_crawler',
        description='Product crawler - headless browser + Gemini page classification',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m shop_crawler https://shop.example.com
  python -m shop_crawler https://shop.example.com --pages 50 --workers 3
  python -m shop_crawler shop.example.com --output-csv products.csv --output-docx products.docx
        """
    )
    parser.add_argument('url', help='Start URL (https:// is assumed when no scheme is given)')
    parser.add_argument('--pages', type=int, default=_DEFAULTS['max_pages'],
                        help=f"Maximum pages to visit (default: {_DEFAULTS['max_pages']})")
    parser.add_argument('--workers', type=int, default=_DEFAULTS['workers'],
                        help=f"Concurrent browser pages (default: {_DEFAULTS['workers']})")
    parser.add_argument('--batch', type=int, default=_DEFAULTS['batch_size'],
                        help=f"URLs taken from the frontier per round (default: {_DEFAULTS['batch_size']})")
    parser.add_argument('--timeout', type=int, default=_DEFAULTS['timeout_seconds'],
                        help=f"Timeout per page in seconds (default: {_DEFAULTS['timeout_seconds']})")
    parser.add_argument('--retries', type=int, default=_DEFAULTS['max_retries_per_page'],
                        help='Fetch retries per page (default: 0)')
    parser.add_argument('--model', type=str, default=_DEFAULTS['model'],
                        help=f"Gemini model (default: {_DEFAULTS['model']})")
    parser.add_argument('--headed', action='store_true', help='Show the browser window')
    parser.add_argument('--output-json', type=str, help='JSON output file path')
    parser.add_argument('--output-csv', type=str, help='CSV output file path')
    parser.add_argument('--output-docx', type=str, help='DOCX output file path')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return parser


def run_cli_with_args(argv=None) -> int:
    """Parse argv, build CrawlerRunConfig, run. Returns the exit code."""
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    url = args.url
    if not url.startswith(('http://', 'https://')):
        url = 'https://' + url

    cfg = CrawlerRunConfig.from_cli_args(args)
    if not (cfg.output_json or cfg.output_csv or cfg.output_docx):
        cfg.output_json = f"{_base_name_from_url(url)}_products.json"
    cfg.log_summary(url)

    crawler = ProductCrawler(cfg.to_crawl_config())

    def progress_cb(pages_processed, current_url, stats):
        print(f"[Page {pages_processed}/{cfg.max_pages}] {current_url[:70]}... "
              f"(products: {stats.get('products_found', 0)})")

    crawler.set_progress_callback(progress_cb)

    try:
        result = crawler.run(url)
    except KeyboardInterrupt:
        logger.warning("Interrupted — no results written")
        return 130

    if result.error:
        logger.error(f"Crawl failed: {result.error}")
    # Runs that died mid-crawl still export what they collected
    if not result.error or result.visited_urls:
        try:
            _export(result, cfg)
        except OSError as exc:
            logger.error(f"Export failed: {exc}", exc_info=True)
    print_summary(result)
    return 1 if result.error else 0


if __name__ == '__main__':
    sys.exit(run_cli_with_args())
