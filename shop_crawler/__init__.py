"""
Product Crawler Package
Discovers product pages on a single e-commerce site with a headless browser
and a Gemini page classifier.

CLI Usage:
    python -m shop_crawler <url> [options]

    Options:
        --pages         Maximum pages to visit (default: 100)
        --workers       Concurrent browser pages (default: 5)
        --batch         URLs per frontier round (default: 4)
        --timeout       Per-page timeout in seconds (default: 30)
        --retries       Fetch retries per page (default: 0)
        --model         Gemini model
        --output_json   Export to JSON file
        --output_csv    Export to CSV file
        --output_docx   Export to DOCX file
"""

from .crawler import ProductCrawler, CrawlConfig, crawl_website
from .models import CrawlResult, PageAnalysis, PageType, ProductRecord, RenderedPage
from .classifier import PageClassifier, GeminiClassifier, ClassifierError, parse_analysis
from .renderer import Renderer, PlaywrightRenderer, FetchError
from .page_pool import PagePool, PoolExhausted
from .frontier import Frontier, LinkPriority, PendingEntry
from .cache import AnalysisCache
from .run_config import CrawlerRunConfig
from .scope_filter import ScopeFilter, is_resource_url, is_same_domain
from .utils import InvalidUrl, normalize_url, is_valid_url, extract_domain, resolve_url

__all__ = [
    'ProductCrawler',
    'CrawlConfig',
    'crawl_website',
    'CrawlResult',
    'PageAnalysis',
    'PageType',
    'ProductRecord',
    'RenderedPage',
    # Classifier
    'PageClassifier',
    'GeminiClassifier',
    'ClassifierError',
    'parse_analysis',
    # Renderer
    'Renderer',
    'PlaywrightRenderer',
    'FetchError',
    'PagePool',
    'PoolExhausted',
    # Crawl state
    'Frontier',
    'LinkPriority',
    'PendingEntry',
    'AnalysisCache',
    'CrawlerRunConfig',
    # URL handling
    'ScopeFilter',
    'is_resource_url',
    'is_same_domain',
    'InvalidUrl',
    'normalize_url',
    'is_valid_url',
    'extract_domain',
    'resolve_url',
]

__version__ = '1.0.0'
