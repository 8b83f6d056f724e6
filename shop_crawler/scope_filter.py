"""
Scope Filter
=============
Domain scoping and static-resource rejection for product crawling.

Two pure predicates do the work:

- ``is_same_domain(a, b)``: hostname equality, never raises
- ``is_resource_url(url)``: fast reject for static assets, applied before
  any render or classifier cost is paid

``ScopeFilter`` binds both to the crawl's root URL and keeps rejection
counters for the run summary.

Only unambiguous asset URLs match; anything uncertain is rendered and
left to the classifier.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Pattern

from .utils import extract_domain

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------
# Static-resource patterns, grouped by category
# -----------------------------------------------------------------------

ASSET_EXTENSION_PATTERNS: List[Pattern[str]] = [
    re.compile(
        r"\.(js|mjs|css|png|jpe?g|gif|ico|svg|woff2?|ttf|eot|otf|map|webp|avif|bmp|mp4|webm|mp3)(\?.*)?$",
        re.IGNORECASE,
    ),
    re.compile(r"\.(br|gz|zip|rar|7z|tar|bz2)(\?.*)?$", re.IGNORECASE),
]

ASSET_PATH_PATTERNS: List[Pattern[str]] = [
    re.compile(r"/(static|assets|images|img|fonts|css|js)/", re.IGNORECASE),
    re.compile(r"/_next/(static|image|data|chunks)", re.IGNORECASE),
    re.compile(r"/(cdn-cgi|__webpack|webpack)/", re.IGNORECASE),
]

# Image resize / quality parameters leading the query string.
# ``q=`` (site search) and ``size=`` (apparel facets) are content, not assets.
IMAGE_TRANSFORM_PATTERNS: List[Pattern[str]] = [
    re.compile(r"\?(w|h|width|height|quality)=", re.IGNORECASE),
]

RESOURCE_PATTERNS: List[Pattern[str]] = (
    ASSET_EXTENSION_PATTERNS + ASSET_PATH_PATTERNS + IMAGE_TRANSFORM_PATTERNS
)


def is_resource_url(url: str) -> bool:
    """True if the URL looks like a static asset rather than a page."""
    if not url:
        return False
    return any(pattern.search(url) for pattern in RESOURCE_PATTERNS)


def is_same_domain(a: str, b: str) -> bool:
    """Compare hostnames only (case-insensitive). Malformed input -> False."""
    host_a = extract_domain(a)
    host_b = extract_domain(b)
    return bool(host_a) and host_a == host_b


# -----------------------------------------------------------------------
# Stateful filter bound to one crawl
# -----------------------------------------------------------------------

@dataclass
class ScopeFilter:
    """
    Accept/reject discovered links for a crawl rooted at ``root_url``.

    Usage::

        sf = ScopeFilter("https://shop.example.com/")
        sf.accept("https://shop.example.com/p/1")     # True
        sf.accept("https://other.example.com/p/1")    # False
        sf.accept("https://shop.example.com/a.css")   # False
    """
    root_url: str
    rejected_off_domain: int = field(default=0, init=False)
    rejected_resources: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.domain = extract_domain(self.root_url)

    def accept(self, url: str) -> bool:
        if not is_same_domain(url, self.root_url):
            self.rejected_off_domain += 1
            return False
        if is_resource_url(url):
            self.rejected_resources += 1
            return False
        return True

    @property
    def scope_description(self) -> str:
        return f"host={self.domain}"

    def log_scope(self) -> None:
        logger.info(f"[SCOPE] Crawling only within domain: {self.domain}")

    def stats(self) -> dict:
        return {
            'rejected_off_domain': self.rejected_off_domain,
            'rejected_resources': self.rejected_resources,
        }
