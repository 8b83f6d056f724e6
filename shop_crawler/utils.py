"""
Utility Functions
URL normalization, link resolution, and HTML preparation helpers.

Every URL that enters the frontier, the analysis cache or the product set
goes through ``normalize_url()`` so that superficial variations of the same
page (fragment, locale prefix, trailing slash, query order, letter case)
collapse to a single key.
"""

import logging
import re
from typing import Iterable, List, Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


class InvalidUrl(ValueError):
    """Raised when a string cannot be parsed as an absolute http(s) URL."""


# Two-letter locale prefixes stripped from the first path segment
LANGUAGE_CODES = frozenset({
    'en', 'ar', 'fr', 'es', 'de', 'it', 'ru', 'zh', 'ja', 'ko',
    'nl', 'pl', 'pt', 'tr', 'vi', 'th', 'id', 'ms', 'hi',
})

_SKIP_SCHEMES = ('javascript:', 'mailto:', 'tel:', 'data:', '#')

# Tags that carry no page content worth sending to the classifier
_NOISE_TAGS = ['script', 'style', 'noscript', 'svg', 'iframe', 'template']


def _strip_language_prefix(path: str) -> str:
    """Drop leading locale segments (``/en/shop`` -> ``/shop``)."""
    parts = [p for p in path.split('/') if p]
    if not parts or parts[0].lower() not in LANGUAGE_CODES:
        return path
    # Repeated prefixes (/en/fr/...) are all dropped so the result is stable
    while parts and parts[0].lower() in LANGUAGE_CODES:
        parts.pop(0)
    return '/' + '/'.join(parts)


def _sorted_query(query: str) -> str:
    """Sort query parameters by key; stable for repeated keys."""
    if not query:
        return ''
    params = parse_qsl(query, keep_blank_values=True)
    params.sort(key=lambda kv: kv[0].lower())
    return urlencode(params)


def normalize_url(raw: str) -> str:
    """
    Canonicalize a URL into the key used for equality and deduplication.

    Steps, in order: parse, drop fragment, drop locale prefix, collapse
    trailing slashes, sort query parameters by key, lower-case everything.

    Raises:
        InvalidUrl: if ``raw`` is not an absolute http(s) URL with a host.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidUrl(f"Invalid URL: {raw!r}")

    try:
        parts = urlsplit(raw.strip())
        # Accessing .port validates the netloc (raises on garbage ports)
        parts.port
    except ValueError as exc:
        raise InvalidUrl(f"Invalid URL: {raw!r}") from exc

    if parts.scheme.lower() not in ('http', 'https') or not parts.hostname:
        raise InvalidUrl(f"Invalid URL: {raw!r}")

    path = _strip_language_prefix(parts.path)
    path = re.sub(r'/+$', '', path) or '/'
    query = _sorted_query(parts.query)

    normalized = urlunsplit((parts.scheme, parts.netloc, path, query, ''))
    return normalized.lower()


def is_valid_url(url: str) -> bool:
    """Check if URL is acceptable to ``normalize_url``."""
    try:
        normalize_url(url)
        return True
    except InvalidUrl:
        return False


def extract_domain(url: str) -> str:
    """Extract the lower-cased hostname from a URL ('' when malformed)."""
    try:
        return (urlsplit(url).hostname or '').lower()
    except ValueError:
        return ''


def resolve_url(href: str, base_url: str) -> Optional[str]:
    """
    Resolve a raw link against the page it was found on.

    Returns None for non-navigational hrefs (javascript:, mailto:, tel:,
    data:, bare fragments) and for anything that does not resolve to http(s).
    """
    if not href or not isinstance(href, str):
        return None
    href = href.strip()
    if href.lower().startswith(_SKIP_SCHEMES):
        return None
    try:
        absolute = urljoin(base_url, href)
    except ValueError:
        return None
    if not absolute.startswith(('http://', 'https://')):
        return None
    return absolute


def clean_html(html: str) -> str:
    """Remove script/style and similar noise so the markup prefix carries content."""
    if not html:
        return ''
    soup = BeautifulSoup(html, 'lxml')
    for tag in soup(_NOISE_TAGS):
        tag.decompose()
    cleaned = str(soup)
    return re.sub(r'\n\s*\n+', '\n', cleaned)


def truncate_html(html: str, max_chars: int) -> str:
    """Keep the first ``max_chars`` characters, marking the cut with '...'."""
    if len(html) <= max_chars:
        return html
    return html[:max_chars] + '...'


def sample_links(links: Iterable[str], limit: int) -> List[str]:
    """First ``limit`` distinct links, in page order."""
    seen = set()
    sample: List[str] = []
    for link in links:
        if not link or link in seen:
            continue
        seen.add(link)
        sample.append(link)
        if len(sample) >= limit:
            break
    return sample


def chunked(items: List, size: int) -> List[List]:
    """Split a list into consecutive chunks of at most ``size`` items."""
    size = max(1, size)
    return [items[i:i + size] for i in range(0, len(items), size)]
