"""
Page Renderer
=============
Loads a URL in a real browser and hands back the rendered markup, the
post-redirect URL and the outbound links.

``Renderer`` is the interface the orchestrator depends on;
``PlaywrightRenderer`` is the production implementation:

- Single Chromium instance, single BrowserContext (shared cookies)
- Pages served from a bounded ``PagePool``
- Route-based blocking of images, fonts, media and analytics scripts
- ``load`` + best-effort ``networkidle`` + ``body`` wait for a stable DOM
- HTTP 404 / 410 reported as "not found" (``None``), not as an error
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import List, Optional

from playwright.async_api import Browser, BrowserContext, Page, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from .models import RenderedPage
from .page_pool import PagePool

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)

NOT_FOUND_STATUSES = frozenset({404, 410})

# Resource types to block for speed
_BLOCKED_RESOURCE_TYPES = frozenset([
    "image", "media", "font",
])

# URL patterns for analytics/tracking scripts to block
_BLOCKED_URL_PATTERNS = [
    re.compile(r"google[-_]?analytics", re.IGNORECASE),
    re.compile(r"googletagmanager", re.IGNORECASE),
    re.compile(r"facebook\.net", re.IGNORECASE),
    re.compile(r"doubleclick\.net", re.IGNORECASE),
    re.compile(r"hotjar\.", re.IGNORECASE),
    re.compile(r"segment\.(com|io)", re.IGNORECASE),
    re.compile(r"mixpanel\.", re.IGNORECASE),
    re.compile(r"klaviyo\.", re.IGNORECASE),
    re.compile(r"tiktok\.com", re.IGNORECASE),
]

_COLLECT_LINKS_JS = """
() => Array.from(document.querySelectorAll('a[href]'))
    .map(a => a.href)
    .filter(href => href && !href.startsWith('javascript:'))
"""


class FetchError(RuntimeError):
    """Navigation failed for one URL (timeout, network error, crashed page)."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{reason} ({url})")
        self.url = url
        self.reason = reason


class Renderer(ABC):
    """Loads pages for the crawler. Owned by exactly one crawl run."""

    @abstractmethod
    async def start(self) -> None:
        """Acquire underlying resources. Failure here is fatal to the run."""

    @abstractmethod
    async def fetch(self, url: str, timeout_ms: int) -> Optional[RenderedPage]:
        """
        Render ``url``.

        Returns:
            RenderedPage on success, None when the server says not found.

        Raises:
            FetchError: navigation failed or timed out.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release everything acquired by ``start``. Must be idempotent."""

    async def __aenter__(self) -> "Renderer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class PlaywrightRenderer(Renderer):
    """Headless Chromium renderer backed by a bounded page pool."""

    def __init__(
        self,
        pool_size: int = 5,
        headless: bool = True,
        user_agent: str = DEFAULT_USER_AGENT,
        viewport_width: int = 1366,
        viewport_height: int = 900,
        block_media: bool = True,
        block_analytics: bool = True,
        body_timeout_ms: int = 5000,
    ):
        self.pool_size = pool_size
        self.headless = headless
        self.user_agent = user_agent
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.block_media = block_media
        self.block_analytics = block_analytics
        self.body_timeout_ms = body_timeout_ms

        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self.pool: Optional[PagePool[Page]] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Launch the browser, create the context and the page pool."""
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=[
                    '--no-sandbox',
                    '--disable-setuid-sandbox',
                    '--disable-gpu',
                    '--disable-dev-shm-usage',
                    '--disable-extensions',
                    '--no-first-run',
                ],
            )
            self._context = await self._browser.new_context(
                user_agent=self.user_agent,
                viewport={'width': self.viewport_width, 'height': self.viewport_height},
                locale='en-US',
            )
            if self.block_media or self.block_analytics:
                await self._context.route("**/*", self._route_handler)

            self.pool = PagePool(
                factory=self._context.new_page,
                disposer=lambda page: page.close(),
                size=self.pool_size,
                is_healthy=lambda page: not page.is_closed(),
            )
            # Open one page up front so a context that cannot host pages fails here
            page = await self.pool.acquire()
            await self.pool.release(page)
        except BaseException:
            await self.close()
            raise

        logger.info(
            f"Playwright browser initialized (pages={self.pool_size}, "
            f"headless={self.headless}, "
            f"blocking={'images,fonts,media' if self.block_media else 'none'})"
        )

    async def close(self) -> None:
        """Close pool pages, context, browser, then stop Playwright."""
        if self.pool is not None:
            await self.pool.close()
            self.pool = None
        if self._context is not None:
            try:
                await self._context.close()
            except PlaywrightError as e:
                logger.debug(f"Context close failed: {e}")
            self._context = None
        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError as e:
                logger.debug(f"Browser close failed: {e}")
            self._browser = None
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.debug(f"Playwright stop failed: {e}")
            self._playwright = None

    async def _route_handler(self, route) -> None:
        """Block unnecessary resources for speed."""
        request = route.request
        resource_type = request.resource_type

        if self.block_media and resource_type in _BLOCKED_RESOURCE_TYPES:
            await route.abort()
            return

        if self.block_analytics and resource_type == "script":
            for pattern in _BLOCKED_URL_PATTERNS:
                if pattern.search(request.url):
                    await route.abort()
                    return

        await route.continue_()

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    async def fetch(self, url: str, timeout_ms: int) -> Optional[RenderedPage]:
        if self.pool is None:
            raise FetchError(url, "renderer not started")

        async with self.pool.session() as page:
            try:
                response = await page.goto(url, timeout=timeout_ms, wait_until='load')
            except PlaywrightTimeout as e:
                raise FetchError(url, f"navigation timeout after {timeout_ms}ms") from e
            except PlaywrightError as e:
                raise FetchError(url, f"navigation error: {e}") from e

            status = response.status if response is not None else 0
            if status in NOT_FOUND_STATUSES:
                logger.info(f"[{status}] Skipping {url} — not found")
                return None

            final_url = response.url if response is not None else page.url

            # SPAs keep fetching after `load`; settle briefly but never fail on it
            try:
                await page.wait_for_load_state('networkidle', timeout=self.body_timeout_ms)
            except PlaywrightTimeout:
                pass

            try:
                await page.wait_for_selector('body', timeout=self.body_timeout_ms)
                html = await page.content()
                links: List[str] = await page.evaluate(_COLLECT_LINKS_JS)
            except PlaywrightTimeout as e:
                raise FetchError(url, "document never became ready") from e
            except PlaywrightError as e:
                raise FetchError(url, f"extraction error: {e}") from e

            return RenderedPage(
                requested_url=url,
                final_url=final_url or url,
                html=html,
                links=[l for l in links if isinstance(l, str)],
                status=status,
            )
