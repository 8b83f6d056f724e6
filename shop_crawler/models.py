"""
Crawl Data Model
================
Records exchanged between the renderer, the classifier and the orchestrator.

``PageAnalysis.from_dict`` is the validation boundary for classifier output:
whatever shape the model returns, the rest of the crawler only ever sees a
well-formed, immutable analysis with concrete link tuples.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


class PageType(str, Enum):
    """Classifier judgement of what a page is."""
    PRODUCT = "product"
    LISTING = "listing"
    CATEGORY = "category"
    OTHER = "other"

    @classmethod
    def coerce(cls, value: Any) -> "PageType":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.OTHER


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _as_links(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(v.strip() for v in value if isinstance(v, str) and v.strip())


@dataclass
class ProductRecord:
    """A product extracted from a product page."""
    name: str
    price: str = ""
    description: str = ""
    url: str = ""
    image_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any, url: str = "") -> Optional["ProductRecord"]:
        """Build from classifier output; None if there is no usable product."""
        if not isinstance(data, Mapping):
            return None
        name = _as_text(data.get("name"))
        if not name:
            return None
        image = _as_text(data.get("imageUrl", data.get("image_url"))) or None
        return cls(
            name=name,
            price=_as_text(data.get("price")),
            description=_as_text(data.get("description")),
            url=url or _as_text(data.get("url")),
            image_url=image,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "price": self.price,
            "description": self.description,
            "url": self.url,
        }
        if self.image_url:
            data["imageUrl"] = self.image_url
        return data


@dataclass(frozen=True)
class PageAnalysis:
    """Structured classifier judgement for one page. Immutable once built."""
    page_type: PageType = PageType.OTHER
    product: Optional[ProductRecord] = None
    product_links: Tuple[str, ...] = ()
    pagination_links: Tuple[str, ...] = ()
    category_links: Tuple[str, ...] = ()
    other_relevant_links: Tuple[str, ...] = ()

    @classmethod
    def empty(cls) -> "PageAnalysis":
        """Degraded result: ``other`` with no product and no links."""
        return cls()

    @classmethod
    def from_dict(cls, data: Any) -> "PageAnalysis":
        """Validate and coerce a decoded classifier response."""
        if not isinstance(data, Mapping):
            return cls.empty()
        return cls(
            page_type=PageType.coerce(data.get("pageType", data.get("page_type"))),
            product=ProductRecord.from_dict(data.get("product")),
            product_links=_as_links(data.get("productLinks")),
            pagination_links=_as_links(data.get("paginationLinks")),
            category_links=_as_links(data.get("categoryLinks")),
            other_relevant_links=_as_links(data.get("otherRelevantLinks")),
        )

    @property
    def has_product(self) -> bool:
        return self.page_type is PageType.PRODUCT and self.product is not None

    @property
    def link_count(self) -> int:
        return (len(self.product_links) + len(self.pagination_links)
                + len(self.category_links) + len(self.other_relevant_links))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pageType": self.page_type.value,
            "product": self.product.to_dict() if self.product else None,
            "productLinks": list(self.product_links),
            "paginationLinks": list(self.pagination_links),
            "categoryLinks": list(self.category_links),
            "otherRelevantLinks": list(self.other_relevant_links),
        }


@dataclass
class RenderedPage:
    """What the renderer hands back for a successfully loaded URL."""
    requested_url: str
    final_url: str
    html: str = ""
    links: List[str] = field(default_factory=list)
    status: int = 200


@dataclass
class CrawlResult:
    """Result of one crawl run; the run's only externally visible output."""
    products: List[ProductRecord] = field(default_factory=list)
    visited_urls: List[str] = field(default_factory=list)
    error: Optional[str] = None
    stats: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failed(cls, error: str) -> "CrawlResult":
        return cls(products=[], visited_urls=[], error=error)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "products": [p.to_dict() for p in self.products],
            "visitedUrls": list(self.visited_urls),
        }
        if self.error is not None:
            data["error"] = self.error
        return data
