"""
Tests for crawl data records.
"""

from shop_crawler.models import CrawlResult, PageAnalysis, PageType, ProductRecord


class TestProductRecord:

    def test_from_dict(self):
        p = ProductRecord.from_dict(
            {"name": " Widget ", "price": "$5", "description": "Nice", "imageUrl": "/w.png"},
            url="https://s.com/p/1",
        )
        assert p.name == "Widget"
        assert p.url == "https://s.com/p/1"
        assert p.image_url == "/w.png"

    def test_from_dict_requires_name(self):
        assert ProductRecord.from_dict({"price": "$5"}) is None
        assert ProductRecord.from_dict({"name": "   "}) is None
        assert ProductRecord.from_dict(None) is None

    def test_to_dict_omits_missing_image(self):
        data = ProductRecord(name="W", price="$1", url="https://s.com/p/1").to_dict()
        assert data == {"name": "W", "price": "$1", "description": "", "url": "https://s.com/p/1"}

    def test_to_dict_with_image(self):
        data = ProductRecord(name="W", image_url="https://s.com/w.png").to_dict()
        assert data["imageUrl"] == "https://s.com/w.png"


class TestPageAnalysis:

    def test_empty(self):
        a = PageAnalysis.empty()
        assert a.page_type is PageType.OTHER
        assert a.product is None
        assert a.link_count == 0
        assert not a.has_product

    def test_product_requires_product_page_type(self):
        a = PageAnalysis(page_type=PageType.LISTING, product=ProductRecord(name="W"))
        assert not a.has_product

    def test_from_dict_non_mapping(self):
        assert PageAnalysis.from_dict(["x"]) == PageAnalysis.empty()

    def test_page_type_case_insensitive(self):
        assert PageAnalysis.from_dict({"pageType": " PRODUCT "}).page_type is PageType.PRODUCT

    def test_round_trip_shape(self):
        a = PageAnalysis(page_type=PageType.CATEGORY, category_links=("/c/1",))
        data = a.to_dict()
        assert data["pageType"] == "category"
        assert data["categoryLinks"] == ["/c/1"]
        assert data["product"] is None


class TestCrawlResult:

    def test_failed(self):
        r = CrawlResult.failed("Invalid start URL")
        assert r.to_dict() == {"products": [], "visitedUrls": [], "error": "Invalid start URL"}

    def test_success_has_no_error_key(self):
        r = CrawlResult(
            products=[ProductRecord(name="W", url="https://s.com/p/1")],
            visited_urls=["https://s.com/", "https://s.com/p/1"],
        )
        data = r.to_dict()
        assert "error" not in data
        assert data["products"][0]["name"] == "W"
        assert data["visitedUrls"] == ["https://s.com/", "https://s.com/p/1"]
