"""
Tests for scope_filter.py.

Covers:
  1. Same-domain check (hostname equality, never raises)
  2. Static-resource detection (extensions, asset paths, image transforms)
  3. ScopeFilter accept/reject bookkeeping
"""

import pytest

from shop_crawler.scope_filter import ScopeFilter, is_resource_url, is_same_domain


# ====================================================================
# 1. Same-domain
# ====================================================================

class TestSameDomain:

    def test_same_host(self):
        assert is_same_domain("https://shop.example.com/a", "https://shop.example.com/b")

    def test_scheme_does_not_matter(self):
        assert is_same_domain("http://shop.example.com/a", "https://shop.example.com/")

    def test_host_case_insensitive(self):
        assert is_same_domain("https://SHOP.example.com/a", "https://shop.example.com/")

    def test_subdomain_is_different(self):
        """Exact hostname match only: subdomains are separate sites."""
        assert not is_same_domain("https://cdn.shop.example.com/a", "https://shop.example.com/")
        assert not is_same_domain("https://example.com/a", "https://shop.example.com/")

    def test_lookalike_host(self):
        assert not is_same_domain("https://shop.example.com.evil.net/", "https://shop.example.com/")

    @pytest.mark.parametrize("a, b", [
        ("not a url", "https://shop.example.com/"),
        ("https://shop.example.com/", ""),
        ("", ""),
        ("http://[::1", "https://shop.example.com/"),
    ])
    def test_malformed_never_raises(self, a, b):
        assert is_same_domain(a, b) is False


# ====================================================================
# 2. Resource detection
# ====================================================================

class TestResourceDetection:

    @pytest.mark.parametrize("url", [
        "https://shop.example.com/app.js",
        "https://shop.example.com/app.mjs",
        "https://shop.example.com/theme.css?v=12",
        "https://shop.example.com/logo.png",
        "https://shop.example.com/photo.JPEG",
        "https://shop.example.com/favicon.ico",
        "https://shop.example.com/font.woff2",
        "https://shop.example.com/bundle.js.map",
        "https://shop.example.com/archive.zip",
        "https://shop.example.com/static/anything",
        "https://shop.example.com/assets/x",
        "https://shop.example.com/images/banner",
        "https://shop.example.com/_next/static/chunks/main",
        "https://shop.example.com/_next/image?url=x",
        "https://shop.example.com/cdn-cgi/challenge",
        "https://shop.example.com/hero?w=800",
        "https://shop.example.com/hero?width=800",
        "https://shop.example.com/hero?quality=80",
    ])
    def test_resources(self, url):
        assert is_resource_url(url)

    @pytest.mark.parametrize("url", [
        "https://shop.example.com/",
        "https://shop.example.com/products/shoes",
        "https://shop.example.com/p/1.html",
        "https://shop.example.com/search?q=shoes",
        "https://shop.example.com/p/1?size=m",
        "https://shop.example.com/collections/imagery",
        "https://shop.example.com/p/1?color=red&w=2",
        "https://shop.example.com/javascript-books",
    ])
    def test_content_pages(self, url):
        assert not is_resource_url(url)


# ====================================================================
# 3. ScopeFilter
# ====================================================================

class TestScopeFilter:

    def test_accepts_same_domain_page(self):
        sf = ScopeFilter("https://shop.example.com/")
        assert sf.accept("https://shop.example.com/p/1")
        assert sf.stats() == {'rejected_off_domain': 0, 'rejected_resources': 0}

    def test_rejects_and_counts(self):
        sf = ScopeFilter("https://shop.example.com/")
        assert not sf.accept("https://other.example.com/p/1")
        assert not sf.accept("https://shop.example.com/logo.png")
        assert not sf.accept("https://shop.example.com/static/x")
        assert sf.rejected_off_domain == 1
        assert sf.rejected_resources == 2

    def test_off_domain_resource_counted_as_off_domain(self):
        sf = ScopeFilter("https://shop.example.com/")
        assert not sf.accept("https://cdn.example.com/a.css")
        assert sf.rejected_off_domain == 1
        assert sf.rejected_resources == 0

    def test_domain_and_description(self):
        sf = ScopeFilter("https://Shop.Example.com/en/")
        assert sf.domain == "shop.example.com"
        assert "shop.example.com" in sf.scope_description
