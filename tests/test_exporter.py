"""
Tests for JSON / CSV / DOCX export.
"""

import csv
import json

import pytest
from docx import Document

from shop_crawler.exporter import export_csv, export_json
from shop_crawler.models import CrawlResult, ProductRecord
from shop_crawler.word_exporter import export_docx


@pytest.fixture
def result():
    return CrawlResult(
        products=[
            ProductRecord(name="Widget", price="$5", description="Blue", url="https://s.com/p/1",
                          image_url="https://s.com/w.png"),
            ProductRecord(name="Gadget", price="$9", url="https://s.com/p/2"),
        ],
        visited_urls=["https://s.com/", "https://s.com/p/1", "https://s.com/p/2"],
        stats={"pages_failed": 0, "elapsed_sec": 1.5, "stop_reason": "Frontier exhausted"},
    )


def test_export_json(tmp_path, result):
    path = export_json(result, str(tmp_path / "out" / "products.json"))
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    assert [p["name"] for p in data["products"]] == ["Widget", "Gadget"]
    assert data["products"][0]["imageUrl"] == "https://s.com/w.png"
    assert "imageUrl" not in data["products"][1]
    assert data["visitedUrls"][0] == "https://s.com/"
    assert data["stats"]["stop_reason"] == "Frontier exhausted"


def test_export_json_without_stats(tmp_path, result):
    path = export_json(result, str(tmp_path / "p.json"), include_stats=False)
    with open(path, encoding="utf-8") as f:
        assert "stats" not in json.load(f)


def test_export_csv(tmp_path, result):
    path = export_csv(result, str(tmp_path / "products.csv"))
    with open(path, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [r["name"] for r in rows] == ["Widget", "Gadget"]
    assert rows[1]["imageUrl"] == ""


def test_export_csv_empty_has_header(tmp_path):
    path = export_csv(CrawlResult(), str(tmp_path / "empty.csv"))
    with open(path, encoding="utf-8") as f:
        assert f.read().strip() == "name,price,description,url,imageUrl"


def test_export_docx(tmp_path, result):
    path = export_docx(result, str(tmp_path / "products.docx"))
    doc = Document(path)
    text = "\n".join(p.text for p in doc.paragraphs)
    assert "Product Crawl Report" in text
    assert "Widget" in text
    assert "https://s.com/p/2" in text
