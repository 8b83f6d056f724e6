"""
Result Exporters
================
Write a ``CrawlResult`` to disk. Every function creates missing parent
directories and returns the absolute path written.

- ``export_json``: ``{"products": [...], "visitedUrls": [...], "stats": {...}}``
- ``export_csv``: one row per product
- ``export_docx`` lives in ``word_exporter``
"""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path

from .models import CrawlResult

logger = logging.getLogger(__name__)

CSV_FIELDS = ['name', 'price', 'description', 'url', 'imageUrl']


def export_json(result: CrawlResult, filepath: str, include_stats: bool = True) -> str:
    """Export products and visited URLs to JSON."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = result.to_dict()
    if include_stats and result.stats:
        data['stats'] = result.stats
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    logger.info(f"[EXPORT] JSON: {len(result.products)} products -> {path}")
    return str(path.absolute())


def export_csv(result: CrawlResult, filepath: str) -> str:
    """Export products to CSV (header only when nothing was found)."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS, extrasaction='ignore')
        writer.writeheader()
        for product in result.products:
            row = product.to_dict()
            row.setdefault('imageUrl', '')
            writer.writerow(row)
    logger.info(f"[EXPORT] CSV: {len(result.products)} products -> {path}")
    return str(path.absolute())
