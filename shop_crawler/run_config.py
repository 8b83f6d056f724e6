"""
Unified Run Configuration
=========================
Single source of truth for crawler defaults and runtime limits.

The CLI and the Streamlit app populate this object; the engine-level
``CrawlConfig`` is built *from* it via ``to_crawl_config()``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .classifier import DEFAULT_MODEL
from .renderer import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Canonical defaults, the ONLY place these numbers live
# ---------------------------------------------------------------------------
_DEFAULTS = {
    "max_pages": 100,
    "workers": 5,                    # concurrent renderer pages
    "batch_size": 4,                 # URLs popped per round
    "timeout_seconds": 30,           # per-page navigation timeout
    "max_retries_per_page": 0,
    "max_html_chars": 15000,
    "max_link_sample": 100,
    "model": DEFAULT_MODEL,
    "headless": True,
    "output_json": None,
    "output_csv": None,
    "output_docx": None,
    "user_agent": DEFAULT_USER_AGENT,
    "report_interval_s": 10.0,
}


@dataclass
class CrawlerRunConfig:
    """
    Populate via:
      - ``CrawlerRunConfig()``                → all defaults
      - ``CrawlerRunConfig(max_pages=50)``     → override one value
      - ``CrawlerRunConfig.from_cli_args(ns)`` → from argparse Namespace
    """

    # ---- Crawl limits ----
    max_pages: int = _DEFAULTS["max_pages"]
    workers: int = _DEFAULTS["workers"]
    batch_size: int = _DEFAULTS["batch_size"]
    timeout_seconds: int = _DEFAULTS["timeout_seconds"]
    max_retries_per_page: int = _DEFAULTS["max_retries_per_page"]

    # ---- Classifier input ----
    max_html_chars: int = _DEFAULTS["max_html_chars"]
    max_link_sample: int = _DEFAULTS["max_link_sample"]
    model: str = _DEFAULTS["model"]

    # ---- Browser ----
    headless: bool = _DEFAULTS["headless"]
    user_agent: str = _DEFAULTS["user_agent"]

    # ---- Output paths (None = skip) ----
    output_json: Optional[str] = _DEFAULTS["output_json"]
    output_csv: Optional[str] = _DEFAULTS["output_csv"]
    output_docx: Optional[str] = _DEFAULTS["output_docx"]

    report_interval_s: float = _DEFAULTS["report_interval_s"]

    # -----------------------------------------------------------------------
    # Factory helpers
    # -----------------------------------------------------------------------
    @classmethod
    def from_cli_args(cls, args) -> "CrawlerRunConfig":
        """Build config from an argparse Namespace (``__main__.py``)."""
        return cls(
            max_pages=getattr(args, "pages", _DEFAULTS["max_pages"]),
            workers=getattr(args, "workers", _DEFAULTS["workers"]),
            batch_size=getattr(args, "batch", _DEFAULTS["batch_size"]),
            timeout_seconds=getattr(args, "timeout", _DEFAULTS["timeout_seconds"]),
            max_retries_per_page=getattr(args, "retries", _DEFAULTS["max_retries_per_page"]),
            model=getattr(args, "model", _DEFAULTS["model"]),
            headless=not getattr(args, "headed", False),
            output_json=getattr(args, "output_json", None),
            output_csv=getattr(args, "output_csv", None),
            output_docx=getattr(args, "output_docx", None),
        )

    # -----------------------------------------------------------------------
    # Converter to the engine config
    # -----------------------------------------------------------------------
    def to_crawl_config(self):
        """Return a ``CrawlConfig`` populated from this run config."""
        from .crawler import CrawlConfig
        return CrawlConfig(
            max_pages=self.max_pages,
            pool_size=self.workers,
            batch_size=self.batch_size,
            timeout_ms=self.timeout_seconds * 1000,
            max_retries_per_page=self.max_retries_per_page,
            max_html_chars=self.max_html_chars,
            max_link_sample=self.max_link_sample,
            headless=self.headless,
            user_agent=self.user_agent,
            gemini_model=self.model,
            report_interval_s=self.report_interval_s,
        )

    # -----------------------------------------------------------------------
    # Logging helper
    # -----------------------------------------------------------------------
    def log_summary(self, url: str) -> None:
        """Emit a structured summary to the logger."""
        logger.info("=" * 60)
        logger.info("CRAWL RUN CONFIG")
        logger.info("=" * 60)
        logger.info(f"  URL:              {url}")
        logger.info(f"  Max Pages:        {self.max_pages}")
        logger.info(f"  Workers:          {self.workers} (batch {self.batch_size})")
        logger.info(f"  Timeout:          {self.timeout_seconds}s per page")
        logger.info(f"  Retries:          {self.max_retries_per_page} per page")
        logger.info(f"  Model:            {self.model}")
        logger.info(f"  Headless:         {self.headless}")
        if self.output_json:
            logger.info(f"  JSON Output:      {self.output_json}")
        if self.output_csv:
            logger.info(f"  CSV Output:       {self.output_csv}")
        if self.output_docx:
            logger.info(f"  DOCX Output:      {self.output_docx}")
        logger.info("=" * 60)
