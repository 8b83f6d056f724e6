"""
Page Classifier
===============
Judges what a rendered page is (product / listing / category / other),
extracts product fields, and sorts the page's links into crawl categories.

``PageClassifier`` is the interface the orchestrator depends on;
``GeminiClassifier`` implements it with a Gemini model through the
``google-genai`` SDK. The caller is responsible for truncating the markup and
sampling the links before calling ``classify``; the classifier only ever
sees a prefix and a sample.

Raw model output goes through ``parse_analysis()``, which tolerates code
fences and surrounding prose, and validates the JSON through
``PageAnalysis.from_dict``. Anything unparsable raises ``ClassifierError``.
"""

from __future__ import annotations

import json
import logging
import os
import re
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from google import genai
from google.genai import types

from .models import PageAnalysis

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash-lite"

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


class ClassifierError(RuntimeError):
    """Classifier call failed or returned something that is not an analysis."""


class PageClassifier(ABC):
    """Turns rendered content into a ``PageAnalysis``."""

    @abstractmethod
    async def classify(self, html: str, url: str, links: Sequence[str]) -> PageAnalysis:
        """
        Args:
            html:  Rendered markup (possibly a truncated prefix)
            url:   Normalized page URL
            links: Sample of the page's outbound links
        """


# ---------------------------------------------------------------------------
# Prompt + response parsing
# ---------------------------------------------------------------------------

PROMPT_TEMPLATE = """
You are an e-commerce data extraction system analyzing a web page with the URL: {url}
HTML content:
{html}

Links found on the page:
{links}

Please analyze this content and respond in JSON format with the following:
1. Determine if this is a product page, a listing page, a category page, or another type of page
2. If it's a product page, extract the product name, price, description and main image URL
3. Classify the links on the page into these categories:
   - productLinks: Links that lead to individual product pages
   - paginationLinks: Links that navigate to different pages of the same product listing (next page, previous page, page numbers)
   - categoryLinks: Links to product categories or collections
   - otherRelevantLinks: Any other links that might be relevant for e-commerce crawling (but are not products, pagination, or categories)

Your goal is to help a crawler navigate through the site to discover all products efficiently.

Response format:
{{
  "pageType": "product" or "listing" or "category" or "other",
  "product": {{
    "name": "Product Name",
    "price": "Price",
    "description": "Description",
    "imageUrl": "Image URL"
  }},
  "productLinks": ["link1", "link2", ...],
  "paginationLinks": ["link1", "link2", ...],
  "categoryLinks": ["link1", "link2", ...],
  "otherRelevantLinks": ["link1", "link2", ...]
}}
"""


def build_prompt(html: str, url: str, links: Sequence[str]) -> str:
    return PROMPT_TEMPLATE.format(url=url, html=html, links="\n".join(links))


def parse_analysis(text: str) -> PageAnalysis:
    """
    Decode a model response into a validated ``PageAnalysis``.

    Raises:
        ClassifierError: no JSON object could be decoded from ``text``.
    """
    if not text or not text.strip():
        raise ClassifierError("empty classifier response")

    body = text.strip()
    if "```json" in body:
        body = body.split("```json", 1)[1].split("```", 1)[0]
    elif body.startswith("```"):
        body = body.split("```", 2)[1]

    match = _JSON_OBJECT_RE.search(body)
    candidate = match.group(0) if match else body
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ClassifierError(f"unparsable classifier response: {e}") from e
    if not isinstance(data, dict):
        raise ClassifierError(f"classifier response is {type(data).__name__}, not an object")
    return PageAnalysis.from_dict(data)


# ---------------------------------------------------------------------------
# Gemini implementation
# ---------------------------------------------------------------------------

class GeminiClassifier(PageClassifier):
    """
    Gemini-backed classifier.

    API key resolution: explicit argument, then ``GEMINI_API_KEY``, then
    ``GOOGLE_API_KEY``.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.0,
    ):
        self.api_key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        if not self.api_key:
            raise ClassifierError("No API key found (GEMINI_API_KEY or GOOGLE_API_KEY)")
        self.model = model
        self.client = genai.Client(api_key=self.api_key)
        self.config = types.GenerateContentConfig(
            temperature=temperature,
            response_mime_type="application/json",
        )

    async def classify(self, html: str, url: str, links: Sequence[str]) -> PageAnalysis:
        prompt = build_prompt(html, url, links)
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=self.config,
            )
        except Exception as e:
            raise ClassifierError(f"Gemini call failed: {e}") from e

        analysis = parse_analysis(response.text or "")
        logger.debug(
            f"[CLASSIFY] {url[:80]} -> {analysis.page_type.value} "
            f"({analysis.link_count} links)"
        )
        return analysis
