"""
Product Catalog Word Exporter
=============================
Produces a formatted DOCX catalog from a ``CrawlResult``.

Layout:
- Cover page with crawl summary statistics
- Overview table (name / price / URL) for every product
- One section per product: price, description, image and source links
- Appendix listing every visited URL
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Tuple

from docx import Document
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.opc.constants import RELATIONSHIP_TYPE
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Pt, RGBColor

from .models import CrawlResult, ProductRecord

logger = logging.getLogger(__name__)

_LINK_COLOR = RGBColor(0x25, 0x63, 0xEB)
_MUTED_COLOR = RGBColor(0x64, 0x74, 0x8B)


def export_docx(
    result: CrawlResult,
    filepath: str,
    *,
    title: str = "Product Crawl Report",
    include_visited: bool = True,
    max_description_chars: int = 2000,
) -> str:
    """
    Export a crawl result to a Word document.

    Args:
        result: Finished crawl
        filepath: Output .docx path
        title: Cover page heading
        include_visited: Append the visited-URL list
        max_description_chars: Truncate long product descriptions

    Returns:
        Absolute path to the created file
    """
    output_path = Path(filepath)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    doc = Document()

    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(10)
    style.paragraph_format.space_after = Pt(4)

    # ── Cover Page ─────────────────────────────────────────────────
    heading = doc.add_heading(title, level=0)
    heading.alignment = WD_ALIGN_PARAGRAPH.CENTER

    summary_items = _summary_items(result)
    summary_table = doc.add_table(rows=len(summary_items), cols=2)
    summary_table.alignment = WD_TABLE_ALIGNMENT.CENTER
    for i, (label, value) in enumerate(summary_items):
        row = summary_table.rows[i]
        _cell_text(row.cells[0], label, bold=True, size=Pt(10))
        _cell_text(row.cells[1], value, size=Pt(10))

    if result.error:
        p = doc.add_paragraph()
        run = p.add_run(f"Crawl error: {result.error}")
        run.bold = True
        run.font.color.rgb = RGBColor(0xDC, 0x26, 0x26)

    doc.add_page_break()

    # ── Overview ───────────────────────────────────────────────────
    if result.products:
        doc.add_heading("Products", level=1)
        _render_overview_table(doc, result.products)
        doc.add_page_break()

        for idx, product in enumerate(result.products):
            _render_product(doc, product, max_description_chars)
            if idx < len(result.products) - 1:
                doc.add_paragraph()
    else:
        doc.add_paragraph("No products were found.")

    # ── Appendix ───────────────────────────────────────────────────
    if include_visited and result.visited_urls:
        doc.add_page_break()
        doc.add_heading("Visited URLs", level=1)
        for url in result.visited_urls:
            p = doc.add_paragraph(style="List Number")
            run = p.add_run(url)
            run.font.size = Pt(8)

    doc.save(str(output_path))
    logger.info(f"Exported DOCX to {output_path.absolute()}")
    return str(output_path.absolute())


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

def _summary_items(result: CrawlResult) -> List[Tuple[str, str]]:
    stats = result.stats or {}
    return [
        ("Products Found", str(len(result.products))),
        ("Pages Visited", str(len(result.visited_urls))),
        ("Pages Not Found", str(stats.get("pages_not_found", 0))),
        ("Pages Failed", str(stats.get("pages_failed", 0))),
        ("Classifier Failures", str(stats.get("classifier_failures", 0))),
        ("Elapsed Time", f"{stats.get('elapsed_sec', 0)}s"),
        ("Speed", f"{stats.get('pages_per_sec_overall', 0):.2f} pages/sec"),
        ("Stop Reason", str(stats.get("stop_reason", "N/A"))),
    ]


def _render_overview_table(doc, products: List[ProductRecord]) -> None:
    table = doc.add_table(rows=1 + len(products), cols=3)
    table.alignment = WD_TABLE_ALIGNMENT.LEFT
    table.style = "Table Grid"

    for i, header in enumerate(("Name", "Price", "URL")):
        _cell_text(table.rows[0].cells[i], header, bold=True, size=Pt(9))

    for row_idx, product in enumerate(products, start=1):
        cells = table.rows[row_idx].cells
        _cell_text(cells[0], product.name[:120], size=Pt(9))
        _cell_text(cells[1], product.price or "-", size=Pt(9))
        _cell_text(cells[2], product.url, size=Pt(8))


def _render_product(doc, product: ProductRecord, max_description_chars: int) -> None:
    doc.add_heading(product.name[:120], level=2)

    _add_hyperlink(doc.add_paragraph(), product.url)

    if product.price:
        p = doc.add_paragraph()
        label = p.add_run("Price: ")
        label.bold = True
        p.add_run(product.price)

    if product.description:
        text = product.description
        if len(text) > max_description_chars:
            text = text[:max_description_chars] + " [...]"
        doc.add_paragraph(text)

    if product.image_url:
        p = doc.add_paragraph()
        label = p.add_run("Image: ")
        label.bold = True
        label.font.size = Pt(9)
        value = p.add_run(product.image_url)
        value.font.size = Pt(9)
        value.font.color.rgb = _MUTED_COLOR


def _cell_text(cell, text: str, bold: bool = False, size=None) -> None:
    """Set cell text with formatting."""
    cell.text = text
    for paragraph in cell.paragraphs:
        for run in paragraph.runs:
            run.bold = bold
            if size:
                run.font.size = size


def _add_hyperlink(paragraph, url: str) -> None:
    """Append a clickable external hyperlink run to ``paragraph``."""
    r_id = paragraph.part.relate_to(url, RELATIONSHIP_TYPE.HYPERLINK, is_external=True)

    hyperlink = OxmlElement("w:hyperlink")
    hyperlink.set(qn("r:id"), r_id)

    run = OxmlElement("w:r")
    r_pr = OxmlElement("w:rPr")
    color = OxmlElement("w:color")
    color.set(qn("w:val"), str(_LINK_COLOR))
    r_pr.append(color)
    underline = OxmlElement("w:u")
    underline.set(qn("w:val"), "single")
    r_pr.append(underline)
    size = OxmlElement("w:sz")
    size.set(qn("w:val"), "18")  # half-points
    r_pr.append(size)
    run.append(r_pr)

    text = OxmlElement("w:t")
    text.text = url
    run.append(text)
    hyperlink.append(run)
    paragraph._p.append(hyperlink)
