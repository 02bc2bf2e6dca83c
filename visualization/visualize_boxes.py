import logging
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

import fitz  # PyMuPDF

from processor.data_models import ElementType
from processor.pipeline import DocumentAnalysis, LayoutElement
from utils.geometry_utils import BBox

logger = logging.getLogger(__name__)

# Colors for different element types (RGB format)
ELEMENT_COLORS: Dict[ElementType, Tuple[float, float, float]] = {
    ElementType.HEADING: (102/255, 102/255, 255/255),   # Blue
    ElementType.PARAGRAPH: (153/255, 0/255, 76/255),    # Dark Red / Maroon
    ElementType.LIST: (40/255, 169/255, 92/255),        # Dark Green
}
HEADER_FOOTER_COLOR = (158/255, 158/255, 158/255)       # Gray
DEFAULT_COLOR = (0, 0, 0)


def to_fitz_rect(bbox: BBox, page_height: float) -> "fitz.Rect":
    """Convert a bottom-left origin box to PyMuPDF's top-left origin rectangle."""
    return fitz.Rect(bbox.x, page_height - bbox.top, bbox.right, page_height - bbox.y)


def draw_page_elements(page: "fitz.Page", elements: Sequence[LayoutElement],
                       page_height: Optional[float] = None) -> int:
    """Draw one labelled box per element on ``page``; returns the number drawn."""
    if page_height is None:
        page_height = page.rect.height

    drawn = 0
    for element in elements:
        if element.bbox.is_empty():
            logger.debug(f"Skipping element {element.index} with an empty bbox")
            continue
        color = ELEMENT_COLORS.get(element.type, DEFAULT_COLOR)
        rect = to_fitz_rect(element.bbox, page_height)
        page.draw_rect(rect, color=color, width=1)

        label = f"{element.index}: {element.type}"
        if element.heading is not None:
            label += f" {element.heading.level}"
        page.insert_text(fitz.Point(rect.x0, rect.y0 - 2), label, color=color, fontsize=6)
        drawn += 1
    return drawn


def draw_document_layout(pdf_path: str, document: DocumentAnalysis,
                         output_path: Optional[str] = None) -> str:
    """
    Draw the detected elements of every analyzed page onto a copy of the PDF.

    Args:
        pdf_path: Path to the source PDF
        document: Layout analysis of that PDF
        output_path: Where to save the annotated PDF, ``<name>_layout.pdf`` next
            to the source when omitted

    Returns:
        str: Path of the annotated PDF
    """
    if output_path is None:
        source = Path(pdf_path)
        output_path = str(source.parent / f"{source.stem}_layout.pdf")

    doc = fitz.open(pdf_path)
    try:
        total = 0
        for page_index, result in zip(document.page_indices, document.pages):
            if page_index >= len(doc):
                logger.warning(f"Page {page_index} not found in {pdf_path}, skipping")
                continue
            page = doc[page_index]
            total += draw_page_elements(page, result.elements, result.page_height or None)
            if document.header_footer is not None:
                _draw_header_footer_bands(page, document, page_index)
        doc.save(output_path)
    finally:
        doc.close()

    logger.info(f"Saved layout visualization with {total} elements to {output_path}")
    return output_path


def _draw_header_footer_bands(page: "fitz.Page", document: DocumentAnalysis, page_index: int) -> None:
    """Mark the header and footer bands of pages that had repeated text removed."""
    result = document.header_footer
    config = result.config
    rect = page.rect
    if any(page_index in region.page_indices for region in result.headers):
        band = fitz.Rect(rect.x0, rect.y0, rect.x1, rect.y0 + config.header_region_height)
        page.draw_rect(band, color=HEADER_FOOTER_COLOR, width=0.5, dashes="[2] 0")
    if any(page_index in region.page_indices for region in result.footers):
        band = fitz.Rect(rect.x0, rect.y1 - config.footer_region_height, rect.x1, rect.y1)
        page.draw_rect(band, color=HEADER_FOOTER_COLOR, width=0.5, dashes="[2] 0")
