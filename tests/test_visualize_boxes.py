from pathlib import Path

import fitz
import pytest

from processor.data_models import ElementType
from processor.document_structure import PageFragments
from processor.pipeline import LayoutElement, analyze_pages
from utils.geometry_utils import BBox
from visualization.visualize_boxes import draw_document_layout, draw_page_elements, to_fitz_rect


@pytest.fixture
def blank_pdf(tmp_path, page_size):
    path = tmp_path / "report.pdf"
    doc = fitz.open()
    for _ in range(3):
        doc.new_page(width=page_size[0], height=page_size[1])
    doc.save(str(path))
    doc.close()
    return str(path)


def test_rect_is_flipped_to_top_left_origin():
    rect = to_fitz_rect(BBox(72, 700, 100, 24), 792)
    assert (rect.x0, rect.y0, rect.x1, rect.y1) == (72, 68, 172, 92)


def test_empty_boxes_are_skipped(page_size):
    doc = fitz.open()
    page = doc.new_page(width=page_size[0], height=page_size[1])
    elements = [
        LayoutElement(type=ElementType.PARAGRAPH, bbox=BBox(72, 600, 300, 40), text="body"),
        LayoutElement(type=ElementType.LIST, bbox=BBox(), text="empty"),
    ]
    assert draw_page_elements(page, elements) == 1
    doc.close()


def test_document_layout_is_saved_next_to_source(blank_pdf, make_report_pages):
    document = analyze_pages(make_report_pages(3))

    output = draw_document_layout(blank_pdf, document)

    assert Path(output).name == "report_layout.pdf"
    with fitz.open(output) as annotated:
        assert annotated.page_count == 3


def test_pages_beyond_the_pdf_are_skipped(blank_pdf, heading_page, page_size, tmp_path):
    pages = [PageFragments(page_index=i, page_width=page_size[0], page_height=page_size[1],
                           fragments=heading_page) for i in range(5)]
    document = analyze_pages(pages, page_numbers=[4])
    target = tmp_path / "out.pdf"

    assert draw_document_layout(blank_pdf, document, str(target)) == str(target)
    assert target.exists()
