import pytest

from analyzers.heading_detector import HeadingLevel
from analyzers.paragraph_detector import Paragraph
from processor.data_models import (
    ElementType,
    HeadingElement,
    ListElement,
    ParagraphElement,
    TextAlignment,
)
from processor.pipeline import (
    AnalysisResult,
    Analyzer,
    AnalyzerConfig,
    LayoutElement,
    covers_paragraph,
    sort_elements_by_reading_order,
)
from utils.geometry_utils import BBox

HEADING_PAGE_BODY = ("This document describes the layout analysis of text fragments extracted "
                     "from portable documents and explains how the detected structure can be consumed.")


class TestAnalyzer:
    def test_empty_page(self, page_size):
        result = Analyzer().analyze([], *page_size)

        assert result.elements == []
        assert result.stats.fragment_count == 0
        assert result.get_text() == ""
        assert result.get_markdown() == ""

    def test_heading_then_paragraph(self, heading_page, page_size):
        result = Analyzer().analyze(heading_page, *page_size)

        assert [e.type for e in result.elements] == [ElementType.HEADING, ElementType.PARAGRAPH]
        heading, body = result.elements
        assert heading.heading.level == HeadingLevel.H1
        assert heading.heading.confidence == pytest.approx(0.7)
        assert body.text == HEADING_PAGE_BODY
        assert [e.index for e in result.elements] == [0, 1]
        assert [e.z_order for e in result.elements] == [0, 1]

    def test_stats(self, heading_page, page_size):
        stats = Analyzer().analyze(heading_page, *page_size).stats

        assert stats.fragment_count == 4
        assert stats.line_count == 4
        assert stats.column_count == 1
        assert stats.paragraph_count == 2
        assert stats.heading_count == 1
        assert stats.list_count == 0
        assert stats.element_count == 2

    def test_markdown(self, heading_page, page_size):
        markdown = Analyzer().analyze(heading_page, *page_size).get_markdown()
        assert markdown == f"# Introduction\n\n{HEADING_PAGE_BODY}\n\n"

    def test_list_paragraphs_are_consumed_by_the_list(self, numbered_list, page_size):
        result = Analyzer().analyze(numbered_list, *page_size)

        assert [e.type for e in result.elements] == [ElementType.LIST]
        element = result.elements[0]
        assert element.text == "1. First\n2. Second\n3. Third\n"
        assert result.get_markdown() == "1. First\n2. Second\n3. Third\n\n\n"

    def test_model_elements(self, heading_page, numbered_list, page_size):
        analyzer = Analyzer()
        heading, paragraph = analyzer.analyze(heading_page, *page_size).get_elements()

        assert isinstance(heading, HeadingElement)
        assert heading.level == 1
        assert heading.font_size == 24
        assert heading.element_type == ElementType.HEADING
        assert isinstance(paragraph, ParagraphElement)
        assert paragraph.alignment == TextAlignment.JUSTIFY
        assert paragraph.font_size == 12

        (lst,) = analyzer.analyze(numbered_list, *page_size).get_elements()
        assert isinstance(lst, ListElement)
        assert lst.ordered
        assert [(item.text, item.level) for item in lst.items] == [("First", 0), ("Second", 0), ("Third", 0)]

    def test_columns_are_emitted_in_reading_order(self, two_column_page, page_size):
        result = Analyzer().analyze(two_column_page, *page_size)

        assert result.stats.column_count == 2
        assert [e.text for e in result.elements] == [
            "Left one Left two Left three", "Right one Right two Right three"]

    def test_without_reading_order(self, heading_page, page_size):
        result = Analyzer(AnalyzerConfig(use_reading_order=False)).analyze(heading_page, *page_size)

        assert result.reading_order is None
        assert [e.type for e in result.elements] == [ElementType.HEADING, ElementType.PARAGRAPH]
        assert result.get_text() == f"Introduction\n\n{HEADING_PAGE_BODY}"

    def test_heading_detection_can_be_disabled(self, heading_page, page_size):
        result = Analyzer(AnalyzerConfig(detect_headings=False)).analyze(heading_page, *page_size)

        assert result.headings is None
        assert [e.type for e in result.elements] == [ElementType.PARAGRAPH, ElementType.PARAGRAPH]

    def test_quick_analyze_emits_paragraphs_only(self, heading_page, page_size):
        result = Analyzer().quick_analyze(heading_page, *page_size)

        assert result.headings is None
        assert result.lists is None
        assert [e.text for e in result.elements] == ["Introduction", HEADING_PAGE_BODY]
        assert all(e.type == ElementType.PARAGRAPH for e in result.elements)
        assert result.stats.paragraph_count == 2


class TestHeaderFooterFiltering:
    def test_filtered_page_keeps_body_only(self, make_report_pages):
        pages = make_report_pages(3)
        result = Analyzer().analyze_with_header_footer_filtering(pages, 1)

        assert [e.text for e in result.elements] == [
            "Body text of page 2 starts here and continues on a second line."]
        assert result.stats.fragment_count == 2

    def test_regions_match_each_page_index(self, make_report_pages):
        pages = make_report_pages(3, first_index=1)
        result = Analyzer().analyze_with_header_footer_filtering(pages, 0)

        assert [e.text for e in result.elements] == [
            "Body text of page 1 starts here and continues on a second line."]

    def test_invalid_page_index(self, make_report_pages):
        pages = make_report_pages(3)
        for index in (-1, 3):
            result = Analyzer().analyze_with_header_footer_filtering(pages, index)
            assert isinstance(result, AnalysisResult)
            assert result.elements == []
        assert Analyzer().analyze_with_header_footer_filtering([], 0).elements == []


def _element(x, y, text):
    return LayoutElement(type=ElementType.PARAGRAPH, bbox=BBox(x, y, 100, 12), text=text)


def test_geometric_order_without_reading_order():
    elements = [_element(300, 700, "right"), _element(72, 705, "left"), _element(72, 500, "below")]
    ordered = sort_elements_by_reading_order(elements, None)
    assert [e.text for e in ordered] == ["left", "right", "below"]


def test_covers_paragraph_needs_majority_overlap():
    paragraph = Paragraph(bbox=BBox(0, 0, 100, 100))
    assert covers_paragraph(BBox(0, 0, 100, 60), paragraph)
    assert not covers_paragraph(BBox(0, 0, 100, 40), paragraph)
    assert not covers_paragraph(BBox(0, 0, 10, 10), Paragraph())
