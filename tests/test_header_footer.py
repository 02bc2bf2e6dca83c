from processor.data_models import TextFragment
from processor.document_structure import (
    PAGE_NUMBER_TEXT,
    HeaderFooterConfig,
    HeaderFooterDetector,
    PageFragments,
    RegionType,
    assemble_fragments_into_lines,
    contains_page_number_sequence,
    is_character_level,
    texts_match,
)


def _glyphs(text, x, y, advance=6.0, height=12.0):
    """One fragment per character, as produced by glyph-level extraction."""
    return [TextFragment(text=ch, x=x + i * advance, y=y, width=advance, height=height, font_size=height)
            for i, ch in enumerate(text)]


class TestHeaderFooterDetector:
    def test_repeated_header_and_page_number_footer(self, make_report_pages):
        result = HeaderFooterDetector().detect(make_report_pages(3))

        assert result.get_header_texts() == ["Company Report 2024"]
        assert result.get_footer_texts() == [PAGE_NUMBER_TEXT]

        header = result.headers[0]
        assert header.type == RegionType.HEADER
        assert header.page_indices == [0, 1, 2]
        assert header.confidence == 1.0

        footer = result.footers[0]
        assert footer.is_page_number
        assert footer.confidence == 1.0

    def test_filter_keeps_only_body_fragments(self, make_report_pages):
        pages = make_report_pages(3)
        result = HeaderFooterDetector().detect(pages)

        for page in pages:
            kept = result.filter_fragments(page.page_index, page.fragments, page.page_height)
            assert [f.text for f in kept] == [f"Body text of page {page.page_index + 1} starts here",
                                              "and continues on a second line."]

    def test_header_on_one_page_of_five_is_ignored(self, make_report_pages):
        result = HeaderFooterDetector().detect(make_report_pages(5, header_pages={0}))
        assert not result.has_headers()
        assert result.has_footers()

    def test_header_on_most_pages_is_detected(self, make_report_pages):
        result = HeaderFooterDetector().detect(make_report_pages(4, header_pages={0, 1, 3}, with_footer=False))

        assert result.get_header_texts() == ["Company Report 2024"]
        assert result.headers[0].page_indices == [0, 1, 3]
        assert not result.has_footers()

    def test_single_page_document(self, make_report_pages):
        result = HeaderFooterDetector().detect(make_report_pages(1))
        assert not result.has_headers_or_footers()
        assert result.summary() == "No headers or footers detected"

    def test_min_pages_is_configurable(self, make_report_pages):
        detector = HeaderFooterDetector(HeaderFooterConfig(min_pages=4))
        assert not detector.detect(make_report_pages(3)).has_headers_or_footers()

    def test_summary_lists_regions(self, make_report_pages):
        result = HeaderFooterDetector().detect(make_report_pages(3))
        assert result.summary() == "Headers: Company Report 2024; Footers: [Page Number]"

    def test_glyph_level_pages_are_assembled_before_matching(self, page_size):
        width, height = page_size
        pages = []
        for i in range(2):
            fragments = _glyphs("Confidential", 72, 760) + _glyphs(f"Body {i}", 72, 400)
            pages.append(PageFragments(page_index=i, page_height=height, page_width=width,
                                       fragments=fragments))
        result = HeaderFooterDetector().detect(pages)

        assert result.get_header_texts() == ["Confidential"]
        kept = result.filter_fragments(0, pages[0].fragments, height)
        # Glyph-level pages drop every glyph inside a matched region
        assert "".join(f.text for f in kept) == "Body 0"


def test_assemble_glyphs_into_lines():
    glyphs = _glyphs("Hi", 0, 100) + _glyphs("you", 30, 100) + _glyphs("Next", 0, 80)
    lines = assemble_fragments_into_lines(glyphs)

    assert [line.text for line in lines] == ["Hi you", "Next"]
    assert lines[0].x == 0
    assert lines[0].right == 48


def test_character_level_detection():
    assert is_character_level(_glyphs("abc", 0, 0))
    assert not is_character_level([TextFragment(text="whole words", x=0, y=0, width=50, height=10, font_size=10)])
    assert not is_character_level([])


def test_page_number_sequences():
    assert contains_page_number_sequence(["Page 3", "Page 4", "Page 5"])
    assert not contains_page_number_sequence(["10", "20"])
    assert not contains_page_number_sequence(["7"])


def test_texts_match_normalizes_digits():
    assert texts_match("Report 2025", "Report 2024", is_page_number=False)
    assert texts_match("Page 12", PAGE_NUMBER_TEXT, is_page_number=True)
    assert not texts_match("Chapter 1", PAGE_NUMBER_TEXT, is_page_number=True)
