from analyzers.line_detector import LineDetector
from analyzers.paragraph_detector import (
    ParagraphConfig,
    ParagraphDetector,
    ParagraphLayout,
    ParagraphStyle,
    join_line_texts,
)


class TestParagraphDetector:
    def test_evenly_spaced_lines_form_one_paragraph(self, body_paragraph, page_size):
        layout = ParagraphDetector().detect_from_fragments(body_paragraph, *page_size)

        assert layout.paragraph_count() == 1
        paragraph = layout.get_paragraph(0)
        assert paragraph.line_count() == 3
        assert paragraph.style == ParagraphStyle.NORMAL
        assert paragraph.text.startswith("The quick brown fox jumps over the lazy dog")

    def test_large_gap_starts_new_paragraph(self, make_column, page_size):
        fragments = (make_column(["First paragraph line one", "First paragraph line two"], x=72, top=700)
                     + make_column(["Second paragraph line one", "Second paragraph line two"], x=72, top=640))
        layout = ParagraphDetector().detect_from_fragments(fragments, *page_size)

        assert layout.paragraph_count() == 2
        assert layout.get_paragraph(1).text == "Second paragraph line one Second paragraph line two"
        assert layout.get_paragraph(1).spacing_before > 0
        assert layout.get_text().count("\n\n") == 1

    def test_font_size_change_starts_new_paragraph(self, heading_page, page_size):
        layout = ParagraphDetector().detect_from_fragments(heading_page, *page_size)

        assert layout.paragraph_count() == 2
        heading = layout.get_paragraph(0)
        assert heading.text == "Introduction"
        assert heading.style == ParagraphStyle.HEADING
        assert layout.get_headings() == [heading]

    def test_every_list_marker_starts_a_paragraph(self, numbered_list, page_size):
        layout = ParagraphDetector().detect_from_fragments(numbered_list, *page_size)

        assert [p.text for p in layout.paragraphs] == ["1. First", "2. Second", "3. Third"]
        assert all(p.is_list_item() for p in layout.paragraphs)
        assert len(layout.get_list_items()) == 3

    def test_indented_first_line_starts_paragraph(self, make_fragment, page_size):
        fragments = [
            make_fragment("The end of a paragraph that runs wide", 72, 700, width=300),
            make_fragment("and a closing line of equal width here", 72, 686, width=300),
            make_fragment("An indented opening line starts", 102, 672, width=270),
            make_fragment("the next paragraph of the page text", 72, 658, width=300),
        ]
        layout = ParagraphDetector().detect_from_fragments(fragments, *page_size)

        assert layout.paragraph_count() == 2
        second = layout.get_paragraph(1)
        assert second.first_line_indent == 30
        assert second.has_first_line_indent()

    def test_block_quote_style(self, make_column, page_size):
        fragments = (make_column(["Body line one", "Body line two"], x=72, top=700, width=300)
                     + make_column(["Quoted line"], x=140, top=600, width=200)
                     + make_column(["Body again one", "Body again two"], x=72, top=500, width=300))
        layout = ParagraphDetector().detect_from_fragments(fragments, *page_size)

        quotes = layout.get_paragraphs_by_style(ParagraphStyle.BLOCK_QUOTE)
        assert [p.text for p in quotes] == ["Quoted line"]
        assert quotes[0].is_block_quote()

    def test_detect_handles_missing_layout(self):
        layout = ParagraphDetector().detect(None)
        assert layout.paragraph_count() == 0
        assert layout.get_text() == ""

    def test_detect_matches_line_layout_entry_point(self, body_paragraph, page_size):
        lines = LineDetector().detect(body_paragraph, *page_size)
        layout = ParagraphDetector().detect(lines)
        again = ParagraphDetector().detect_from_lines(layout.paragraphs[0].lines, *page_size)
        assert again.paragraph_count() == layout.paragraph_count() == 1

    def test_detecting_again_keeps_the_paragraphs(self, body_paragraph, numbered_list, page_size):
        for fragments in (body_paragraph, numbered_list):
            first = ParagraphDetector().detect_from_fragments(fragments, *page_size)
            regrouped = [f for p in first.paragraphs for line in p.lines for f in line.fragments]
            second = ParagraphDetector().detect_from_fragments(regrouped, *page_size)

            assert second.paragraph_count() == first.paragraph_count()
            assert [p.text for p in second.paragraphs] == [p.text for p in first.paragraphs]

    def test_configured_list_patterns_split_items(self, make_column, page_size):
        fragments = make_column(["Q1: What is measured", "Q2: How often it runs"], x=72, top=700)

        assert ParagraphDetector().detect_from_fragments(fragments, *page_size).paragraph_count() == 1

        config = ParagraphConfig(list_item_patterns=[r'^Q\d+:\s'])
        layout = ParagraphDetector(config).detect_from_fragments(fragments, *page_size)
        assert [p.text for p in layout.paragraphs] == ["Q1: What is measured", "Q2: How often it runs"]
        assert all(p.style == ParagraphStyle.LIST_ITEM for p in layout.paragraphs)


def test_hyphenated_line_ends_join_without_space(make_fragment, page_size):
    lines = LineDetector().detect([
        make_fragment("A hyphen-", 72, 700, width=60),
        make_fragment("ated word", 72, 686, width=60),
    ], *page_size).lines
    assert join_line_texts(lines) == "A hyphen-ated word"


def test_empty_paragraph_layout_accessors():
    layout = ParagraphLayout()
    assert layout.get_paragraph(0) is None
    assert layout.get_headings() == []
    assert layout.average_paragraph_spacing == 0.0
