import pytest

from analyzers.list_analyzer import BulletStyle, ListAnalyzer, ListType
from analyzers.list_detector import ListDetector, ListLayout, is_list_item_text


class TestListDetector:
    def test_numbered_items_form_one_list(self, numbered_list, page_size):
        layout = ListDetector().detect_from_fragments(numbered_list, *page_size)

        assert layout.list_count() == 1
        lst = layout.get_list(0)
        assert lst.type == ListType.NUMBERED
        assert [item.number for item in lst.items] == [1, 2, 3]
        assert [item.text for item in lst.items] == ["First", "Second", "Third"]
        assert [item.prefix for item in lst.items] == ["1.", "2.", "3."]
        assert lst.item_count == 3
        assert not lst.is_mixed

    def test_list_text_and_markdown(self, numbered_list, page_size):
        lst = ListDetector().detect_from_fragments(numbered_list, *page_size).get_list(0)
        assert lst.get_text() == "1. First\n2. Second\n3. Third\n"
        assert lst.to_markdown() == "1. First\n2. Second\n3. Third\n"

    def test_indented_bullet_nests_under_previous_item(self, make_fragment, page_size):
        fragments = [
            make_fragment("• Parent", 72, 700),
            make_fragment("• Child", 90, 686),
            make_fragment("• Sibling", 72, 672),
        ]
        layout = ListDetector().detect_from_fragments(fragments, *page_size)

        assert layout.list_count() == 1
        lst = layout.get_list(0)
        assert lst.type == ListType.BULLET
        assert lst.bullet_style == BulletStyle.DISC
        assert [item.text for item in lst.items] == ["Parent", "Sibling"]
        parent = lst.items[0]
        assert [child.text for child in parent.children] == ["Child"]
        assert parent.children[0].level > parent.level
        assert lst.has_nesting()
        assert lst.max_depth() == 1
        assert lst.item_count == 3
        assert layout.total_item_count() == 3
        assert lst.to_markdown() == "- Parent\n  - Child\n- Sibling\n"

    def test_distant_runs_form_separate_lists(self, make_fragment, page_size):
        fragments = [
            make_fragment("1. Alpha", 72, 700),
            make_fragment("2. Beta", 72, 686),
            make_fragment("Interlude paragraph of text", 72, 600, width=300),
            make_fragment("- one", 72, 500),
            make_fragment("- two", 72, 486),
        ]
        layout = ListDetector().detect_from_fragments(fragments, *page_size)

        assert layout.list_count() == 2
        assert len(layout.get_numbered_lists()) == 1
        bullets = layout.get_bullet_lists()
        assert len(bullets) == 1
        assert [item.text for item in bullets[0].items] == ["one", "two"]
        assert bullets[0].bullet_style == BulletStyle.DASH

    def test_single_item_is_not_a_list(self, make_fragment, page_size):
        fragments = [
            make_fragment("1. Lonely", 72, 700),
            make_fragment("Some ordinary text follows here", 72, 600, width=300),
        ]
        layout = ListDetector().detect_from_fragments(fragments, *page_size)
        assert layout.list_count() == 0

    def test_missing_paragraphs(self):
        layout = ListDetector().detect_from_paragraphs(None)
        assert layout.list_count() == 0
        assert ListLayout().get_list(0) is None


class TestListAnalyzer:
    @pytest.fixture
    def analyzer(self):
        return ListAnalyzer()

    def test_checkbox_markers(self, analyzer):
        marker = analyzer.parse_marker("☑ Pay rent")
        assert marker.list_type == ListType.CHECKBOX
        assert marker.bullet_style == BulletStyle.CHECK_FILLED
        assert marker.clean_text == "Pay rent"
        assert analyzer.parse_marker("☐ Buy milk").bullet_style == BulletStyle.CHECK_EMPTY

    def test_numbered_variants(self, analyzer):
        marker = analyzer.parse_marker("3) Third")
        assert (marker.list_type, marker.prefix, marker.number, marker.clean_text) == \
            (ListType.NUMBERED, "3)", 3, "Third")
        assert analyzer.parse_marker("12").number == 12

    def test_letters_and_roman_numerals(self, analyzer):
        lettered = analyzer.parse_marker("b. Second")
        assert lettered.list_type == ListType.LETTERED
        assert lettered.number == 2

        roman = analyzer.parse_marker("iv. Fourth")
        assert roman.list_type == ListType.ROMAN
        assert roman.number == 4
        # A lone "i." is read as a letter before it is read as a numeral
        assert analyzer.parse_marker("i. First").list_type == ListType.LETTERED

    def test_plain_text_has_no_marker(self, analyzer):
        assert analyzer.parse_marker("Plain text") is None
        assert analyzer.parse_marker("   ") is None

    def test_roman_conversion(self):
        assert ListAnalyzer.roman_to_number("XIV") == 14
        assert ListAnalyzer.roman_to_number("mcmxc") == 1990
        assert not ListAnalyzer.is_valid_roman("XIZ")


def test_quick_list_item_check():
    assert is_list_item_text("• bullet")
    assert is_list_item_text("12) twelve")
    assert is_list_item_text("a. letter")
    assert not is_list_item_text("1234. too many digits")
    assert not is_list_item_text("word")
