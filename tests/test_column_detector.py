from analyzers.column_detector import ColumnConfig, ColumnDetector, ColumnLayout, merge_slabs


class TestColumnDetector:
    def test_two_fragments_side_by_side_form_two_columns(self, make_fragment, page_size):
        fragments = [
            make_fragment("Left", 72, 700, width=200),
            make_fragment("Right", 350, 700, width=200),
        ]
        layout = ColumnDetector().detect(fragments, *page_size)

        assert layout.column_count() == 2
        assert layout.is_multi_column()
        left = layout.get_column(0)
        assert [f.text for f in left.fragments] == ["Left"]
        assert [f.text for f in layout.get_column(1).fragments] == ["Right"]

    def test_empty_input_has_no_columns(self, page_size):
        layout = ColumnDetector().detect([], *page_size)
        assert layout.column_count() == 0
        assert layout.get_text() == ""
        assert layout.get_column(0) is None

    def test_single_column_sorted_top_to_bottom(self, make_column, page_size):
        fragments = list(reversed(make_column(["first", "second", "third"], x=72, top=700)))
        layout = ColumnDetector().detect(fragments, *page_size)

        assert layout.is_single_column()
        assert [f.text for f in layout.get_fragments_in_reading_order()] == ["first", "second", "third"]

    def test_fragments_lie_within_their_column(self, two_column_page, page_size):
        layout = ColumnDetector().detect(two_column_page, *page_size)

        assert layout.column_count() == 2
        for column in layout.columns:
            for frag in column.fragments:
                assert column.bbox.x <= frag.x
                assert frag.right <= column.bbox.right

    def test_narrow_gap_is_not_a_column_break(self, make_fragment, page_size):
        fragments = [
            make_fragment("Hello", 72, 700, width=100),
            make_fragment("world", 182, 700, width=100),
        ]
        layout = ColumnDetector().detect(fragments, *page_size)
        assert layout.column_count() == 1

    def test_gap_crossed_by_wide_line_is_ignored(self, make_column, make_fragment, page_size):
        fragments = make_column(["a", "b"], x=50, top=700) + make_column(["c", "d"], x=350, top=700)
        # A full-width block covering most of the page height closes the gap
        fragments.append(make_fragment("wide", 50, 100, width=500, height=500))
        layout = ColumnDetector().detect(fragments, *page_size)
        assert layout.column_count() == 1

    def test_narrow_band_merges_into_nearest_column(self, make_column, make_fragment, page_size):
        fragments = make_column(["body one", "body two"], x=100, top=700, width=300)
        fragments.append(make_fragment("12", 20, 700, width=10))
        layout = ColumnDetector().detect(fragments, *page_size)

        assert layout.column_count() == 1
        texts = {f.text for f in layout.columns[0].fragments}
        assert texts == {"body one", "body two", "12"}

    def test_max_columns_limits_gap_count(self, make_column, page_size):
        fragments = []
        for x in (20, 220, 420):
            fragments.extend(make_column(["x", "y"], x=x, top=700, width=150))
        layout = ColumnDetector(ColumnConfig(max_columns=2)).detect(fragments, *page_size)
        assert layout.column_count() == 2

    def test_column_text_joins_columns_with_blank_line(self, two_column_page, page_size):
        text = ColumnDetector().detect(two_column_page, *page_size).get_text()
        assert text.startswith("Left one\nLeft two\nLeft three")
        assert "\n\nRight one" in text

    def test_detecting_again_keeps_the_columns(self, two_column_page, page_size):
        first = ColumnDetector().detect(two_column_page, *page_size)
        second = ColumnDetector().detect(first.get_fragments_in_reading_order(), *page_size)
        assert second.column_count() == first.column_count()


def test_merge_slabs_joins_touching_intervals():
    assert merge_slabs([(0, 10), (12, 20), (40, 50)]) == [(0, 20), (40, 50)]


def test_layout_accessors_on_empty_layout():
    layout = ColumnLayout()
    assert layout.column_count() == 0
    assert not layout.is_multi_column()
    assert layout.get_fragments_in_reading_order() == []
