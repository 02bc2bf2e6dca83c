import json

import pytest

from processor.data_models import Direction
from processor.pipeline import Analyzer, analyze_pages
from utils.file_io import load_fragment_pages, load_json, save_json
from utils.json_serializer import analysis_to_dict, document_to_dict, element_to_dict


def _write(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


class TestLoadFragmentPages:
    def test_page_list(self, tmp_path):
        path = _write(tmp_path / "pages.json", [
            {"page_index": 4, "page_width": 612, "page_height": 792, "fragments": [
                {"text": "Hello", "x": 72, "y": 700, "width": 30, "height": 12, "font_size": 11,
                 "font_name": "Helvetica", "direction": "rtl"},
            ]},
            {"page_width": 612, "page_height": 792, "fragments": []},
        ])
        pages = load_fragment_pages(path)

        assert [p.page_index for p in pages] == [4, 1]
        fragment = pages[0].fragments[0]
        assert fragment.text == "Hello"
        assert fragment.font_size == 11
        assert fragment.direction == Direction.RTL
        assert pages[1].fragments == []

    def test_plain_fragment_list_is_one_page(self, tmp_path):
        path = _write(tmp_path / "fragments.json", [
            {"text": "a", "x": 10, "y": 20, "width": 90, "height": 10},
            {"text": "b", "x": 10, "y": 50, "width": 40, "height": 10, "fontName": "Times"},
        ])
        (page,) = load_fragment_pages(path)

        assert page.page_width == 100
        assert page.page_height == 60
        assert page.fragments[0].font_size == 10
        assert page.fragments[1].font_name == "Times"

    def test_explicit_page_size(self, tmp_path):
        path = _write(tmp_path / "fragments.json", [{"text": "a", "x": 0, "y": 0, "width": 5, "height": 5}])
        (page,) = load_fragment_pages(path, page_width=612, page_height=792)
        assert (page.page_width, page.page_height) == (612, 792)

    def test_pages_wrapper_object(self, tmp_path):
        path = _write(tmp_path / "doc.json", {"pages": [
            {"page_width": 100, "page_height": 100, "fragments": []}]})
        assert len(load_fragment_pages(path)) == 1

    def test_empty_list(self, tmp_path):
        assert load_fragment_pages(_write(tmp_path / "empty.json", [])) == []

    @pytest.mark.parametrize("data", [
        "just a string",
        [{"text": "no geometry"}],
        [{"page_width": 612, "fragments": []}],
        [{"text": "a", "x": "left", "y": 0, "width": 1, "height": 1}],
    ])
    def test_malformed_content(self, tmp_path, data):
        with pytest.raises(ValueError):
            load_fragment_pages(_write(tmp_path / "bad.json", data))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid JSON"):
            load_json(str(path))


def test_save_json_creates_directories(tmp_path):
    target = tmp_path / "nested" / "out.json"
    save_json({"text": "é"}, str(target))
    assert load_json(str(target)) == {"text": "é"}


class TestJsonSerializer:
    def test_heading_and_paragraph_elements(self, heading_page, page_size):
        result = Analyzer().analyze(heading_page, *page_size)
        heading, paragraph = (element_to_dict(e) for e in result.elements)

        assert heading["type"] == "heading"
        assert heading["level"] == 1
        assert heading["confidence"] == 0.7
        assert heading["bbox"]["height"] == 24
        assert paragraph["type"] == "paragraph"
        assert paragraph["style"] == "normal"
        assert paragraph["alignment"] == "justified"

    def test_list_element(self, numbered_list, page_size):
        (element,) = Analyzer().analyze(numbered_list, *page_size).elements
        data = element_to_dict(element)

        assert data["list_type"] == "numbered"
        assert [(i["prefix"], i["text"], i["number"]) for i in data["items"]] == [
            ("1.", "First", 1), ("2.", "Second", 2), ("3.", "Third", 3)]

    def test_analysis_stats(self, heading_page, page_size):
        data = analysis_to_dict(Analyzer().analyze(heading_page, *page_size))
        assert data["page_width"] == 612
        assert data["stats"]["headings"] == 1
        assert len(data["elements"]) == 2

    def test_document_is_json_serializable(self, make_report_pages):
        document = analyze_pages(make_report_pages(3), page_numbers=[0, 2])
        data = json.loads(json.dumps(document_to_dict(document)))

        assert data["page_count"] == 2
        assert [page["page_index"] for page in data["pages"]] == [0, 2]
        assert data["header_footer"]["headers"][0]["text"] == "Company Report 2024"
        assert data["header_footer"]["headers"][0]["pages"] == [0, 1, 2]
        assert data["header_footer"]["footers"][0]["is_page_number"]

    def test_document_without_header_footer_pass(self, make_report_pages):
        document = analyze_pages(make_report_pages(2), filter_headers_footers=False)
        assert document_to_dict(document)["header_footer"] == {"headers": [], "footers": [], "summary": ""}
