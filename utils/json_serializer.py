from typing import Any, Dict, List, Optional

from processor.data_models import ElementType, TextFragment
from processor.document_structure import HeaderFooterRegion, HeaderFooterResult
from processor.pipeline import AnalysisResult, DocumentAnalysis, LayoutElement
from utils.geometry_utils import BBox


def bbox_to_dict(bbox: BBox) -> Dict[str, float]:
    return {
        "x": bbox.x,
        "y": bbox.y,
        "width": bbox.width,
        "height": bbox.height,
    }


def fragment_to_dict(fragment: TextFragment) -> Dict[str, Any]:
    return fragment.to_dict()


def _list_items_to_dicts(items) -> List[Dict[str, Any]]:
    return [
        {
            "text": item.text,
            "prefix": item.prefix,
            "level": item.level,
            "number": item.number,
            "children": _list_items_to_dicts(item.children),
        }
        for item in items
    ]


def element_to_dict(element: LayoutElement) -> Dict[str, Any]:
    data = {
        "type": str(element.type),
        "text": element.text,
        "bbox": bbox_to_dict(element.bbox),
        "index": element.index,
    }

    if element.type == ElementType.HEADING and element.heading is not None:
        data["level"] = element.heading.level.value
        data["confidence"] = round(element.heading.confidence, 3)
    elif element.type == ElementType.LIST and element.text_list is not None:
        data["list_type"] = str(element.text_list.type)
        data["items"] = _list_items_to_dicts(element.text_list.items)
    elif element.paragraph is not None:
        data["style"] = str(element.paragraph.style)
        data["alignment"] = str(element.paragraph.alignment)
    return data


def analysis_to_dict(result: AnalysisResult) -> Dict[str, Any]:
    stats = result.stats
    return {
        "page_width": result.page_width,
        "page_height": result.page_height,
        "stats": {
            "fragments": stats.fragment_count,
            "lines": stats.line_count,
            "blocks": stats.block_count,
            "paragraphs": stats.paragraph_count,
            "headings": stats.heading_count,
            "lists": stats.list_count,
            "columns": stats.column_count,
            "elements": stats.element_count,
        },
        "elements": [element_to_dict(element) for element in result.elements],
    }


def _region_to_dict(region: HeaderFooterRegion) -> Dict[str, Any]:
    return {
        "text": region.text,
        "is_page_number": region.is_page_number,
        "confidence": round(region.confidence, 3),
        "pages": list(region.page_indices),
    }


def header_footer_to_dict(result: Optional[HeaderFooterResult]) -> Dict[str, Any]:
    if result is None:
        return {"headers": [], "footers": [], "summary": ""}
    return {
        "headers": [_region_to_dict(r) for r in result.headers],
        "footers": [_region_to_dict(r) for r in result.footers],
        "summary": result.summary(),
    }


def document_to_dict(document: DocumentAnalysis) -> Dict[str, Any]:
    pages = []
    for page_index, result in zip(document.page_indices, document.pages):
        page = analysis_to_dict(result)
        page["page_index"] = page_index
        pages.append(page)
    return {
        "page_count": document.page_count(),
        "header_footer": header_footer_to_dict(document.header_footer),
        "pages": pages,
    }
