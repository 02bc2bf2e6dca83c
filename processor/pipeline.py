import logging
from dataclasses import dataclass, field, fields
from functools import cmp_to_key
from typing import Any, Dict, List, Mapping, Optional, Sequence

from analyzers.block_detector import BlockConfig, BlockDetector, BlockLayout
from analyzers.column_detector import ColumnConfig, ColumnDetector, ColumnLayout
from analyzers.heading_detector import (
    Heading,
    HeadingConfig,
    HeadingDetector,
    HeadingLayout,
    HeadingLevel,
)
from analyzers.line_detector import Line, LineAlignment, LineConfig, LineDetector, LineLayout
from analyzers.list_analyzer import ListType
from analyzers.list_detector import ListConfig, ListDetector, ListLayout, TextList
from analyzers.paragraph_detector import (
    Paragraph,
    ParagraphConfig,
    ParagraphDetector,
    ParagraphLayout,
)
from analyzers.reading_order import (
    ReadingDirection,
    ReadingOrderConfig,
    ReadingOrderDetector,
    ReadingOrderResult,
)
from processor.data_models import (
    Element,
    ElementType,
    HeadingElement,
    ListElement,
    ListElementItem,
    ParagraphElement,
    TextAlignment,
    TextFragment,
)
from processor.document_structure import (
    HeaderFooterConfig,
    HeaderFooterDetector,
    HeaderFooterResult,
    PageFragments,
)
from utils.geometry_utils import BBox

logger = logging.getLogger(__name__)

DEFAULT_FONT_SIZE = 12.0
# Row tolerance for the geometric fallback ordering of elements
ELEMENT_ROW_TOLERANCE = 10.0
CONSUMED_OVERLAP_RATIO = 0.5

ORDERED_LIST_TYPES = (ListType.NUMBERED, ListType.LETTERED, ListType.ROMAN)

_MODEL_ALIGNMENT = {
    LineAlignment.LEFT: TextAlignment.LEFT,
    LineAlignment.CENTER: TextAlignment.CENTER,
    LineAlignment.RIGHT: TextAlignment.RIGHT,
    LineAlignment.JUSTIFIED: TextAlignment.JUSTIFY,
}


@dataclass
class AnalyzerConfig:
    column_config: ColumnConfig = field(default_factory=ColumnConfig)
    line_config: LineConfig = field(default_factory=LineConfig)
    block_config: BlockConfig = field(default_factory=BlockConfig)
    paragraph_config: ParagraphConfig = field(default_factory=ParagraphConfig)
    heading_config: HeadingConfig = field(default_factory=HeadingConfig)
    list_config: ListConfig = field(default_factory=ListConfig)
    reading_order_config: ReadingOrderConfig = field(default_factory=ReadingOrderConfig)
    header_footer_config: HeaderFooterConfig = field(default_factory=HeaderFooterConfig)
    detect_headings: bool = True
    detect_lists: bool = True
    use_reading_order: bool = True

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "AnalyzerConfig":
        """Build a configuration from a nested mapping such as a parsed JSON file.

        Recognized sections are ``column``, ``line``, ``block``, ``paragraph``,
        ``heading``, ``list``, ``reading_order`` and ``header_footer``; each maps
        field names of the matching config dataclass to values. The flags
        ``detect_headings``, ``detect_lists`` and ``use_reading_order`` sit at the
        top level. Heading ratios are given as ``{"h1": 1.8, ...}`` and the
        reading direction as ``"ltr"``, ``"rtl"`` or ``"ttb"``. Unknown keys are
        logged and ignored.

        Raises:
            ValueError: If ``data`` or one of its sections is not a mapping, or a
                value cannot be converted.
        """
        config = cls()
        if data is None:
            return config
        if not isinstance(data, Mapping):
            raise ValueError(f"Analyzer configuration must be a mapping, got {type(data).__name__}")

        sections = {
            'column': config.column_config,
            'line': config.line_config,
            'block': config.block_config,
            'paragraph': config.paragraph_config,
            'heading': config.heading_config,
            'list': config.list_config,
            'reading_order': config.reading_order_config,
            'header_footer': config.header_footer_config,
        }
        flags = ('detect_headings', 'detect_lists', 'use_reading_order')

        for key, value in data.items():
            if key in flags:
                setattr(config, key, bool(value))
            elif key in sections:
                _apply_section(key, sections[key], value)
            elif key == 'pdfminer':
                # Consumed by the PDF extractor, not by the layout analysis
                continue
            else:
                logger.warning(f"Ignoring unknown configuration key: {key}")

        # The reading-order pass groups columns and lines with the same thresholds
        config.reading_order_config.column_config = config.column_config
        config.reading_order_config.line_config = config.line_config
        return config


def _apply_section(name: str, target: Any, values: Any) -> None:
    if not isinstance(values, Mapping):
        raise ValueError(f"Configuration section '{name}' must be a mapping")
    known = {f.name for f in fields(target)}
    for key, value in values.items():
        if key not in known:
            logger.warning(f"Ignoring unknown configuration key: {name}.{key}")
            continue
        if key == 'font_size_ratios':
            value = _parse_heading_ratios(value)
        elif key == 'direction':
            value = _parse_direction(value)
        elif key in ('column_config', 'line_config'):
            logger.warning(f"Ignoring {name}.{key}; set the top-level section instead")
            continue
        setattr(target, key, value)


def _parse_heading_ratios(values: Any) -> Dict[HeadingLevel, float]:
    if not isinstance(values, Mapping):
        raise ValueError("heading.font_size_ratios must be a mapping of h1..h6 to ratios")
    ratios = {}
    for key, ratio in values.items():
        name = str(key).lower()
        if not name.startswith('h') or not name[1:].isdigit() or not 1 <= int(name[1:]) <= 6:
            raise ValueError(f"Unknown heading level: {key!r}")
        try:
            ratios[HeadingLevel(int(name[1:]))] = float(ratio)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid ratio for heading level {key!r}: {ratio!r}") from e
    return ratios


def _parse_direction(value: Any) -> ReadingDirection:
    if isinstance(value, ReadingDirection):
        return value
    try:
        return ReadingDirection(str(value).lower())
    except ValueError:
        raise ValueError(f"Unknown reading direction: {value!r}") from None


@dataclass
class LayoutElement:
    """One detected content element: a heading, a list or a plain paragraph."""
    type: ElementType = ElementType.UNKNOWN
    bbox: BBox = field(default_factory=BBox)
    text: str = ""
    index: int = 0
    z_order: int = 0
    heading: Optional[Heading] = None
    text_list: Optional[TextList] = None
    paragraph: Optional[Paragraph] = None
    lines: List[Line] = field(default_factory=list)
    children: List["LayoutElement"] = field(default_factory=list)

    def to_model_element(self) -> Element:
        if self.type == ElementType.HEADING:
            level = self.heading.level.value if self.heading and self.heading.level.value else 1
            return HeadingElement(text=self.text, bbox=self.bbox, z_order=self.z_order,
                                  level=level, font_size=self._font_size())

        if self.type == ElementType.LIST:
            items = []
            ordered = False
            if self.text_list is not None:
                items = [ListElementItem(text=item.text, level=item.level)
                         for item in self.text_list.get_all_items()]
                ordered = self.text_list.type in ORDERED_LIST_TYPES
            return ListElement(text=self.text, bbox=self.bbox, z_order=self.z_order,
                               items=items, ordered=ordered)

        alignment = TextAlignment.LEFT
        if self.paragraph is not None:
            alignment = _MODEL_ALIGNMENT.get(self.paragraph.alignment, TextAlignment.LEFT)
        return ParagraphElement(text=self.text, bbox=self.bbox, z_order=self.z_order,
                                font_size=self._font_size(), alignment=alignment)

    def _font_size(self) -> float:
        if self.heading is not None and self.heading.font_size > 0:
            return self.heading.font_size
        if self.paragraph is not None and self.paragraph.average_font_size > 0:
            return self.paragraph.average_font_size
        if self.lines and self.lines[0].average_font_size > 0:
            return self.lines[0].average_font_size
        return DEFAULT_FONT_SIZE


@dataclass
class AnalysisStats:
    fragment_count: int = 0
    line_count: int = 0
    block_count: int = 0
    paragraph_count: int = 0
    heading_count: int = 0
    list_count: int = 0
    column_count: int = 0
    element_count: int = 0


@dataclass
class AnalysisResult:
    elements: List[LayoutElement] = field(default_factory=list)
    columns: Optional[ColumnLayout] = None
    reading_order: Optional[ReadingOrderResult] = None
    headings: Optional[HeadingLayout] = None
    lists: Optional[ListLayout] = None
    paragraphs: Optional[ParagraphLayout] = None
    blocks: Optional[BlockLayout] = None
    lines: Optional[LineLayout] = None
    page_width: float = 0.0
    page_height: float = 0.0
    stats: AnalysisStats = field(default_factory=AnalysisStats)

    def get_elements(self) -> List[Element]:
        return [element.to_model_element() for element in self.elements]

    def get_text(self) -> str:
        if self.reading_order is not None:
            return self.reading_order.get_text()
        if self.paragraphs is not None:
            return self.paragraphs.get_text()
        return ""

    def get_markdown(self) -> str:
        parts = []
        for element in self.elements:
            if element.type == ElementType.HEADING and element.heading is not None:
                parts.append(element.heading.to_markdown())
            elif element.type == ElementType.LIST and element.text_list is not None:
                parts.append(element.text_list.to_markdown())
            else:
                parts.append(element.text)
            parts.append("\n\n")
        return "".join(parts)


def get_list_text(text_list: TextList) -> str:
    return "".join(f"{item.prefix} {item.text}\n" for item in text_list.items)


def covers_paragraph(region: BBox, paragraph: Paragraph) -> bool:
    """True when ``region`` covers more than half of the paragraph's area."""
    area = paragraph.bbox.area
    if area <= 0:
        return False
    return region.intersection_area(paragraph.bbox) > area * CONSUMED_OVERLAP_RATIO


def line_overlaps_element(line: Line, element: LayoutElement) -> bool:
    if line.bbox.y > element.bbox.top or element.bbox.y > line.bbox.top:
        return False
    if line.bbox.right < element.bbox.x or element.bbox.right < line.bbox.x:
        return False
    return True


def sort_elements_by_reading_order(elements: List[LayoutElement],
                                   reading_order: Optional[ReadingOrderResult]) -> List[LayoutElement]:
    if reading_order is None or not reading_order.sections:
        def compare(a, b):
            y_diff = a.bbox.y - b.bbox.y
            if abs(y_diff) > ELEMENT_ROW_TOLERANCE:
                return -1 if y_diff > 0 else 1
            if a.bbox.x != b.bbox.x:
                return -1 if a.bbox.x < b.bbox.x else 1
            return 0
        return sorted(elements, key=cmp_to_key(compare))

    positions: Dict[int, int] = {}
    position = 0
    for section in reading_order.sections:
        for line in section.page_lines():
            for i, element in enumerate(elements):
                if i not in positions and line_overlaps_element(line, element):
                    positions[i] = position
                    position += 1

    for i in range(len(elements)):
        if i not in positions:
            positions[i] = position
            position += 1

    return [elements[i] for i in sorted(range(len(elements)), key=positions.__getitem__)]


class Analyzer:
    """Runs every layout detector over one page and merges the results.

    The phases run in order: columns, reading order, lines, blocks,
    paragraphs, headings and lists. Headings and lists are detected on the
    same paragraphs the element tree is built from, so a paragraph they cover
    is not emitted a second time.
    """

    def __init__(self, config: Optional[AnalyzerConfig] = None):
        self.config = config or AnalyzerConfig()
        self.column_detector = ColumnDetector(self.config.column_config)
        self.line_detector = LineDetector(self.config.line_config)
        self.block_detector = BlockDetector(self.config.block_config)
        self.paragraph_detector = ParagraphDetector(self.config.paragraph_config)
        self.heading_detector = HeadingDetector(self.config.heading_config)
        self.list_detector = ListDetector(self.config.list_config)
        self.reading_order_detector = ReadingOrderDetector(self.config.reading_order_config)

    def analyze(self, fragments: Sequence[TextFragment], page_width: float,
                page_height: float) -> AnalysisResult:
        result = AnalysisResult(page_width=page_width, page_height=page_height,
                                stats=AnalysisStats(fragment_count=len(fragments)))
        if not fragments:
            return result

        result.columns = self.column_detector.detect(fragments, page_width, page_height)
        result.stats.column_count = result.columns.column_count()

        if self.config.use_reading_order:
            result.reading_order = self.reading_order_detector.detect(fragments, page_width, page_height)

        result.lines = self.line_detector.detect(fragments, page_width, page_height)
        result.stats.line_count = result.lines.line_count()

        result.blocks = self.block_detector.detect(fragments, page_width, page_height)
        result.stats.block_count = result.blocks.block_count()

        if result.reading_order is not None:
            result.paragraphs = result.reading_order.get_paragraphs(self.config.paragraph_config)
        else:
            result.paragraphs = self.paragraph_detector.detect(result.lines)
        result.stats.paragraph_count = result.paragraphs.paragraph_count()

        if self.config.detect_headings:
            result.headings = self.heading_detector.detect_from_paragraphs(result.paragraphs)
            result.stats.heading_count = result.headings.heading_count()

        if self.config.detect_lists:
            result.lists = self.list_detector.detect_from_paragraphs(result.paragraphs)
            result.stats.list_count = result.lists.list_count()

        result.elements = self.build_element_tree(result)
        result.stats.element_count = len(result.elements)
        logger.debug(f"Analyzed {len(fragments)} fragments into {result.stats.element_count} elements "
                     f"({result.stats.heading_count} headings, {result.stats.list_count} lists, "
                     f"{result.stats.column_count} columns)")
        return result

    def quick_analyze(self, fragments: Sequence[TextFragment], page_width: float,
                      page_height: float) -> AnalysisResult:
        """Reading order and paragraphs only, for callers that need text fast."""
        result = AnalysisResult(page_width=page_width, page_height=page_height,
                                stats=AnalysisStats(fragment_count=len(fragments)))
        if not fragments:
            return result

        result.reading_order = self.reading_order_detector.detect(fragments, page_width, page_height)
        result.paragraphs = result.reading_order.get_paragraphs(self.config.paragraph_config)
        result.stats.column_count = result.reading_order.column_count
        result.stats.paragraph_count = result.paragraphs.paragraph_count()

        elements = [self._paragraph_element(i, p) for i, p in enumerate(result.paragraphs.paragraphs)]
        result.elements = self._reindex(elements)
        result.stats.element_count = len(result.elements)
        return result

    def analyze_with_header_footer_filtering(self, pages: Sequence[PageFragments],
                                             page_index: int) -> AnalysisResult:
        """Analyze one page after removing headers and footers found across ``pages``."""
        if not pages or page_index < 0 or page_index >= len(pages):
            return AnalysisResult()

        detector = HeaderFooterDetector(self.config.header_footer_config)
        header_footer = detector.detect(pages)
        page = pages[page_index]
        fragments = header_footer.filter_fragments(page.page_index, page.fragments, page.page_height)
        return self.analyze(fragments, page.page_width, page.page_height)

    def build_element_tree(self, result: AnalysisResult) -> List[LayoutElement]:
        elements: List[LayoutElement] = []
        paragraphs = result.paragraphs.paragraphs if result.paragraphs is not None else []
        consumed = set()

        if result.headings is not None:
            for i, heading in enumerate(result.headings.headings):
                elements.append(LayoutElement(type=ElementType.HEADING, bbox=heading.bbox,
                                              text=heading.text, index=i, heading=heading,
                                              lines=heading.lines))
                consumed.update(j for j, p in enumerate(paragraphs) if covers_paragraph(heading.bbox, p))

        if result.lists is not None:
            for i, text_list in enumerate(result.lists.lists):
                elements.append(LayoutElement(type=ElementType.LIST, bbox=text_list.bbox,
                                              text=get_list_text(text_list), index=i,
                                              text_list=text_list))
                consumed.update(j for j, p in enumerate(paragraphs) if covers_paragraph(text_list.bbox, p))

        for i, paragraph in enumerate(paragraphs):
            if i not in consumed:
                elements.append(self._paragraph_element(i, paragraph))

        elements = sort_elements_by_reading_order(elements, result.reading_order)
        return self._reindex(elements)

    @staticmethod
    def _paragraph_element(index: int, paragraph: Paragraph) -> LayoutElement:
        return LayoutElement(type=ElementType.PARAGRAPH, bbox=paragraph.bbox, text=paragraph.text,
                             index=index, paragraph=paragraph, lines=paragraph.lines)

    @staticmethod
    def _reindex(elements: List[LayoutElement]) -> List[LayoutElement]:
        for i, element in enumerate(elements):
            element.index = i
            element.z_order = i
        return elements


@dataclass
class DocumentAnalysis:
    pages: List[AnalysisResult] = field(default_factory=list)
    page_indices: List[int] = field(default_factory=list)
    header_footer: Optional[HeaderFooterResult] = None

    def page_count(self) -> int:
        return len(self.pages)

    def get_text(self) -> str:
        texts = [page.get_text() for page in self.pages]
        return "\n\n".join(text for text in texts if text)

    def get_markdown(self) -> str:
        return "".join(page.get_markdown() for page in self.pages)


def analyze_pages(pages: Sequence[PageFragments], config: Optional[AnalyzerConfig] = None,
                  filter_headers_footers: bool = True,
                  page_numbers: Optional[Sequence[int]] = None,
                  quick: bool = False) -> DocumentAnalysis:
    """Analyze already extracted pages.

    Header/footer detection always looks at every page so repeated text is
    recognized even when only a subset is analyzed.

    Args:
        pages: Fragments of each page in document order.
        config: Analyzer configuration, defaults when omitted.
        filter_headers_footers: Remove repeated header and footer text first.
        page_numbers: Zero-based indices of the pages to analyze; all when omitted.
        quick: Run only reading order and paragraph detection.

    Raises:
        ValueError: If a requested page index does not exist.
    """
    config = config or AnalyzerConfig()
    analyzer = Analyzer(config)

    indices = list(range(len(pages))) if page_numbers is None else list(page_numbers)
    for index in indices:
        if index < 0 or index >= len(pages):
            raise ValueError(f"Page index {index} out of range for a document of {len(pages)} pages")

    header_footer = None
    if filter_headers_footers:
        header_footer = HeaderFooterDetector(config.header_footer_config).detect(pages)
        logger.info(header_footer.summary())

    document = DocumentAnalysis(header_footer=header_footer)
    for index in indices:
        page = pages[index]
        fragments = page.fragments
        if header_footer is not None:
            fragments = header_footer.filter_fragments(page.page_index, fragments, page.page_height)
        logger.debug(f"Analyzing page {page.page_index} ({len(fragments)} fragments)")
        if quick:
            result = analyzer.quick_analyze(fragments, page.page_width, page.page_height)
        else:
            result = analyzer.analyze(fragments, page.page_width, page.page_height)
        document.pages.append(result)
        document.page_indices.append(page.page_index)
    return document


def process_pdf(pdf_path: str, config: Optional[AnalyzerConfig] = None,
                filter_headers_footers: bool = True,
                page_numbers: Optional[Sequence[int]] = None,
                extractor: Optional[Any] = None,
                quick: bool = False) -> DocumentAnalysis:
    """Extract text fragments from a PDF and run layout analysis on each page.

    Args:
        pdf_path: Path to the PDF file.
        config: Analyzer configuration, defaults when omitted.
        filter_headers_footers: Remove repeated header and footer text first.
        page_numbers: Zero-based indices of the pages to analyze.
        extractor: Fragment extractor; a default ``PDFTextExtractor`` when omitted.
        quick: Run only reading order and paragraph detection.

    Returns:
        DocumentAnalysis: Per-page results plus the header/footer detection.
    """
    from core.pdf_text_extractor import PDFTextExtractor

    logger.info(f"Starting layout analysis for: {pdf_path}")
    try:
        extractor = extractor or PDFTextExtractor()
        pages = extractor.extract_pages(pdf_path)
        logger.info(f"Extracted {len(pages)} pages")
        document = analyze_pages(pages, config, filter_headers_footers, page_numbers, quick)
    except Exception as e:
        logger.error(f"Error processing {pdf_path}: {str(e)}", exc_info=True)
        raise

    elements = sum(page.stats.element_count for page in document.pages)
    logger.info(f"Finished {pdf_path}: {elements} elements over {document.page_count()} pages")
    return document
