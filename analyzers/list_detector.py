import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from analyzers.line_detector import Line, LineLayout
from analyzers.list_analyzer import (
    DEFAULT_BULLET_CHARACTERS,
    BulletStyle,
    ListAnalyzer,
    ListMarker,
    ListType,
)
from analyzers.paragraph_detector import Paragraph, ParagraphDetector, ParagraphLayout
from processor.data_models import TextFragment
from processor.patterns import (
    LETTER_LIST_PATTERNS,
    NUMBERED_LIST_PATTERNS,
    ROMAN_LIST_PATTERNS,
    is_list_item_start,
)
from utils.geometry_utils import BBox, minimum_containing_bbox, regions_overlap

logger = logging.getLogger(__name__)


@dataclass
class ListConfig:
    bullet_characters: str = DEFAULT_BULLET_CHARACTERS
    numbered_patterns: List[str] = field(default_factory=lambda: list(NUMBERED_LIST_PATTERNS))
    letter_patterns: List[str] = field(default_factory=lambda: list(LETTER_LIST_PATTERNS))
    roman_patterns: List[str] = field(default_factory=lambda: list(ROMAN_LIST_PATTERNS))
    indent_threshold: float = 15.0
    # Largest vertical gap between items, in multiples of their font size
    max_list_gap: float = 2.0
    min_consecutive_items: int = 2


@dataclass
class ListItem:
    text: str = ""
    raw_text: str = ""
    prefix: str = ""
    bbox: BBox = field(default_factory=BBox)
    lines: List[Line] = field(default_factory=list)
    index: int = 0
    level: int = 0
    list_type: ListType = ListType.UNKNOWN
    bullet_style: BulletStyle = BulletStyle.UNKNOWN
    number: int = 0
    children: List["ListItem"] = field(default_factory=list)

    def has_children(self) -> bool:
        return bool(self.children)

    def child_count(self) -> int:
        return len(self.children)

    def get_full_text(self) -> str:
        return self.raw_text

    def is_checkbox(self) -> bool:
        return self.list_type == ListType.CHECKBOX

    def is_checked(self) -> bool:
        return self.bullet_style == BulletStyle.CHECK_FILLED

    def word_count(self) -> int:
        return len(self.text.split())

    def contains_point(self, x: float, y: float) -> bool:
        return self.bbox.contains_point(x, y)

    def is_first_in_list(self) -> bool:
        return self.index == 0 or self.number == 1


def _flatten(items: Sequence[ListItem]) -> List[ListItem]:
    result = []
    for item in items:
        result.append(item)
        result.extend(_flatten(item.children))
    return result


@dataclass
class TextList:
    """A detected list; ``items`` holds the root items, nested items hang off them."""
    items: List[ListItem] = field(default_factory=list)
    bbox: BBox = field(default_factory=BBox)
    type: ListType = ListType.UNKNOWN
    bullet_style: BulletStyle = BulletStyle.UNKNOWN
    index: int = 0
    level: int = 0
    is_mixed: bool = False
    item_count: int = 0

    def get_all_items(self) -> List[ListItem]:
        return _flatten(self.items)

    def get_text(self) -> str:
        parts = []

        def write_items(items, indent):
            for item in items:
                parts.append(f"{indent}{item.prefix} {item.text}\n")
                write_items(item.children, indent + "  ")

        write_items(self.items, "")
        return "".join(parts)

    def to_markdown(self) -> str:
        parts = []

        def write_items(items, indent, start):
            for i, item in enumerate(items):
                parts.append(indent)
                if self.type == ListType.NUMBERED:
                    parts.append(" " * len(indent))
                    parts.append(f"{(start + i) % 10}. ")
                elif self.type == ListType.LETTERED:
                    parts.append(f"{chr(ord('a') + i % 26)}. ")
                else:
                    parts.append("- ")
                parts.append(item.text)
                parts.append("\n")
                write_items(item.children, indent + "  ", 1)

        write_items(self.items, "", 1)
        return "".join(parts)

    def has_nesting(self) -> bool:
        return any(item.children for item in self.items)

    def max_depth(self) -> int:
        def depth_of(items, depth):
            deepest = depth
            for item in items:
                if item.children:
                    deepest = max(deepest, depth_of(item.children, depth + 1))
            return deepest
        return depth_of(self.items, 0)


@dataclass
class ListLayout:
    lists: List[TextList] = field(default_factory=list)
    all_items: List[ListItem] = field(default_factory=list)
    page_width: float = 0.0
    page_height: float = 0.0
    config: ListConfig = field(default_factory=ListConfig)

    def list_count(self) -> int:
        return len(self.lists)

    def get_list(self, index: int) -> Optional[TextList]:
        if index < 0 or index >= len(self.lists):
            return None
        return self.lists[index]

    def get_lists_by_type(self, list_type: ListType) -> List[TextList]:
        return [lst for lst in self.lists if lst.type == list_type]

    def get_bullet_lists(self) -> List[TextList]:
        return self.get_lists_by_type(ListType.BULLET)

    def get_numbered_lists(self) -> List[TextList]:
        return self.get_lists_by_type(ListType.NUMBERED)

    def total_item_count(self) -> int:
        return len(self.all_items)

    def find_lists_in_region(self, region: BBox) -> List[TextList]:
        return [lst for lst in self.lists if regions_overlap(lst.bbox, region)]


def is_list_item_text(text: str) -> bool:
    """Quick check whether a line of text opens with a list marker."""
    return is_list_item_start(text)


@dataclass
class _Candidate:
    paragraph_index: int
    paragraph: Paragraph
    marker: ListMarker


class ListDetector:
    """Finds runs of list-item paragraphs and rebuilds their nesting."""

    def __init__(self, config: Optional[ListConfig] = None):
        self.config = config or ListConfig()
        self.analyzer = ListAnalyzer(
            bullet_characters=self.config.bullet_characters,
            numbered_patterns=self.config.numbered_patterns,
            letter_patterns=self.config.letter_patterns,
            roman_patterns=self.config.roman_patterns,
        )

    def detect_from_fragments(self, fragments: Sequence[TextFragment], page_width: float,
                              page_height: float) -> ListLayout:
        paragraphs = ParagraphDetector().detect_from_fragments(fragments, page_width, page_height)
        return self.detect_from_paragraphs(paragraphs)

    def detect_from_lines(self, line_layout: Optional[LineLayout]) -> ListLayout:
        return self.detect_from_paragraphs(ParagraphDetector().detect(line_layout))

    def detect_from_paragraphs(self, paragraph_layout: Optional[ParagraphLayout]) -> ListLayout:
        if paragraph_layout is None:
            return ListLayout(config=self.config)

        layout = ListLayout(page_width=paragraph_layout.page_width,
                            page_height=paragraph_layout.page_height,
                            config=self.config)
        paragraphs = paragraph_layout.paragraphs
        if not paragraphs:
            return layout

        candidates = []
        for i, paragraph in enumerate(paragraphs):
            marker = self.analyzer.parse_marker(paragraph.text)
            if marker is not None:
                candidates.append(_Candidate(i, paragraph, marker))

        lists = self.group_into_lists(candidates, paragraphs)
        for lst in lists:
            self.detect_nesting(lst)

        layout.lists = lists
        layout.all_items = [item for lst in lists for item in lst.get_all_items()]
        logger.debug(f"Detected {len(lists)} lists from {len(candidates)} candidate items")
        return layout

    def group_into_lists(self, candidates: List[_Candidate],
                         paragraphs: Sequence[Paragraph]) -> List[TextList]:
        lists: List[TextList] = []
        current: List[ListItem] = []
        current_type = ListType.UNKNOWN
        last_index = -2

        for candidate in candidates:
            is_consecutive = candidate.paragraph_index == last_index + 1
            same_type = current_type in (candidate.marker.list_type, ListType.UNKNOWN)

            if not is_consecutive and last_index >= 0:
                prev = paragraphs[last_index]
                gap = self.vertical_gap(prev, candidate.paragraph)
                avg_font = (prev.average_font_size + candidate.paragraph.average_font_size) / 2
                if gap <= avg_font * self.config.max_list_gap:
                    is_consecutive = True

            if current and (not is_consecutive or not same_type):
                if len(current) >= self.config.min_consecutive_items:
                    lists.append(self.create_list(current, len(lists)))
                current = []

            current.append(self.create_item(candidate, len(current)))
            current_type = candidate.marker.list_type
            last_index = candidate.paragraph_index

        if len(current) >= self.config.min_consecutive_items:
            lists.append(self.create_list(current, len(lists)))
        return lists

    @staticmethod
    def vertical_gap(upper: Paragraph, lower: Paragraph) -> float:
        return abs(upper.bbox.y - lower.bbox.top)

    @staticmethod
    def create_item(candidate: _Candidate, index: int) -> ListItem:
        paragraph = candidate.paragraph
        marker = candidate.marker
        return ListItem(
            text=marker.clean_text,
            raw_text=paragraph.text,
            prefix=marker.prefix,
            bbox=paragraph.bbox,
            lines=paragraph.lines,
            index=index,
            list_type=marker.list_type,
            bullet_style=marker.bullet_style,
            number=marker.number,
        )

    @staticmethod
    def create_list(items: List[ListItem], index: int) -> TextList:
        first = items[0]
        return TextList(
            items=items,
            bbox=minimum_containing_bbox(item.bbox for item in items),
            type=first.list_type,
            bullet_style=first.bullet_style,
            index=index,
            is_mixed=any(item.list_type != first.list_type for item in items),
            item_count=len(items),
        )

    def detect_nesting(self, lst: TextList) -> None:
        if not lst.items:
            return
        base = min(item.bbox.x for item in lst.items)
        for item in lst.items:
            item.level = int((item.bbox.x - base) / self.config.indent_threshold)
        lst.items = self.build_hierarchy(lst.items)
        lst.item_count = len(_flatten(lst.items))

    @staticmethod
    def build_hierarchy(items: List[ListItem]) -> List[ListItem]:
        """Attach each item to the nearest preceding item with a lower level."""
        roots: List[ListItem] = []
        stack: List[ListItem] = []
        for item in items:
            while stack and stack[-1].level >= item.level:
                stack.pop()
            if stack:
                stack[-1].children.append(item)
            else:
                roots.append(item)
            stack.append(item)
        return roots
