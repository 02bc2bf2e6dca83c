import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import cmp_to_key
from typing import List, Optional, Sequence

import numpy as np

from analyzers.column_detector import Column, ColumnConfig, ColumnDetector, ColumnLayout
from analyzers.line_detector import (
    Line,
    LineAlignment,
    LineConfig,
    LineDetector,
    LineLayout,
    average_positive_spacing,
)
from analyzers.paragraph_detector import Paragraph, ParagraphConfig, ParagraphDetector, ParagraphLayout
from processor.data_models import Direction, TextFragment
from utils.geometry_utils import BBox

logger = logging.getLogger(__name__)

# A spanning section this close to a column's vertical level is read first
SPANNING_SLACK = 10.0
SECTION_JUSTIFIED_RATIO = 0.85


class ReadingDirection(Enum):
    LTR = "ltr"
    RTL = "rtl"
    TTB = "ttb"

    def __str__(self) -> str:
        return self.value


class SectionType(Enum):
    SPANNING = "spanning"
    COLUMN = "column"

    def __str__(self) -> str:
        return self.value


@dataclass
class ReadingOrderConfig:
    direction: ReadingDirection = ReadingDirection.LTR
    column_config: ColumnConfig = field(default_factory=ColumnConfig)
    line_config: LineConfig = field(default_factory=LineConfig)
    prefer_column_order: bool = True
    # Fragments wider than this share of the page width are read as spanning content
    spanning_threshold: float = 0.7
    # None means auto-detect from the fragment coordinates
    inverted_y: Optional[bool] = None


@dataclass
class ReadingSection:
    """Spanning content or one column, with lines in reading order.

    Column section lines are measured from the column's left edge;
    ``x_offset`` maps them back to page coordinates.
    """
    type: SectionType = SectionType.COLUMN
    lines: List[Line] = field(default_factory=list)
    fragments: List[TextFragment] = field(default_factory=list)
    column_index: int = -1
    bbox: BBox = field(default_factory=BBox)
    x_offset: float = 0.0

    def page_lines(self) -> List[Line]:
        if not self.x_offset:
            return list(self.lines)
        return [_translate_line(line, self.x_offset) for line in self.lines]


def _translate_line(line: Line, dx: float) -> Line:
    bbox = line.bbox.translated(dx)
    return replace(line, bbox=bbox, indentation=bbox.x)


def _translate_paragraph(paragraph: Paragraph, dx: float) -> Paragraph:
    return replace(
        paragraph,
        lines=[_translate_line(line, dx) for line in paragraph.lines],
        bbox=paragraph.bbox.translated(dx),
        left_margin=paragraph.left_margin + dx,
    )


@dataclass
class ReadingOrderResult:
    fragments: List[TextFragment] = field(default_factory=list)
    lines: List[Line] = field(default_factory=list)
    sections: List[ReadingSection] = field(default_factory=list)
    direction: ReadingDirection = ReadingDirection.LTR
    column_count: int = 0
    page_width: float = 0.0
    page_height: float = 0.0

    def get_text(self) -> str:
        if not self.lines:
            return ""
        layout = LineLayout(lines=self.lines, page_width=self.page_width, page_height=self.page_height,
                            average_line_spacing=average_positive_spacing(self.lines))
        return layout.get_text()

    def get_paragraphs(self, config: Optional[ParagraphConfig] = None) -> ParagraphLayout:
        """Detect paragraphs section by section, in reading order.

        Each section gets its own spacing context. Geometry of the returned
        paragraphs is in page coordinates.
        """
        detector = ParagraphDetector(config)
        layout = ParagraphLayout(page_width=self.page_width, page_height=self.page_height,
                                 config=detector.config)
        if not self.lines:
            return layout

        paragraphs = []
        section_spacings = []
        for section in self.sections:
            if not section.lines:
                continue
            section_layout = detector.detect_from_lines(section.lines, section.bbox.width, self.page_height)
            for paragraph in section_layout.paragraphs:
                if section.x_offset:
                    paragraph = _translate_paragraph(paragraph, section.x_offset)
                paragraph.index = len(paragraphs)
                paragraphs.append(paragraph)
            if section_layout.average_paragraph_spacing > 0:
                section_spacings.append(section_layout.average_paragraph_spacing)

        layout.paragraphs = paragraphs
        layout.average_paragraph_spacing = float(np.mean(section_spacings)) if section_spacings else 0.0
        return layout

    def is_multi_column(self) -> bool:
        return self.column_count > 1

    def get_section_count(self) -> int:
        return len(self.sections)


def reorder_lines_by_y(lines: Sequence[Line], inverted_y: bool) -> List[Line]:
    """Copy lines into top-to-bottom order and recompute their spacing."""
    if len(lines) <= 1:
        return [replace(line) for line in lines]

    if inverted_y:
        result = sorted((replace(line) for line in lines), key=lambda l: l.bbox.y)
    else:
        result = sorted((replace(line) for line in lines), key=lambda l: -l.bbox.y)

    for i, line in enumerate(result):
        if i == 0:
            line.spacing_before = 0.0
            continue
        prev = result[i - 1]
        if inverted_y:
            spacing = line.bbox.y - prev.bbox.top
        else:
            spacing = prev.bbox.y - line.bbox.top
        line.spacing_before = max(spacing, 0.0)
        prev.spacing_after = line.spacing_before
    result[-1].spacing_after = 0.0
    return result


def normalize_line_x(lines: List[Line], section_left: float) -> None:
    for line in lines:
        line.bbox = line.bbox.translated(-section_left)
        if line.indentation > 0:
            line.indentation = max(line.indentation - section_left, 0.0)


def recalculate_line_alignment(lines: List[Line], section_width: float) -> None:
    """Full-width lines are justified, shorter ones left aligned."""
    if not lines or section_width <= 0:
        return
    reference = max(line.bbox.width for line in lines)
    if reference <= 0:
        reference = section_width
    for line in lines:
        if line.bbox.width >= reference * SECTION_JUSTIFIED_RATIO:
            line.alignment = LineAlignment.JUSTIFIED
        else:
            line.alignment = LineAlignment.LEFT


class ReadingOrderDetector:
    """Orders page content into spanning and per-column sections."""

    def __init__(self, config: Optional[ReadingOrderConfig] = None):
        self.config = config or ReadingOrderConfig()

    def detect(self, fragments: Sequence[TextFragment], page_width: float,
               page_height: float) -> ReadingOrderResult:
        if not fragments:
            return ReadingOrderResult(direction=self.config.direction,
                                      page_width=page_width, page_height=page_height)

        column_layout = ColumnDetector(self.config.column_config).detect(fragments, page_width, page_height)

        direction = self.config.direction
        if direction == ReadingDirection.LTR:
            direction = self.detect_reading_direction(fragments)
        inverted_y = self.detect_inverted_y(fragments, page_height)

        sections = self.build_sections(column_layout, page_width, page_height, inverted_y)
        sections = self.order_sections(sections, direction, inverted_y)

        ordered_fragments = []
        ordered_lines = []
        for section in sections:
            ordered_fragments.extend(section.fragments)
            ordered_lines.extend(section.lines)

        logger.debug(f"Reading order: {len(sections)} sections, {column_layout.column_count()} columns, "
                     f"direction {direction}, inverted_y={inverted_y}")
        return ReadingOrderResult(
            fragments=ordered_fragments,
            lines=ordered_lines,
            sections=sections,
            direction=direction,
            column_count=column_layout.column_count(),
            page_width=page_width,
            page_height=page_height,
        )

    def detect_from_lines(self, lines: Sequence[Line], page_width: float,
                          page_height: float) -> ReadingOrderResult:
        fragments = [frag for line in lines for frag in line.fragments]
        return self.detect(fragments, page_width, page_height)

    def detect_inverted_y(self, fragments: Sequence[TextFragment], page_height: float) -> bool:
        """Guess whether Y grows downward (Y=0 at the top of the page)."""
        if self.config.inverted_y is not None:
            return self.config.inverted_y
        if not fragments:
            return False

        min_y = min(f.y for f in fragments)
        max_y = max(f.y for f in fragments)

        if page_height > 0:
            if max_y > page_height * 0.5:
                return False
            if max_y < page_height * 0.3 and min_y < page_height * 0.1:
                return True

        y_range = max_y - min_y
        if y_range > 0 and min_y < y_range * 0.1:
            return max_y < page_height * 0.5
        return False

    @staticmethod
    def detect_reading_direction(fragments: Sequence[TextFragment]) -> ReadingDirection:
        rtl = sum(1 for f in fragments if f.direction == Direction.RTL)
        ltr = sum(1 for f in fragments if f.direction == Direction.LTR)
        return ReadingDirection.RTL if rtl > ltr else ReadingDirection.LTR

    def split_spanning(self, column_layout: ColumnLayout, page_width: float):
        """Pull page-wide fragments out of the columns of a multi-column layout."""
        if not column_layout.is_multi_column() or page_width <= 0:
            return [], list(column_layout.columns)

        limit = page_width * self.config.spanning_threshold
        spanning = []
        columns = []
        for column in column_layout.columns:
            kept = []
            for frag in column.fragments:
                if frag.width > limit:
                    spanning.append(frag)
                else:
                    kept.append(frag)
            if len(kept) == len(column.fragments):
                columns.append(column)
            else:
                columns.append(Column(bbox=BBox.from_fragments(kept), fragments=kept, index=column.index))
        spanning.sort(key=lambda f: -f.y)
        return spanning, columns

    def build_sections(self, column_layout: ColumnLayout, page_width: float, page_height: float,
                       inverted_y: bool) -> List[ReadingSection]:
        spanning, columns = self.split_spanning(column_layout, page_width)

        sections = []
        if spanning:
            sections.append(self.build_spanning_section(spanning, page_width, page_height, inverted_y))
        for i, column in enumerate(columns):
            if not column.fragments:
                continue
            sections.append(self.build_column_section(column, i, page_height, inverted_y))
        return sections

    def build_spanning_section(self, fragments: Sequence[TextFragment], page_width: float,
                               page_height: float, inverted_y: bool) -> ReadingSection:
        line_layout = LineDetector(self.config.line_config).detect(fragments, page_width, page_height)
        return ReadingSection(
            type=SectionType.SPANNING,
            lines=reorder_lines_by_y(line_layout.lines, inverted_y),
            fragments=list(fragments),
            column_index=-1,
            bbox=BBox.from_fragments(fragments),
        )

    def build_column_section(self, column: Column, column_index: int, page_height: float,
                             inverted_y: bool) -> ReadingSection:
        line_layout = LineDetector(self.config.line_config).detect(
            column.fragments, column.bbox.width, page_height)
        lines = reorder_lines_by_y(line_layout.lines, inverted_y)
        normalize_line_x(lines, column.bbox.x)
        recalculate_line_alignment(lines, column.bbox.width)
        return ReadingSection(
            type=SectionType.COLUMN,
            lines=lines,
            fragments=list(column.fragments),
            column_index=column_index,
            bbox=column.bbox,
            x_offset=column.bbox.x,
        )

    @staticmethod
    def section_precedes(a: ReadingSection, b: ReadingSection, direction: ReadingDirection,
                         inverted_y: bool) -> bool:
        if inverted_y:
            a_vertical, b_vertical = a.bbox.y, b.bbox.y
        else:
            a_vertical, b_vertical = a.bbox.top, b.bbox.top

        if a.type == SectionType.SPANNING and b.type == SectionType.COLUMN:
            if inverted_y and a_vertical <= b_vertical + SPANNING_SLACK:
                return True
            if not inverted_y and a_vertical >= b_vertical - SPANNING_SLACK:
                return True
        if b.type == SectionType.SPANNING and a.type == SectionType.COLUMN:
            if inverted_y and b_vertical <= a_vertical + SPANNING_SLACK:
                return False
            if not inverted_y and b_vertical >= a_vertical - SPANNING_SLACK:
                return False

        overlap = min(a.bbox.top, b.bbox.top) - max(a.bbox.y, b.bbox.y)
        min_height = min(a.bbox.height, b.bbox.height)
        if min_height > 0 and overlap > min_height * 0.5:
            if direction == ReadingDirection.RTL:
                return a.bbox.x > b.bbox.x
            return a.bbox.x < b.bbox.x

        if inverted_y:
            return a_vertical < b_vertical
        return a_vertical > b_vertical

    def order_sections(self, sections: List[ReadingSection], direction: ReadingDirection,
                       inverted_y: bool) -> List[ReadingSection]:
        if len(sections) <= 1:
            return list(sections)

        def compare(a, b):
            if self.section_precedes(a, b, direction, inverted_y):
                return -1
            if self.section_precedes(b, a, direction, inverted_y):
                return 1
            return 0

        return sorted(sections, key=cmp_to_key(compare))


def reorder_for_reading(fragments: Sequence[TextFragment], page_width: float,
                        page_height: float) -> List[TextFragment]:
    return ReadingOrderDetector().detect(fragments, page_width, page_height).fragments


def reorder_lines_for_reading(lines: Sequence[Line], page_width: float,
                              page_height: float) -> List[Line]:
    return ReadingOrderDetector().detect_from_lines(lines, page_width, page_height).lines
