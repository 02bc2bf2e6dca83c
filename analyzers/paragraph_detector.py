import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np

from analyzers.line_detector import Line, LineAlignment, LineDetector, LineLayout
from processor.data_models import TextFragment
from processor.patterns import LIST_ITEM_PATTERNS, matches_any_pattern
from utils.geometry_utils import BBox, minimum_containing_bbox, regions_overlap

logger = logging.getLogger(__name__)

DEFAULT_LINE_SPACING = 12.0
MARGIN_BUCKET = 5.0
NARROW_LINE_RATIO = 0.7
CAPTION_FONT_RATIO = 0.9
FIRST_LINE_INDENT_MIN = 5.0


class ParagraphStyle(Enum):
    NORMAL = "normal"
    HEADING = "heading"
    BLOCK_QUOTE = "blockquote"
    LIST_ITEM = "list-item"
    CODE = "code"
    CAPTION = "caption"

    def __str__(self) -> str:
        return self.value


@dataclass
class ParagraphConfig:
    spacing_threshold: float = 1.5
    indent_threshold: float = 15.0
    heading_font_size_ratio: float = 1.2
    min_paragraph_lines: int = 1
    block_quote_indent: float = 30.0
    list_item_patterns: List[str] = field(default_factory=lambda: list(LIST_ITEM_PATTERNS))


@dataclass
class Paragraph:
    lines: List[Line] = field(default_factory=list)
    bbox: BBox = field(default_factory=BBox)
    text: str = ""
    style: ParagraphStyle = ParagraphStyle.NORMAL
    alignment: LineAlignment = LineAlignment.UNKNOWN
    first_line_indent: float = 0.0
    left_margin: float = 0.0
    average_font_size: float = 0.0
    line_spacing: float = 0.0
    spacing_before: float = 0.0
    spacing_after: float = 0.0
    index: int = 0

    def line_count(self) -> int:
        return len(self.lines)

    def word_count(self) -> int:
        return len(self.text.split())

    def is_heading(self) -> bool:
        return self.style == ParagraphStyle.HEADING

    def is_list_item(self) -> bool:
        return self.style == ParagraphStyle.LIST_ITEM

    def is_block_quote(self) -> bool:
        return self.style == ParagraphStyle.BLOCK_QUOTE

    def has_first_line_indent(self) -> bool:
        return self.first_line_indent > FIRST_LINE_INDENT_MIN

    def contains_point(self, x: float, y: float) -> bool:
        return self.bbox.contains_point(x, y)

    def get_first_line(self) -> Optional[Line]:
        return self.lines[0] if self.lines else None

    def get_last_line(self) -> Optional[Line]:
        return self.lines[-1] if self.lines else None


@dataclass
class ParagraphLayout:
    paragraphs: List[Paragraph] = field(default_factory=list)
    page_width: float = 0.0
    page_height: float = 0.0
    average_paragraph_spacing: float = 0.0
    config: ParagraphConfig = field(default_factory=ParagraphConfig)

    def paragraph_count(self) -> int:
        return len(self.paragraphs)

    def get_paragraph(self, index: int) -> Optional[Paragraph]:
        if index < 0 or index >= len(self.paragraphs):
            return None
        return self.paragraphs[index]

    def get_text(self) -> str:
        return "\n\n".join(p.text for p in self.paragraphs)

    def get_paragraphs_by_style(self, style: ParagraphStyle) -> List[Paragraph]:
        return [p for p in self.paragraphs if p.style == style]

    def get_headings(self) -> List[Paragraph]:
        return self.get_paragraphs_by_style(ParagraphStyle.HEADING)

    def get_list_items(self) -> List[Paragraph]:
        return self.get_paragraphs_by_style(ParagraphStyle.LIST_ITEM)

    def find_paragraphs_in_region(self, region: BBox) -> List[Paragraph]:
        return [p for p in self.paragraphs if regions_overlap(p.bbox, region)]


def join_line_texts(lines: Sequence[Line]) -> str:
    """Space-join line texts; a hyphen at the end of a line joins without a space."""
    text = ""
    for line in lines:
        line_text = line.text.strip()
        if not line_text:
            continue
        if text and not text.endswith("-"):
            text += " "
        text += line_text
    return text


def dominant_alignment(lines: Sequence[Line]) -> LineAlignment:
    if not lines:
        return LineAlignment.UNKNOWN
    return Counter(line.alignment for line in lines).most_common(1)[0][0]


def is_significant_alignment_change(prev: LineAlignment, cur: LineAlignment) -> bool:
    if prev == cur:
        return False
    if prev == LineAlignment.UNKNOWN or cur == LineAlignment.UNKNOWN:
        return False
    body = {LineAlignment.LEFT, LineAlignment.JUSTIFIED}
    return not (prev in body and cur in body)


class ParagraphDetector:
    """Groups ordered lines into paragraphs and classifies their style."""

    def __init__(self, config: Optional[ParagraphConfig] = None):
        self.config = config or ParagraphConfig()
        self._list_patterns = [re.compile(p) for p in self.config.list_item_patterns]

    def detect(self, line_layout: Optional[LineLayout]) -> ParagraphLayout:
        if line_layout is None:
            return ParagraphLayout(config=self.config)
        return self.detect_from_lines(line_layout.lines, line_layout.page_width, line_layout.page_height)

    def detect_from_fragments(self, fragments: Sequence[TextFragment], page_width: float,
                              page_height: float) -> ParagraphLayout:
        line_layout = LineDetector().detect(fragments, page_width, page_height)
        return self.detect(line_layout)

    def detect_from_lines(self, lines: Sequence[Line], page_width: float,
                          page_height: float) -> ParagraphLayout:
        layout = ParagraphLayout(page_width=page_width, page_height=page_height, config=self.config)
        if not lines:
            return layout

        lines = list(lines)
        avg_spacing = self.average_line_spacing(lines)
        avg_font = float(np.mean([line.average_font_size for line in lines]))
        margin = self.left_margin(lines)

        groups = []
        current = [lines[0]]
        for i in range(1, len(lines)):
            line = lines[i]
            if self.is_paragraph_break(current, line, i, len(lines), avg_spacing, avg_font, margin):
                groups.append(current)
                current = [line]
            else:
                current.append(line)
        groups.append(current)

        paragraphs = []
        for group in groups:
            if len(group) < self.config.min_paragraph_lines:
                continue
            paragraphs.append(self.build_paragraph(group, len(paragraphs), avg_font, margin))

        self.calculate_paragraph_spacing(paragraphs)
        layout.paragraphs = paragraphs
        spacings = [p.spacing_before for p in paragraphs if p.spacing_before > 0]
        layout.average_paragraph_spacing = float(np.mean(spacings)) if spacings else 0.0
        logger.debug(f"Grouped {len(lines)} lines into {len(paragraphs)} paragraphs")
        return layout

    @staticmethod
    def average_line_spacing(lines: Sequence[Line]) -> float:
        if len(lines) < 2:
            return 0.0
        spacings = [line.spacing_before for line in lines[1:] if line.spacing_before > 0]
        if not spacings:
            return DEFAULT_LINE_SPACING
        return float(np.mean(spacings))

    @staticmethod
    def left_margin(lines: Sequence[Line]) -> float:
        """Most common line X, bucketed to 5pt."""
        buckets = Counter(int(line.bbox.x / MARGIN_BUCKET) * MARGIN_BUCKET for line in lines)
        return float(buckets.most_common(1)[0][0])

    def is_list_item(self, text: str) -> bool:
        return matches_any_pattern(text.strip(), self._list_patterns)

    def is_paragraph_break(self, current: List[Line], line: Line, index: int, total: int,
                           avg_spacing: float, avg_font: float, margin: float) -> bool:
        prev = current[-1]
        first = current[0]

        if line.spacing_before > avg_spacing * self.config.spacing_threshold:
            return True

        ratio = self.config.heading_font_size_ratio
        if prev.average_font_size > 0:
            font_ratio = line.average_font_size / prev.average_font_size
            if font_ratio > ratio or font_ratio < 1 / ratio:
                return True

        if is_significant_alignment_change(prev.alignment, line.alignment):
            return True

        indent = line.bbox.x - margin
        prev_indent = prev.bbox.x - margin
        if indent > self.config.indent_threshold and prev_indent <= self.config.indent_threshold:
            return True

        # One paragraph per list item; ListDetector groups the items back into lists
        if self.is_list_item(line.text):
            return True

        if prev.bbox.width < first.bbox.width * NARROW_LINE_RATIO and index < total - 1:
            return True

        return False

    def build_paragraph(self, lines: List[Line], index: int, doc_avg_font: float,
                        doc_margin: float) -> Paragraph:
        bbox = minimum_containing_bbox(line.bbox for line in lines)
        first_line_indent = 0.0
        if len(lines) > 1:
            first_line_indent = lines[0].bbox.x - min(line.bbox.x for line in lines[1:])

        spacings = [line.spacing_before for line in lines[1:] if line.spacing_before > 0]
        paragraph = Paragraph(
            lines=lines,
            bbox=bbox,
            text=join_line_texts(lines),
            alignment=dominant_alignment(lines),
            first_line_indent=first_line_indent,
            left_margin=bbox.x,
            average_font_size=float(np.mean([line.average_font_size for line in lines])),
            line_spacing=float(np.mean(spacings)) if spacings else 0.0,
            index=index,
        )
        paragraph.style = self.classify_style(paragraph, doc_avg_font, doc_margin)
        return paragraph

    def classify_style(self, paragraph: Paragraph, doc_avg_font: float,
                       doc_margin: float) -> ParagraphStyle:
        if (paragraph.average_font_size >= doc_avg_font * self.config.heading_font_size_ratio
                and paragraph.line_count() <= 3):
            return ParagraphStyle.HEADING
        if paragraph.lines and self.is_list_item(paragraph.lines[0].text):
            return ParagraphStyle.LIST_ITEM
        if paragraph.left_margin > doc_margin + self.config.block_quote_indent:
            return ParagraphStyle.BLOCK_QUOTE
        if (paragraph.average_font_size < doc_avg_font * CAPTION_FONT_RATIO
                and paragraph.line_count() <= 2
                and paragraph.alignment == LineAlignment.CENTER):
            return ParagraphStyle.CAPTION
        return ParagraphStyle.NORMAL

    @staticmethod
    def calculate_paragraph_spacing(paragraphs: List[Paragraph]) -> None:
        for prev, paragraph in zip(paragraphs, paragraphs[1:]):
            gap = prev.bbox.y - paragraph.bbox.top
            paragraph.spacing_before = gap
            prev.spacing_after = gap
