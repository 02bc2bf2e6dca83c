import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import cmp_to_key
from typing import List, Optional, Sequence

import numpy as np

from processor.data_models import Direction, TextFragment
from utils.geometry_utils import BBox, regions_overlap

logger = logging.getLogger(__name__)

# In-line ordering treats fragments this close (relative to font size) as tied
X_SORT_TOLERANCE_RATIO = 0.25


class LineAlignment(Enum):
    UNKNOWN = "unknown"
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    JUSTIFIED = "justified"

    def __str__(self) -> str:
        return self.value


@dataclass
class LineConfig:
    line_height_tolerance: float = 0.5
    min_line_width: float = 5.0
    alignment_tolerance: float = 10.0
    justification_threshold: float = 0.9


@dataclass
class Line:
    fragments: List[TextFragment] = field(default_factory=list)
    bbox: BBox = field(default_factory=BBox)
    baseline: float = 0.0
    height: float = 0.0
    average_font_size: float = 0.0
    text: str = ""
    direction: Direction = Direction.LTR
    alignment: LineAlignment = LineAlignment.UNKNOWN
    indentation: float = 0.0
    spacing_before: float = 0.0
    spacing_after: float = 0.0
    index: int = 0

    def is_indented(self, margin: float, tolerance: float) -> bool:
        return self.indentation > margin + tolerance

    def contains_point(self, x: float, y: float) -> bool:
        return self.bbox.contains_point(x, y)

    def word_count(self) -> int:
        return len(self.text.split())

    def is_empty(self) -> bool:
        return not self.fragments or not self.text.strip()

    def has_larger_font(self, size: float) -> bool:
        return self.average_font_size > size


@dataclass
class LineLayout:
    lines: List[Line] = field(default_factory=list)
    page_width: float = 0.0
    page_height: float = 0.0
    average_line_spacing: float = 0.0
    average_line_height: float = 0.0
    config: LineConfig = field(default_factory=LineConfig)

    def line_count(self) -> int:
        return len(self.lines)

    def get_line(self, index: int) -> Optional[Line]:
        if index < 0 or index >= len(self.lines):
            return None
        return self.lines[index]

    def is_paragraph_break(self, index: int) -> bool:
        """True when the gap after line ``index`` is clearly larger than usual."""
        line = self.get_line(index)
        if line is None:
            return False
        return line.spacing_after > self.average_line_spacing * 1.5

    def get_text(self) -> str:
        parts = []
        for i, line in enumerate(self.lines):
            parts.append(line.text)
            if i < len(self.lines) - 1:
                parts.append("\n\n" if self.is_paragraph_break(i) else "\n")
        return "".join(parts)

    def get_all_fragments(self) -> List[TextFragment]:
        result = []
        for line in self.lines:
            result.extend(line.fragments)
        return result

    def find_lines_in_region(self, region: BBox) -> List[Line]:
        return [line for line in self.lines if regions_overlap(line.bbox, region)]

    def get_lines_by_alignment(self, alignment: LineAlignment) -> List[Line]:
        return [line for line in self.lines if line.alignment == alignment]


def assemble_text(fragments: Sequence[TextFragment]) -> str:
    """Join fragment texts, inserting a space where the horizontal gap is visible."""
    parts = []
    for i, frag in enumerate(fragments):
        if i > 0 and frag.x - fragments[i - 1].right > frag.height * 0.1:
            parts.append(" ")
        parts.append(frag.text)
    return "".join(parts)


def dominant_direction(fragments: Sequence[TextFragment]) -> Direction:
    rtl = sum(1 for f in fragments if f.direction == Direction.RTL)
    ltr = sum(1 for f in fragments if f.direction == Direction.LTR)
    if rtl > ltr:
        return Direction.RTL
    if ltr > 0:
        return Direction.LTR
    return Direction.NEUTRAL


def sort_by_y_with_tolerance(fragments: Sequence[TextFragment], tolerance: float) -> List[TextFragment]:
    """Sort top to bottom; fragments within ``tolerance`` keep their stream order."""
    def compare(a, b):
        if abs(a.y - b.y) > tolerance:
            return -1 if a.y > b.y else 1
        return 0
    return sorted(fragments, key=cmp_to_key(compare))


def sort_by_x_with_tolerance(fragments: Sequence[TextFragment]) -> List[TextFragment]:
    def compare(a, b):
        tolerance = max(a.font_size, b.font_size) * X_SORT_TOLERANCE_RATIO
        if abs(a.x - b.x) > tolerance:
            return -1 if a.x < b.x else 1
        return 0
    return sorted(fragments, key=cmp_to_key(compare))


def should_preserve_stream_order(fragments: Sequence[TextFragment]) -> bool:
    """Keep producer order when it already runs left to right.

    Overlapping glyph runs can share nearly the same X; re-sorting them only
    scrambles text the producer already emitted in order.
    """
    if len(fragments) < 2:
        return True
    for prev, cur in zip(fragments, fragments[1:]):
        tolerance = max(prev.font_size, cur.font_size) * X_SORT_TOLERANCE_RATIO
        if cur.x < prev.x - tolerance:
            return False
    return True


class LineDetector:
    """Groups fragments that share a Y band into ordered lines."""

    def __init__(self, config: Optional[LineConfig] = None):
        self.config = config or LineConfig()

    def detect(self, fragments: Sequence[TextFragment], page_width: float,
               page_height: float) -> LineLayout:
        layout = LineLayout(page_width=page_width, page_height=page_height, config=self.config)
        if not fragments:
            return layout

        tolerance = self.compute_line_tolerance(fragments)
        groups = self.group_fragments_into_lines(fragments, tolerance)

        lines = []
        for group in groups:
            if not should_preserve_stream_order(group):
                group = sort_by_x_with_tolerance(group)
            line = self.build_line(group)
            if line.bbox.width < self.config.min_line_width:
                continue
            line.index = len(lines)
            lines.append(line)

        self.calculate_spacing(lines)
        self.classify_alignments(lines)

        layout.lines = lines
        layout.average_line_height = float(np.mean([line.height for line in lines])) if lines else 0.0
        layout.average_line_spacing = average_positive_spacing(lines)
        logger.debug(f"Grouped {len(fragments)} fragments into {len(lines)} lines "
                     f"(tolerance {tolerance:.2f})")
        return layout

    def compute_line_tolerance(self, fragments: Sequence[TextFragment]) -> float:
        """Y tolerance for grouping, tightened for compressed coordinate systems.

        The 10th percentile of the gaps between distinct Y positions is compared
        with the average fragment height. When real lines sit much closer than a
        font height apart, the standard tolerance would merge them.
        """
        avg_height = float(np.mean([f.height for f in fragments]))
        standard = avg_height * self.config.line_height_tolerance

        unique_ys = sorted({int(f.y * 10) / 10 for f in fragments})
        if len(unique_ys) < 3:
            return standard

        gaps = sorted(b - a for a, b in zip(unique_ys, unique_ys[1:]) if b - a > 0.1)
        if not gaps:
            return standard

        min_gap = gaps[len(gaps) // 10]
        if 0.1 < min_gap < avg_height * 0.5:
            return max(0.15, min_gap * 0.2)
        return standard

    def group_fragments_into_lines(self, fragments: Sequence[TextFragment],
                                   tolerance: float) -> List[List[TextFragment]]:
        ordered = sort_by_y_with_tolerance(fragments, tolerance)

        groups = []
        current = [ordered[0]]
        current_y = ordered[0].y
        for frag in ordered[1:]:
            if abs(frag.y - current_y) <= tolerance:
                current.append(frag)
                current_y = sum(f.y for f in current) / len(current)
            else:
                groups.append(current)
                current = [frag]
                current_y = frag.y
        groups.append(current)
        return groups

    @staticmethod
    def build_line(fragments: Sequence[TextFragment], index: int = 0) -> Line:
        fragments = list(fragments)
        bbox = BBox.from_fragments(fragments)
        return Line(
            fragments=fragments,
            bbox=bbox,
            baseline=min(f.y for f in fragments),
            height=max(f.height for f in fragments),
            average_font_size=float(np.mean([f.font_size for f in fragments])),
            text=assemble_text(fragments),
            direction=dominant_direction(fragments),
            indentation=bbox.x,
            index=index,
        )

    @staticmethod
    def calculate_spacing(lines: List[Line]) -> None:
        for prev, line in zip(lines, lines[1:]):
            gap = prev.baseline - (line.baseline + line.height)
            line.spacing_before = gap
            prev.spacing_after = gap

    def classify_alignments(self, lines: List[Line]) -> None:
        if not lines:
            return
        left_margin = min(line.bbox.x for line in lines)
        right_margin = max(line.bbox.right for line in lines)
        max_width = max(line.bbox.width for line in lines)
        for line in lines:
            line.alignment = self.classify_alignment(line, left_margin, right_margin, max_width)

    def classify_alignment(self, line: Line, left_margin: float, right_margin: float,
                           max_width: float) -> LineAlignment:
        tolerance = self.config.alignment_tolerance
        if max_width > 0 and line.bbox.width / max_width >= self.config.justification_threshold:
            return LineAlignment.JUSTIFIED

        content_center = (left_margin + right_margin) / 2
        is_left = abs(line.bbox.x - left_margin) <= tolerance
        is_right = abs(line.bbox.right - right_margin) <= tolerance
        is_center = abs(line.bbox.center_x - content_center) <= tolerance

        if is_center and not is_left and not is_right:
            return LineAlignment.CENTER
        if is_right and not is_left:
            return LineAlignment.RIGHT
        if is_left:
            return LineAlignment.LEFT
        return LineAlignment.UNKNOWN


def average_positive_spacing(lines: Sequence[Line]) -> float:
    if len(lines) < 2:
        return 0.0
    spacings = [line.spacing_before for line in lines if line.spacing_before > 0]
    if not spacings:
        return 0.0
    return float(np.mean(spacings))
