import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from processor.data_models import TextFragment
from utils.geometry_utils import BBox

logger = logging.getLogger(__name__)

# Horizontal intervals closer than this are treated as one covered band
SLAB_MERGE_TOLERANCE = 5.0


@dataclass
class ColumnConfig:
    min_column_width: float = 50.0
    min_gap_width: float = 20.0
    # Fraction of the page height a gap has to stay open for
    min_gap_height_ratio: float = 0.5
    max_columns: int = 6
    merge_threshold: float = 10.0


@dataclass
class Column:
    bbox: BBox = field(default_factory=BBox)
    fragments: List[TextFragment] = field(default_factory=list)
    index: int = 0


@dataclass
class Gap:
    left: float
    right: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def center(self) -> float:
        return (self.left + self.right) / 2


@dataclass
class ColumnLayout:
    columns: List[Column] = field(default_factory=list)
    page_width: float = 0.0
    page_height: float = 0.0
    config: ColumnConfig = field(default_factory=ColumnConfig)

    def column_count(self) -> int:
        return len(self.columns)

    def is_single_column(self) -> bool:
        return self.column_count() <= 1

    def is_multi_column(self) -> bool:
        return self.column_count() > 1

    def get_column(self, index: int) -> Optional[Column]:
        if index < 0 or index >= len(self.columns):
            return None
        return self.columns[index]

    def get_fragments_in_reading_order(self) -> List[TextFragment]:
        """Left column first, each column in its stored order."""
        result = []
        for column in self.columns:
            result.extend(column.fragments)
        return result

    def get_text(self) -> str:
        parts = []
        for i, column in enumerate(self.columns):
            column_text = _column_text(column.fragments)
            parts.append(column_text)
            if i < len(self.columns) - 1 and column_text:
                parts.append("\n\n")
        return "".join(parts)


def _column_text(fragments: Sequence[TextFragment]) -> str:
    rows = group_into_bands(fragments)
    parts = []
    for row_index, row in enumerate(rows):
        row = sorted(row, key=lambda f: f.x)
        for i, frag in enumerate(row):
            if i > 0 and frag.x - row[i - 1].right > frag.height * 0.1:
                parts.append(" ")
            parts.append(frag.text)
        if row_index < len(rows) - 1:
            vertical_gap = row[0].y - rows[row_index + 1][0].y
            parts.append("\n\n" if vertical_gap > row[0].height * 1.5 else "\n")
    return "".join(parts)


def group_into_bands(fragments: Sequence[TextFragment]) -> List[List[TextFragment]]:
    """Group fragments into Y bands in order of first appearance.

    A fragment joins the first band whose anchor Y lies within half of the
    fragment's height.
    """
    bands: List[Tuple[float, List[TextFragment]]] = []
    for frag in fragments:
        for band_y, members in bands:
            if abs(frag.y - band_y) <= frag.height * 0.5:
                members.append(frag)
                break
        else:
            bands.append((frag.y, [frag]))
    return [members for _, members in bands]


def merge_slabs(slabs: List[Tuple[float, float]]) -> List[Tuple[float, float]]:
    """Merge X intervals (sorted by left edge) that overlap or nearly touch."""
    merged: List[List[float]] = []
    for left, right in slabs:
        if merged and left <= merged[-1][1] + SLAB_MERGE_TOLERANCE:
            merged[-1][1] = max(merged[-1][1], right)
        else:
            merged.append([left, right])
    return [(left, right) for left, right in merged]


class ColumnDetector:
    """Partitions a page's fragments into left-to-right column bands.

    Columns are separated by vertical whitespace gaps in the X projection of
    the page content. A gap only counts when it is wide enough and stays open
    over enough of the page height.
    """

    def __init__(self, config: Optional[ColumnConfig] = None):
        self.config = config or ColumnConfig()

    def detect(self, fragments: Sequence[TextFragment], page_width: float,
               page_height: float) -> ColumnLayout:
        if not fragments:
            return ColumnLayout(page_width=page_width, page_height=page_height, config=self.config)

        gaps = self.find_vertical_gaps(fragments, page_height)
        if not gaps:
            logger.debug(f"No column gaps among {len(fragments)} fragments, single column")
            return self._single_column_layout(fragments, page_width, page_height)

        columns = self._create_columns_from_gaps(fragments, gaps)
        if len(columns) <= 1:
            return self._single_column_layout(fragments, page_width, page_height)

        logger.debug(f"Detected {len(columns)} columns from {len(gaps)} gaps")
        return ColumnLayout(columns=columns, page_width=page_width,
                            page_height=page_height, config=self.config)

    def find_vertical_gaps(self, fragments: Sequence[TextFragment], page_height: float) -> List[Gap]:
        """Find whitespace gaps between covered X bands, left to right."""
        slabs = sorted(((f.x, f.right) for f in fragments), key=lambda s: s[0])
        merged = merge_slabs(slabs)

        gaps = []
        for (_, left_edge), (right_edge, _) in zip(merged, merged[1:]):
            gap = Gap(left_edge, right_edge)
            if gap.width < self.config.min_gap_width:
                continue
            extent = self.measure_gap_vertical_extent(fragments, gap, page_height)
            if extent >= self.config.min_gap_height_ratio:
                gaps.append(gap)

        max_gaps = max(self.config.max_columns - 1, 0)
        return gaps[:max_gaps]

    @staticmethod
    def measure_gap_vertical_extent(fragments: Sequence[TextFragment], gap: Gap,
                                    page_height: float) -> float:
        """Fraction of the page height over which no fragment crosses the gap."""
        if page_height <= 0:
            return 0.0

        blocked = sorted(
            ((f.y, f.top) for f in fragments if f.right > gap.left and f.x < gap.right),
            key=lambda r: r[0],
        )
        if not blocked:
            return 1.0

        merged: List[List[float]] = []
        for bottom, top in blocked:
            if merged and bottom <= merged[-1][1]:
                merged[-1][1] = max(merged[-1][1], top)
            else:
                merged.append([bottom, top])

        blocked_height = sum(top - bottom for bottom, top in merged)
        return (page_height - blocked_height) / page_height

    def _single_column_layout(self, fragments: Sequence[TextFragment], page_width: float,
                              page_height: float) -> ColumnLayout:
        ordered = sorted(fragments, key=lambda f: -f.y)
        column = Column(bbox=BBox.from_fragments(ordered), fragments=ordered, index=0)
        return ColumnLayout(columns=[column], page_width=page_width,
                            page_height=page_height, config=self.config)

    def _create_columns_from_gaps(self, fragments: Sequence[TextFragment],
                                  gaps: List[Gap]) -> List[Column]:
        gaps = sorted(gaps, key=lambda g: g.left)
        min_x = min(f.x for f in fragments)
        max_x = max(f.right for f in fragments)
        edges = [min_x] + [g.center for g in gaps] + [max_x]
        bands = list(zip(edges, edges[1:]))

        assignments = [self._band_index(f.center_x, bands) for f in fragments]
        band_members = [[] for _ in bands]
        for frag, band in zip(fragments, assignments):
            if band is not None:
                band_members[band].append(frag)

        # Narrow bands (margin numbers, stray glyphs) are folded into the
        # nearest wide band so that no text is lost
        band_boxes = [BBox.from_fragments(members) for members in band_members]
        wide = [i for i, members in enumerate(band_members)
                if members and band_boxes[i].width >= self.config.min_column_width]
        if not wide:
            return []

        target = {}
        for i, members in enumerate(band_members):
            if not members:
                continue
            if i in wide:
                target[i] = i
            else:
                target[i] = min(wide, key=lambda w: abs(band_boxes[w].center_x - band_boxes[i].center_x))
                logger.debug(f"Merging narrow column band {i} ({band_boxes[i].width:.1f}pt) into band {target[i]}")

        grouped = {i: [] for i in wide}
        for frag, band in zip(fragments, assignments):
            if band is not None:
                grouped[target[band]].append(frag)

        columns = []
        for index, band in enumerate(wide):
            members = grouped[band]
            columns.append(Column(bbox=BBox.from_fragments(members), fragments=members, index=index))
        return columns

    @staticmethod
    def _band_index(center: float, bands: List[Tuple[float, float]]) -> Optional[int]:
        last = len(bands) - 1
        for i, (left, right) in enumerate(bands):
            if left <= center < right or (i == last and center == right):
                return i
        return None
