import logging
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import List, Optional, Sequence

import numpy as np

from analyzers.line_detector import assemble_text
from processor.data_models import TextFragment
from utils.geometry_utils import BBox

logger = logging.getLogger(__name__)

# Blocks whose tops are this close count as the same row when sorting
ROW_TOLERANCE = 10.0
OVERLAP_MERGE_RATIO = 0.3


@dataclass
class BlockConfig:
    line_height_tolerance: float = 0.5
    horizontal_gap_threshold: float = 3.0
    vertical_gap_threshold: float = 1.5
    min_block_width: float = 10.0
    min_block_height: float = 5.0
    merge_overlapping_blocks: bool = True


@dataclass
class Block:
    lines: List[List[TextFragment]] = field(default_factory=list)
    fragments: List[TextFragment] = field(default_factory=list)
    bbox: BBox = field(default_factory=BBox)
    index: int = 0

    def get_text(self) -> str:
        return "\n".join(assemble_text(line) for line in self.lines)

    def line_count(self) -> int:
        return len(self.lines)

    def fragment_count(self) -> int:
        return len(self.fragments)

    def average_font_size(self) -> float:
        if not self.fragments:
            return 0.0
        return float(np.mean([f.font_size for f in self.fragments]))

    def contains_point(self, x: float, y: float) -> bool:
        return self.bbox.contains_point(x, y)


@dataclass
class BlockLayout:
    blocks: List[Block] = field(default_factory=list)
    page_width: float = 0.0
    page_height: float = 0.0
    config: BlockConfig = field(default_factory=BlockConfig)

    def block_count(self) -> int:
        return len(self.blocks)

    def get_block(self, index: int) -> Optional[Block]:
        if index < 0 or index >= len(self.blocks):
            return None
        return self.blocks[index]

    def get_text(self) -> str:
        return "\n\n".join(block.get_text() for block in self.blocks)

    def get_all_fragments(self) -> List[TextFragment]:
        result = []
        for block in self.blocks:
            result.extend(block.fragments)
        return result


def _make_block(lines: List[List[TextFragment]]) -> Block:
    fragments = [frag for line in lines for frag in line]
    return Block(lines=lines, fragments=fragments, bbox=BBox.from_fragments(fragments))


class BlockDetector:
    """Clusters fragments into spatially coherent rectangular blocks.

    Blocks use their own line grouping with a fixed fraction-of-height tolerance,
    independent of the column and line detectors.
    """

    def __init__(self, config: Optional[BlockConfig] = None):
        self.config = config or BlockConfig()

    def detect(self, fragments: Sequence[TextFragment], page_width: float,
               page_height: float) -> BlockLayout:
        layout = BlockLayout(page_width=page_width, page_height=page_height, config=self.config)
        if not fragments:
            return layout

        lines = self.group_into_lines(fragments)
        blocks = self.group_lines_into_blocks(lines)
        if self.config.merge_overlapping_blocks:
            blocks = self.merge_overlapping(blocks)

        blocks = self.sort_blocks(blocks)
        blocks = [b for b in blocks
                  if b.bbox.width >= self.config.min_block_width
                  and b.bbox.height >= self.config.min_block_height]
        for i, block in enumerate(blocks):
            block.index = i

        layout.blocks = blocks
        logger.debug(f"Detected {len(blocks)} blocks from {len(lines)} lines")
        return layout

    def group_into_lines(self, fragments: Sequence[TextFragment]) -> List[List[TextFragment]]:
        tolerance_ratio = self.config.line_height_tolerance

        def compare(a, b):
            tolerance = (a.height + b.height) / 2 * tolerance_ratio
            if abs(a.y - b.y) > tolerance:
                return -1 if a.y > b.y else 1
            if a.x != b.x:
                return -1 if a.x < b.x else 1
            return 0

        ordered = sorted(fragments, key=cmp_to_key(compare))
        lines = []
        current = [ordered[0]]
        for frag in ordered[1:]:
            last = current[-1]
            if abs(frag.y - last.y) <= (frag.height + last.height) / 2 * tolerance_ratio:
                current.append(frag)
            else:
                lines.append(current)
                current = [frag]
        lines.append(current)
        return [sorted(line, key=lambda f: f.x) for line in lines]

    def group_lines_into_blocks(self, lines: List[List[TextFragment]]) -> List[Block]:
        blocks = []
        current = [lines[0]]
        for line in lines[1:]:
            if self.starts_new_block(current[-1], line):
                blocks.append(_make_block(current))
                current = [line]
            else:
                current.append(line)
        blocks.append(_make_block(current))
        return blocks

    def starts_new_block(self, prev: List[TextFragment], line: List[TextFragment]) -> bool:
        prev_box = BBox.from_fragments(prev)
        line_box = BBox.from_fragments(line)

        avg_height = (prev_box.height + line_box.height) / 2
        vertical_gap = prev_box.y - line_box.top
        if vertical_gap > avg_height * self.config.vertical_gap_threshold:
            return True

        overlaps = line_box.x < prev_box.right and line_box.right > prev_box.x
        if not overlaps:
            return True

        prev_font = float(np.mean([f.font_size for f in prev]))
        horizontal_gap = max(line_box.x - prev_box.right, prev_box.x - line_box.right, 0.0)
        return horizontal_gap > prev_font * self.config.horizontal_gap_threshold

    @staticmethod
    def merge_overlapping(blocks: List[Block]) -> List[Block]:
        """Single pass merge of blocks overlapping by more than 30% of the smaller one."""
        merged: List[Block] = []
        for block in blocks:
            target = None
            for candidate in merged:
                smaller = min(candidate.bbox.area, block.bbox.area)
                if smaller > 0 and candidate.bbox.intersection_area(block.bbox) > smaller * OVERLAP_MERGE_RATIO:
                    target = candidate
                    break
            if target is None:
                merged.append(block)
                continue
            lines = sorted(target.lines + block.lines, key=lambda line: -max(f.top for f in line))
            combined = _make_block(lines)
            target.lines, target.fragments, target.bbox = combined.lines, combined.fragments, combined.bbox
        return merged

    @staticmethod
    def sort_blocks(blocks: List[Block]) -> List[Block]:
        def compare(a, b):
            if abs(a.bbox.top - b.bbox.top) > ROW_TOLERANCE:
                return -1 if a.bbox.top > b.bbox.top else 1
            if a.bbox.x != b.bbox.x:
                return -1 if a.bbox.x < b.bbox.x else 1
            return 0
        return sorted(blocks, key=cmp_to_key(compare))
