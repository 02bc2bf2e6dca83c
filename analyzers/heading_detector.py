import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

from analyzers.font_analyzer import FontAnalyzer
from analyzers.line_detector import Line, LineAlignment, LineLayout
from analyzers.paragraph_detector import Paragraph, ParagraphDetector, ParagraphLayout
from processor.data_models import TextFragment
from processor.patterns import NUMBERED_HEADING_PATTERNS
from utils.geometry_utils import BBox, regions_overlap

logger = logging.getLogger(__name__)

# Prefixes that always open a top-level heading regardless of dot count
TOP_LEVEL_PREFIX_RE = re.compile(r'^(?i:chapter|part)\b')
ANCHOR_STRIP_RE = re.compile(r'[^a-z0-9-]')


class HeadingLevel(Enum):
    UNKNOWN = 0
    H1 = 1
    H2 = 2
    H3 = 3
    H4 = 4
    H5 = 5
    H6 = 6

    def __str__(self) -> str:
        if self == HeadingLevel.UNKNOWN:
            return "unknown"
        return f"h{self.value}"

    def html_tag(self) -> str:
        if self == HeadingLevel.UNKNOWN:
            return "p"
        return f"h{self.value}"

    @classmethod
    def from_int(cls, level: int) -> "HeadingLevel":
        return cls(max(1, min(6, level)))


def _default_font_size_ratios() -> Dict[HeadingLevel, float]:
    return {
        HeadingLevel.H1: 1.8,
        HeadingLevel.H2: 1.5,
        HeadingLevel.H3: 1.3,
        HeadingLevel.H4: 1.15,
        HeadingLevel.H5: 1.1,
        HeadingLevel.H6: 1.05,
    }


@dataclass
class HeadingConfig:
    font_size_ratios: Dict[HeadingLevel, float] = field(default_factory=_default_font_size_ratios)
    max_heading_lines: int = 3
    min_spacing_ratio: float = 1.2
    bold_indicates_heading: bool = True
    all_caps_indicates_heading: bool = True
    center_aligned_boost: float = 0.1
    numbered_patterns: List[str] = field(default_factory=lambda: list(NUMBERED_HEADING_PATTERNS))
    min_confidence: float = 0.5


@dataclass
class Heading:
    level: HeadingLevel = HeadingLevel.UNKNOWN
    text: str = ""
    bbox: BBox = field(default_factory=BBox)
    lines: List[Line] = field(default_factory=list)
    fragments: List[TextFragment] = field(default_factory=list)
    index: int = 0
    font_size: float = 0.0
    is_bold: bool = False
    is_italic: bool = False
    is_all_caps: bool = False
    is_numbered: bool = False
    number_prefix: str = ""
    alignment: LineAlignment = LineAlignment.UNKNOWN
    confidence: float = 0.0
    spacing_before: float = 0.0
    spacing_after: float = 0.0

    def is_top_level(self) -> bool:
        return self.level == HeadingLevel.H1

    def word_count(self) -> int:
        return len(self.text.split())

    def get_clean_text(self) -> str:
        """Heading text without its number prefix."""
        if self.number_prefix and self.text.startswith(self.number_prefix):
            return self.text[len(self.number_prefix):].strip()
        return self.text

    def get_anchor_id(self) -> str:
        anchor = self.get_clean_text().lower().replace(" ", "-")
        anchor = ANCHOR_STRIP_RE.sub("", anchor)
        while "--" in anchor:
            anchor = anchor.replace("--", "-")
        return anchor.strip("-")

    def to_markdown(self) -> str:
        if self.level == HeadingLevel.UNKNOWN:
            return self.text
        return "#" * self.level.value + " " + self.text

    def contains_point(self, x: float, y: float) -> bool:
        return self.bbox.contains_point(x, y)


@dataclass
class OutlineEntry:
    heading: Heading
    children: List["OutlineEntry"] = field(default_factory=list)
    depth: int = 0


@dataclass
class HeadingLayout:
    headings: List[Heading] = field(default_factory=list)
    page_width: float = 0.0
    page_height: float = 0.0
    body_font_size: float = 0.0
    config: HeadingConfig = field(default_factory=HeadingConfig)

    def heading_count(self) -> int:
        return len(self.headings)

    def get_heading(self, index: int) -> Optional[Heading]:
        if index < 0 or index >= len(self.headings):
            return None
        return self.headings[index]

    def get_headings_at_level(self, level: HeadingLevel) -> List[Heading]:
        return [h for h in self.headings if h.level == level]

    def get_headings_in_range(self, min_level: HeadingLevel, max_level: HeadingLevel) -> List[Heading]:
        return [h for h in self.headings if min_level.value <= h.level.value <= max_level.value]

    def get_h1(self) -> List[Heading]:
        return self.get_headings_at_level(HeadingLevel.H1)

    def get_h2(self) -> List[Heading]:
        return self.get_headings_at_level(HeadingLevel.H2)

    def get_h3(self) -> List[Heading]:
        return self.get_headings_at_level(HeadingLevel.H3)

    def get_outline(self) -> List[OutlineEntry]:
        """Nest headings under the closest preceding heading of a higher level."""
        roots: List[OutlineEntry] = []
        stack: List[OutlineEntry] = []
        for heading in self.headings:
            entry = OutlineEntry(heading=heading, depth=max(heading.level.value - 1, 0))
            while stack and stack[-1].heading.level.value >= heading.level.value:
                stack.pop()
            if stack:
                stack[-1].children.append(entry)
            else:
                roots.append(entry)
            stack.append(entry)
        return roots

    def get_table_of_contents(self) -> str:
        lines = []
        for heading in self.headings:
            indent = "  " * max(heading.level.value - 1, 0)
            lines.append(f"{indent}{heading.text}\n")
        return "".join(lines)

    def get_markdown_toc(self) -> str:
        lines = []
        for heading in self.headings:
            indent = "  " * max(heading.level.value - 1, 0)
            lines.append(f"{indent}- {heading.text}\n")
        return "".join(lines)

    def find_heading_before(self, y: float) -> Optional[Heading]:
        """Last heading sitting above ``y`` in page coordinates."""
        result = None
        for heading in self.headings:
            if heading.bbox.y > y:
                result = heading
        return result

    def find_headings_in_region(self, region: BBox) -> List[Heading]:
        return [h for h in self.headings if regions_overlap(h.bbox, region)]


class HeadingDetector:
    """Scores paragraphs as heading candidates and assigns levels.

    Confidence is additive over typographic signals (relative font size, bold,
    all caps, numbering, centering, brevity). Accepted headings are then
    re-levelled by ranking the distinct font sizes in use.
    """

    def __init__(self, config: Optional[HeadingConfig] = None):
        self.config = config or HeadingConfig()
        self._numbered_patterns = [re.compile(p) for p in self.config.numbered_patterns]

    def detect_from_fragments(self, fragments: Sequence[TextFragment], page_width: float,
                              page_height: float) -> HeadingLayout:
        paragraphs = ParagraphDetector().detect_from_fragments(fragments, page_width, page_height)
        return self.detect_from_paragraphs(paragraphs)

    def detect_from_lines(self, line_layout: Optional[LineLayout]) -> HeadingLayout:
        return self.detect_from_paragraphs(ParagraphDetector().detect(line_layout))

    def detect_from_paragraphs(self, paragraph_layout: Optional[ParagraphLayout]) -> HeadingLayout:
        if paragraph_layout is None:
            return HeadingLayout(config=self.config)

        layout = HeadingLayout(page_width=paragraph_layout.page_width,
                               page_height=paragraph_layout.page_height,
                               config=self.config)
        paragraphs = paragraph_layout.paragraphs
        if not paragraphs:
            return layout

        body_font = self.compute_body_font_size(paragraphs)
        layout.body_font_size = body_font

        headings = []
        for paragraph in paragraphs:
            if not paragraph.text.strip():
                continue
            if paragraph.line_count() > self.config.max_heading_lines and not paragraph.is_heading():
                continue
            heading = self.analyze_paragraph(paragraph, body_font)
            if heading.confidence >= self.config.min_confidence:
                headings.append(heading)

        self.refine_levels(headings)
        layout.headings = headings
        logger.debug(f"Detected {len(headings)} headings (body font {body_font:.1f}pt)")
        return layout

    @staticmethod
    def compute_body_font_size(paragraphs: Sequence[Paragraph]) -> float:
        return FontAnalyzer.body_font_size(
            (p.average_font_size, p.line_count()) for p in paragraphs)

    def match_number_prefix(self, text: str) -> str:
        for pattern in self._numbered_patterns:
            match = pattern.match(text)
            if match:
                return match.group(0).strip()
        return ""

    def analyze_paragraph(self, paragraph: Paragraph, body_font: float) -> Heading:
        fragments = [frag for line in paragraph.lines for frag in line.fragments]
        text = paragraph.text.strip()
        heading = Heading(
            text=text,
            bbox=paragraph.bbox,
            lines=paragraph.lines,
            fragments=fragments,
            index=paragraph.index,
            font_size=paragraph.average_font_size,
            is_bold=FontAnalyzer.is_bold(fragments),
            is_italic=FontAnalyzer.is_italic(fragments),
            is_all_caps=FontAnalyzer.is_all_caps(text),
            number_prefix=self.match_number_prefix(text),
            alignment=paragraph.alignment,
            spacing_before=paragraph.spacing_before,
            spacing_after=paragraph.spacing_after,
        )
        heading.is_numbered = bool(heading.number_prefix)

        font_ratio = paragraph.average_font_size / body_font if body_font > 0 else 1.0
        heading.confidence = self.score(heading, font_ratio, paragraph.line_count())
        heading.level = self.determine_level(heading, font_ratio)
        return heading

    def score(self, heading: Heading, font_ratio: float, line_count: int) -> float:
        confidence = 0.0
        if font_ratio >= 1.5:
            confidence += 0.5
        elif font_ratio >= 1.2:
            confidence += 0.35
        elif font_ratio >= 1.1:
            confidence += 0.2
        elif font_ratio >= 1.05:
            confidence += 0.1

        if self.config.bold_indicates_heading and heading.is_bold:
            confidence += 0.2
        if self.config.all_caps_indicates_heading and heading.is_all_caps:
            confidence += 0.15
        if heading.is_numbered:
            confidence += 0.2
        if heading.alignment == LineAlignment.CENTER:
            confidence += self.config.center_aligned_boost

        words = heading.word_count()
        if words <= 10:
            confidence += 0.1
        elif words <= 20:
            confidence += 0.05

        if line_count == 1:
            confidence += 0.1
        elif line_count <= 2:
            confidence += 0.05

        return min(confidence, 1.0)

    def determine_level(self, heading: Heading, font_ratio: float) -> HeadingLevel:
        if heading.is_numbered:
            prefix = heading.number_prefix.rstrip(".")
            dots = prefix.count(".")
            if dots == 0 and TOP_LEVEL_PREFIX_RE.match(prefix):
                return HeadingLevel.H1
            return HeadingLevel.from_int(dots + 1)

        for level in sorted(self.config.font_size_ratios, key=lambda l: l.value):
            if font_ratio >= self.config.font_size_ratios[level]:
                return level
        return HeadingLevel.H6

    @staticmethod
    def refine_levels(headings: List[Heading]) -> None:
        """Remap levels to the rank of each heading's font size among all headings."""
        if not headings:
            return
        buckets = sorted({FontAnalyzer.font_size_bucket(h.font_size) for h in headings}, reverse=True)
        rank = {bucket: i + 1 for i, bucket in enumerate(buckets)}
        for heading in headings:
            heading.level = HeadingLevel.from_int(rank[FontAnalyzer.font_size_bucket(heading.font_size)])
