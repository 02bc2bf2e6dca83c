import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from functools import cmp_to_key
from typing import Dict, List, Optional, Sequence

from processor.data_models import TextFragment
from processor.patterns import DIGIT_RUN_RE, is_page_number_pattern, normalize_digits
from utils.geometry_utils import BBox

logger = logging.getLogger(__name__)

PAGE_NUMBER_TEXT = "[Page Number]"
CHARACTER_LEVEL_MAX_LENGTH = 2.0


class RegionType(Enum):
    HEADER = "header"
    FOOTER = "footer"

    def __str__(self) -> str:
        return self.value


@dataclass
class HeaderFooterConfig:
    header_region_height: float = 72.0
    footer_region_height: float = 72.0
    min_occurrence_ratio: float = 0.5
    position_tolerance: float = 5.0
    x_position_tolerance: float = 10.0
    min_pages: int = 2


@dataclass
class PageFragments:
    page_index: int
    page_height: float
    page_width: float
    fragments: List[TextFragment] = field(default_factory=list)


@dataclass
class HeaderFooterRegion:
    """Text repeating at the same place across pages.

    ``bbox`` is measured from the region's edge: distance from the top of the
    page for headers, from the bottom for footers.
    """
    type: RegionType
    bbox: BBox = field(default_factory=BBox)
    text: str = ""
    is_page_number: bool = False
    confidence: float = 0.0
    page_indices: List[int] = field(default_factory=list)


@dataclass
class _Candidate:
    text: str
    x: float
    y: float
    width: float
    height: float
    page_index: int


def normalize_for_comparison(text: str) -> str:
    return normalize_digits(text)


def is_character_level(fragments: Sequence[TextFragment]) -> bool:
    """True when fragments average two characters or fewer, one glyph per fragment."""
    if not fragments:
        return False
    total = sum(len(f.text) for f in fragments)
    return total / len(fragments) <= CHARACTER_LEVEL_MAX_LENGTH


def assemble_fragments_into_lines(fragments: Sequence[TextFragment]) -> List[TextFragment]:
    """Merge glyph-level fragments into one fragment per visual line."""
    if not fragments:
        return []

    def compare(a, b):
        y_diff = a.y - b.y
        if abs(y_diff) > a.height * 0.5:
            return -1 if y_diff > 0 else 1
        if a.x != b.x:
            return -1 if a.x < b.x else 1
        return 0

    ordered = sorted(fragments, key=cmp_to_key(compare))
    lines: List[List[TextFragment]] = []
    current = [ordered[0]]
    for frag in ordered[1:]:
        last = current[-1]
        if abs(frag.y - last.y) <= last.height * 0.5:
            current.append(frag)
        else:
            lines.append(current)
            current = [frag]
    lines.append(current)

    assembled = []
    for line in lines:
        line = sorted(line, key=lambda f: f.x)
        parts = []
        last_end = 0.0
        for i, frag in enumerate(line):
            if i > 0 and frag.x - last_end > frag.font_size * 0.3:
                parts.append(" ")
            parts.append(frag.text)
            last_end = frag.right
        first, last = line[0], line[-1]
        min_y = min(f.y for f in line)
        max_y = max(f.top for f in line)
        assembled.append(TextFragment(
            text="".join(parts),
            x=first.x,
            y=first.y,
            width=last.right - first.x,
            height=max_y - min_y,
            font_size=first.font_size,
            font_name=first.font_name,
            direction=first.direction,
        ))
    return assembled


def contains_page_number_sequence(texts: Sequence[str]) -> bool:
    """True when the digit runs across ``texts`` mostly step by exactly one."""
    if len(texts) < 2:
        return False
    numbers = sorted(int(run) for text in texts for run in DIGIT_RUN_RE.findall(text))
    if len(numbers) < 2:
        return False
    sequential = sum(1 for a, b in zip(numbers, numbers[1:]) if b - a == 1)
    return sequential >= len(numbers) // 2


def texts_match(fragment_text: str, region_text: str, is_page_number: bool) -> bool:
    fragment_text = fragment_text.strip()
    normalized = normalize_for_comparison(fragment_text)
    if is_page_number:
        return is_page_number_pattern(normalized)
    return fragment_text == region_text or normalized == normalize_for_comparison(region_text)


@dataclass
class HeaderFooterResult:
    headers: List[HeaderFooterRegion] = field(default_factory=list)
    footers: List[HeaderFooterRegion] = field(default_factory=list)
    config: HeaderFooterConfig = field(default_factory=HeaderFooterConfig)

    def has_headers(self) -> bool:
        return bool(self.headers)

    def has_footers(self) -> bool:
        return bool(self.footers)

    def has_headers_or_footers(self) -> bool:
        return self.has_headers() or self.has_footers()

    def get_header_texts(self) -> List[str]:
        return [region.text for region in self.headers]

    def get_footer_texts(self) -> List[str]:
        return [region.text for region in self.footers]

    def summary(self) -> str:
        if not self.has_headers_or_footers():
            return "No headers or footers detected"
        parts = []
        if self.headers:
            parts.append("Headers: " + ", ".join(self.get_header_texts()))
        if self.footers:
            parts.append("Footers: " + ", ".join(self.get_footer_texts()))
        return "; ".join(parts)

    def filter_fragments(self, page_index: int, fragments: Sequence[TextFragment],
                         page_height: float) -> List[TextFragment]:
        """Drop the fragments of one page that belong to a detected header or footer."""
        if not fragments:
            return list(fragments)

        char_level = is_character_level(fragments)
        min_y = min(f.y for f in fragments)
        max_y = max(f.top for f in fragments)
        content_height = max_y - min_y
        if content_height <= 0:
            content_height = page_height
        inverted = max_y > page_height

        header_region = self.config.header_region_height
        footer_region = self.config.footer_region_height
        if page_height > 0 and content_height > page_height:
            scale = content_height / page_height
            header_region *= scale
            footer_region *= scale

        kept = []
        for frag in fragments:
            if self._is_header_or_footer(page_index, frag, min_y, max_y, header_region,
                                         footer_region, inverted, char_level):
                continue
            kept.append(frag)
        if len(kept) != len(fragments):
            logger.debug(f"Page {page_index}: filtered {len(fragments) - len(kept)} header/footer fragments")
        return kept

    def _is_header_or_footer(self, page_index: int, frag: TextFragment, min_y: float, max_y: float,
                             header_region: float, footer_region: float, inverted: bool,
                             char_level: bool) -> bool:
        for header in self.headers:
            if page_index not in header.page_indices:
                continue
            from_top = frag.y - min_y if inverted else max_y - frag.top
            if from_top < header_region and (
                    char_level or texts_match(frag.text, header.text, header.is_page_number)):
                return True

        for footer in self.footers:
            if page_index not in footer.page_indices:
                continue
            from_bottom = max_y - frag.top if inverted else frag.y - min_y
            if from_bottom < footer_region and (
                    char_level or texts_match(frag.text, footer.text, footer.is_page_number)):
                return True
        return False


class HeaderFooterDetector:
    """Finds text that repeats at the top or bottom of many pages."""

    def __init__(self, config: Optional[HeaderFooterConfig] = None):
        self.config = config or HeaderFooterConfig()

    def detect(self, pages: Sequence[PageFragments]) -> HeaderFooterResult:
        if len(pages) < self.config.min_pages:
            return HeaderFooterResult(config=self.config)

        processed = self.preprocess_pages(pages)
        headers = self.find_repeating_patterns(
            self.extract_candidates(processed, RegionType.HEADER), len(processed), RegionType.HEADER)
        footers = self.find_repeating_patterns(
            self.extract_candidates(processed, RegionType.FOOTER), len(processed), RegionType.FOOTER)

        logger.debug(f"Detected {len(headers)} headers and {len(footers)} footers over {len(pages)} pages")
        return HeaderFooterResult(headers=headers, footers=footers, config=self.config)

    @staticmethod
    def preprocess_pages(pages: Sequence[PageFragments]) -> List[PageFragments]:
        processed = []
        for page in pages:
            if is_character_level(page.fragments):
                page = PageFragments(page_index=page.page_index, page_height=page.page_height,
                                     page_width=page.page_width,
                                     fragments=assemble_fragments_into_lines(page.fragments))
            processed.append(page)
        return processed

    def extract_candidates(self, pages: Sequence[PageFragments], region_type: RegionType) -> List[_Candidate]:
        candidates = []
        for page in pages:
            if not page.fragments:
                continue

            min_y = min(f.y for f in page.fragments)
            max_y = max(f.top for f in page.fragments)
            content_height = max_y - min_y
            if content_height <= 0:
                content_height = page.page_height

            # Content running past the page height means Y grows downward
            inverted = max_y > page.page_height
            ref_min, ref_max = 0.0, page.page_height
            header_region = self.config.header_region_height
            footer_region = self.config.footer_region_height
            if inverted:
                ref_min, ref_max = min_y, max_y
                scale = content_height / page.page_height if page.page_height > 0 else 1.0
                header_region *= scale
                footer_region *= scale

            for frag in page.fragments:
                if region_type == RegionType.HEADER:
                    distance = frag.y - ref_min if inverted else ref_max - frag.top
                    in_region = distance < header_region
                else:
                    distance = ref_max - frag.top if inverted else frag.y - ref_min
                    in_region = distance < footer_region
                if in_region:
                    candidates.append(_Candidate(
                        text=frag.text.strip(),
                        x=frag.x,
                        y=distance,
                        width=frag.width,
                        height=frag.height,
                        page_index=page.page_index,
                    ))
        return candidates

    def find_repeating_patterns(self, candidates: List[_Candidate], total_pages: int,
                                region_type: RegionType) -> List[HeaderFooterRegion]:
        if not candidates:
            return []

        groups: Dict[str, List[_Candidate]] = defaultdict(list)
        for candidate in candidates:
            groups[normalize_for_comparison(candidate.text)].append(candidate)

        min_occurrences = max(2, int(total_pages * self.config.min_occurrence_ratio))
        regions = []
        for normalized, group in groups.items():
            if len(normalized) <= 2 and not is_page_number_pattern(normalized):
                continue

            pages = sorted({c.page_index for c in group})
            if len(pages) < min_occurrences:
                continue
            if not self.has_consistent_position(group):
                continue

            is_page_number = (is_page_number_pattern(normalized)
                              or contains_page_number_sequence([c.text for c in group]))
            regions.append(HeaderFooterRegion(
                type=region_type,
                bbox=BBox.from_fragments(group),
                text=PAGE_NUMBER_TEXT if is_page_number else group[0].text,
                is_page_number=is_page_number,
                confidence=self.calculate_confidence(group, total_pages),
                page_indices=pages,
            ))

        regions.sort(key=lambda r: -r.confidence)
        return regions

    def has_consistent_position(self, group: Sequence[_Candidate]) -> bool:
        if len(group) < 2:
            return False
        ref = group[0]
        return all(abs(c.y - ref.y) <= self.config.position_tolerance
                   and abs(c.x - ref.x) <= self.config.x_position_tolerance
                   for c in group[1:])

    def calculate_confidence(self, group: Sequence[_Candidate], total_pages: int) -> float:
        if total_pages == 0:
            return 0.0
        ratio = len({c.page_index for c in group}) / total_pages
        bonus = 0.1 if self.has_consistent_position(group) else 0.0
        return min(ratio * 0.9 + bonus, 1.0)
