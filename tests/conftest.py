"""Shared fragment factories for the layout analysis tests.

Coordinates follow PDF conventions: Y grows upward and ``y`` is the bottom
edge of a fragment. Pages default to US Letter (612 x 792).
"""

from typing import List, Sequence

import pytest

from processor.data_models import Direction, TextFragment
from processor.document_structure import PageFragments

PAGE_WIDTH = 612.0
PAGE_HEIGHT = 792.0


def _fragment(text: str, x: float, y: float, width: float = None, height: float = 12.0,
              font_size: float = None, font_name: str = "Helvetica",
              direction: Direction = Direction.LTR) -> TextFragment:
    if font_size is None:
        font_size = height
    if width is None:
        width = len(text) * font_size * 0.5
    return TextFragment(text=text, x=x, y=y, width=width, height=height, font_size=font_size,
                        font_name=font_name, direction=direction)


def _column(texts: Sequence[str], x: float, top: float, step: float = 14.0, width: float = 200.0,
            **kwargs) -> List[TextFragment]:
    return [_fragment(text, x, top - i * step, width=width, **kwargs) for i, text in enumerate(texts)]


@pytest.fixture
def make_fragment():
    """Factory for a single fragment; width defaults to half the font size per character."""
    return _fragment


@pytest.fixture
def make_column():
    """Factory for a stack of equal-width lines, one fragment each, ``step`` points apart."""
    return _column


@pytest.fixture
def page_size():
    return PAGE_WIDTH, PAGE_HEIGHT


@pytest.fixture
def body_paragraph():
    """Scenario B: three 12pt lines at y=700/686/672 with 2pt gaps."""
    return _column(["The quick brown fox jumps over",
                    "the lazy dog while the cat",
                    "watches from the garden wall."], x=72, top=700, width=300)


@pytest.fixture
def heading_page():
    """Scenario C: a 24pt title followed by three 12pt body lines."""
    title = _fragment("Introduction", 72, 700, width=150, height=24)
    body = _column(["This document describes the layout analysis of",
                    "text fragments extracted from portable documents and",
                    "explains how the detected structure can be consumed."],
                   x=72, top=660, width=300)
    return [title] + body


@pytest.fixture
def numbered_list():
    """Scenario D: "1. First", "2. Second", "3. Third" on consecutive lines."""
    return [
        _fragment("1. First", 72, 700, width=50),
        _fragment("2. Second", 72, 686, width=60),
        _fragment("3. Third", 72, 672, width=50),
    ]


@pytest.fixture
def two_column_page():
    """Two 200pt wide columns at x=50 and x=350 with three lines each."""
    left = _column(["Left one", "Left two", "Left three"], x=50, top=700)
    right = _column(["Right one", "Right two", "Right three"], x=350, top=700)
    return left + right


@pytest.fixture
def make_report_pages():
    """Factory for pages sharing a "Company Report 2024" header and a page number footer."""
    def factory(count: int = 3, header_pages=None, with_footer: bool = True,
                first_index: int = 0) -> List[PageFragments]:
        pages = []
        for i in range(count):
            fragments = []
            if header_pages is None or i in header_pages:
                fragments.append(_fragment("Company Report 2024", 72, 760, width=150))
            fragments.extend(_column([f"Body text of page {i + 1} starts here",
                                      "and continues on a second line."], x=72, top=400, width=300))
            if with_footer:
                fragments.append(_fragment(f"Page {i + 1}", 290, 30, width=40))
            pages.append(PageFragments(page_index=first_index + i, page_height=PAGE_HEIGHT,
                                       page_width=PAGE_WIDTH, fragments=fragments))
        return pages
    return factory
