import logging
import re
import unicodedata
from typing import Iterable, List, Optional, Sequence

from pdfminer.high_level import extract_pages
from pdfminer.layout import LTAnno, LTChar, LTContainer, LTItem, LTPage, LTTextLine

from core.pdf_miner_config import PDFMinerConfig
from processor.data_models import Direction, TextFragment
from processor.document_structure import PageFragments

logger = logging.getLogger(__name__)

# Subset fonts are embedded as "ABCDEF+FontName"
SUBSET_PREFIX_RE = re.compile(r'^[A-Z]{6}\+')

STRONG_RTL_CLASSES = ('R', 'AL')


def clean_font_name(fontname: str) -> str:
    return SUBSET_PREFIX_RE.sub('', fontname or '')


def detect_direction(text: str) -> Direction:
    """Direction of a run from the Unicode bidirectional class of its letters."""
    rtl = ltr = 0
    for ch in text:
        bidi = unicodedata.bidirectional(ch)
        if bidi in STRONG_RTL_CLASSES:
            rtl += 1
        elif bidi == 'L':
            ltr += 1
    if rtl == 0 and ltr == 0:
        return Direction.NEUTRAL
    return Direction.RTL if rtl > ltr else Direction.LTR


def _same_font(a: LTChar, b: LTChar) -> bool:
    return a.fontname == b.fontname and round(a.size, 1) == round(b.size, 1)


def _fragment_from_chars(chars: Sequence[LTChar], text: str) -> TextFragment:
    x0 = min(c.x0 for c in chars)
    y0 = min(c.y0 for c in chars)
    x1 = max(c.x1 for c in chars)
    y1 = max(c.y1 for c in chars)
    first = chars[0]
    return TextFragment(
        text=text,
        x=x0,
        y=y0,
        width=x1 - x0,
        height=y1 - y0,
        font_size=first.size,
        font_name=clean_font_name(first.fontname),
        direction=detect_direction(text),
    )


class PDFTextExtractor:
    """Turns PDF pages into positioned text fragments with pdfminer.six.

    By default a fragment is a run of characters on one text line that share
    font name and size. With ``char_level`` enabled every glyph becomes its
    own fragment, which is what the layout detectors see from extractors that
    position each character individually.
    """

    def __init__(self, config: Optional[PDFMinerConfig] = None):
        self.config = config or PDFMinerConfig()

    def extract_pages(self, pdf_path: str,
                      page_numbers: Optional[Iterable[int]] = None) -> List[PageFragments]:
        laparams = self.config.to_laparams()
        pages = []
        for page_index, page in enumerate(extract_pages(pdf_path, page_numbers=page_numbers,
                                                        laparams=laparams)):
            pages.append(self.page_to_fragments(page, page_index))
        return pages

    def page_to_fragments(self, page: LTPage, page_index: int) -> PageFragments:
        fragments: List[TextFragment] = []
        for chars in self.iter_char_sequences(page):
            if self.config.char_level:
                fragments.extend(self.chars_to_glyph_fragments(chars))
            else:
                fragments.extend(self.chars_to_run_fragments(chars))
        logger.debug(f"Page {page_index}: extracted {len(fragments)} fragments")
        return PageFragments(page_index=page_index, page_height=page.height,
                             page_width=page.width, fragments=fragments)

    @classmethod
    def iter_char_sequences(cls, item: LTItem):
        """Yield the characters of each text line, including pdfminer's inserted spaces.

        Characters that sit directly inside a figure, outside any text line,
        are yielded as one sequence per container.
        """
        if isinstance(item, LTTextLine):
            yield [obj for obj in item if isinstance(obj, (LTChar, LTAnno))]
            return
        if not isinstance(item, LTContainer):
            return

        loose = []
        for child in item:
            if isinstance(child, LTChar):
                loose.append(child)
            else:
                yield from cls.iter_char_sequences(child)
        if loose:
            yield loose

    @staticmethod
    def chars_to_run_fragments(chars: Sequence) -> List[TextFragment]:
        fragments = []
        run: List[LTChar] = []
        text: List[str] = []

        def flush():
            content = "".join(text).strip()
            if run and content:
                fragments.append(_fragment_from_chars(run, content))

        for obj in chars:
            if isinstance(obj, LTAnno):
                if run:
                    text.append(obj.get_text())
                continue
            if run and not _same_font(run[-1], obj):
                flush()
                run, text = [], []
            run.append(obj)
            text.append(obj.get_text())
        flush()
        return fragments

    @staticmethod
    def chars_to_glyph_fragments(chars: Sequence) -> List[TextFragment]:
        return [_fragment_from_chars([obj], obj.get_text())
                for obj in chars
                if isinstance(obj, LTChar) and obj.get_text().strip()]
