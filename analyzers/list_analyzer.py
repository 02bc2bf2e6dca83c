import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from processor.patterns import (
    LETTER_LIST_PATTERNS,
    NUMBERED_LIST_PATTERNS,
    ROMAN_LIST_PATTERNS,
)


class ListType(Enum):
    UNKNOWN = "unknown"
    BULLET = "bullet"
    NUMBERED = "numbered"
    LETTERED = "lettered"
    ROMAN = "roman"
    CHECKBOX = "checkbox"

    def __str__(self) -> str:
        return self.value


class BulletStyle(Enum):
    UNKNOWN = "unknown"
    DISC = "disc"
    CIRCLE = "circle"
    SQUARE = "square"
    DASH = "dash"
    ASTERISK = "asterisk"
    ARROW = "arrow"
    TRIANGLE = "triangle"
    CHECK_EMPTY = "checkbox-empty"
    CHECK_FILLED = "checkbox-filled"

    def __str__(self) -> str:
        return self.value


BULLET_STYLES = {
    '•': BulletStyle.DISC, '●': BulletStyle.DISC,
    '○': BulletStyle.CIRCLE, '◦': BulletStyle.CIRCLE, '◉': BulletStyle.CIRCLE,
    '■': BulletStyle.SQUARE, '□': BulletStyle.SQUARE, '▪': BulletStyle.SQUARE, '▫': BulletStyle.SQUARE,
    '-': BulletStyle.DASH, '–': BulletStyle.DASH, '—': BulletStyle.DASH,
    '*': BulletStyle.ASTERISK, '✱': BulletStyle.ASTERISK, '✲': BulletStyle.ASTERISK,
    '→': BulletStyle.ARROW, '▶': BulletStyle.ARROW, '►': BulletStyle.ARROW,
    '▸': BulletStyle.ARROW, '➤': BulletStyle.ARROW, '➜': BulletStyle.ARROW,
    '‣': BulletStyle.TRIANGLE, '⁃': BulletStyle.TRIANGLE,
    '☐': BulletStyle.CHECK_EMPTY,
    '☑': BulletStyle.CHECK_FILLED, '✓': BulletStyle.CHECK_FILLED, '✔': BulletStyle.CHECK_FILLED,
}

# Cross marks open a list item but carry no known bullet style
DEFAULT_BULLET_CHARACTERS = ''.join(BULLET_STYLES) + '✗✘'

ROMAN_VALUES = {'I': 1, 'V': 5, 'X': 10, 'L': 50, 'C': 100, 'D': 500, 'M': 1000}
MAX_ROMAN_LENGTH = 15


@dataclass
class ListMarker:
    """The parsed list marker at the start of a paragraph."""
    list_type: ListType
    prefix: str
    clean_text: str
    bullet_style: BulletStyle = BulletStyle.UNKNOWN
    number: int = 0


class ListAnalyzer:
    """Recognizes bullet, numbered, lettered and roman list markers."""

    def __init__(self, bullet_characters: Iterable[str] = DEFAULT_BULLET_CHARACTERS,
                 numbered_patterns: Iterable[str] = NUMBERED_LIST_PATTERNS,
                 letter_patterns: Iterable[str] = LETTER_LIST_PATTERNS,
                 roman_patterns: Iterable[str] = ROMAN_LIST_PATTERNS):
        self.bullet_characters = frozenset(bullet_characters)
        self.numbered_patterns = [re.compile(p) for p in numbered_patterns]
        self.letter_patterns = [re.compile(p) for p in letter_patterns]
        self.roman_patterns = [re.compile(p) for p in roman_patterns]

    def parse_marker(self, text: str) -> Optional[ListMarker]:
        text = text.strip()
        if not text:
            return None
        return self.detect_bullet(text) or self.detect_numbered(text)

    def detect_bullet(self, text: str) -> Optional[ListMarker]:
        first = text[0]
        if first not in self.bullet_characters:
            return None
        style = self.get_bullet_style(first)
        list_type = ListType.BULLET
        if style in (BulletStyle.CHECK_EMPTY, BulletStyle.CHECK_FILLED):
            list_type = ListType.CHECKBOX
        return ListMarker(list_type=list_type, prefix=first, clean_text=text[1:].strip(),
                          bullet_style=style)

    def detect_numbered(self, text: str) -> Optional[ListMarker]:
        for pattern in self.numbered_patterns:
            match = pattern.match(text)
            if match:
                return self._marker(ListType.NUMBERED, text, match, int(match.group(1)))

        for pattern in self.letter_patterns:
            match = pattern.match(text)
            if match:
                return self._marker(ListType.LETTERED, text, match, self.letter_to_number(match.group(1)))

        for pattern in self.roman_patterns:
            match = pattern.match(text)
            if match and self.is_valid_roman(match.group(1)):
                return self._marker(ListType.ROMAN, text, match, self.roman_to_number(match.group(1)))

        return None

    @staticmethod
    def _marker(list_type: ListType, text: str, match, number: int) -> ListMarker:
        prefix = match.group(0)
        return ListMarker(list_type=list_type, prefix=prefix.strip(),
                          clean_text=text[len(prefix):].strip(), number=number)

    @staticmethod
    def get_bullet_style(char: str) -> BulletStyle:
        return BULLET_STYLES.get(char, BulletStyle.UNKNOWN)

    @staticmethod
    def letter_to_number(letter: str) -> int:
        """a=1 ... z=26, case-insensitive."""
        if not letter:
            return 0
        ch = letter[0].lower()
        if 'a' <= ch <= 'z':
            return ord(ch) - ord('a') + 1
        return 0

    @staticmethod
    def is_valid_roman(numeral: str) -> bool:
        numeral = numeral.upper()
        return 1 <= len(numeral) <= MAX_ROMAN_LENGTH and all(ch in ROMAN_VALUES for ch in numeral)

    @staticmethod
    def roman_to_number(numeral: str) -> int:
        result = 0
        prev = 0
        for ch in reversed(numeral.upper()):
            value = ROMAN_VALUES.get(ch, 0)
            if value < prev:
                result -= value
            else:
                result += value
            prev = value
        return result
