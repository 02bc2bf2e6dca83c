import re

# Glyphs that open a list item when they are the first character of a line
LIST_BULLET_GLYPHS = frozenset('•●○◦◉■□▪▫‣⁃→▶►▸➤➜☐☑✓✔✗✘-*+')

# Line-level list item patterns used while grouping lines into paragraphs
LIST_ITEM_PATTERNS = [
    r'^[•\-*→►◦‣]\s',           # Bullet points
    r'^\d+[.)]\s',              # Numbered: 1. or 1)
    r'^[a-zA-Z][.)]\s',         # Lettered: a. or a)
    r'^[ivxIVX]+[.)]\s',        # Roman numerals
]

# Heading prefixes; the matched text becomes the heading's number prefix
NUMBERED_HEADING_PATTERNS = [
    r'^(?i:chapter|section|part)\s+\d+',
    r'^\d+\.\s',
    r'^\d+\.\d+\s',
    r'^\d+\.\d+\.\d+\s',
    r'^[IVXLCDM]+\.\s',
    r'^[A-Z]\.\s',
]

# List marker families, tried in this order after bullet glyphs
NUMBERED_LIST_PATTERNS = [
    r'^(\d+)[.)]\s*',
    r'^(\d+)\s*$',
]
LETTER_LIST_PATTERNS = [
    r'^([a-zA-Z])[.)]\s*',
]
ROMAN_LIST_PATTERNS = [
    r'^([ivxlcdmIVXLCDM]+)[.)]\s*',
]

# Page number placeholders after digit runs are replaced by '#'
PAGE_NUMBER_PATTERNS = [
    '#',
    'Page #',
    '- # -',
    '# of #',
    'Page # of #',
    '#/#',
    'p. #',
    'p.#',
    'pg #',
    'pg. #',
]

DIGIT_RUN_RE = re.compile(r'\d+')

_PAGE_NUMBER_FORMS = frozenset(p.lower() for p in PAGE_NUMBER_PATTERNS)


def matches_any_pattern(text: str, patterns: list) -> bool:
    """Check if text matches any of the compiled patterns."""
    return any(pattern.search(text) for pattern in patterns)


def is_list_item_start(text: str) -> bool:
    """Check if a line opens with a list marker.

    Accepts a bullet glyph, one to three digits followed by '.' or ')', or a
    single letter followed by '.' or ')'.
    """
    text = text.strip()
    if not text:
        return False
    if text[0] in LIST_BULLET_GLYPHS:
        return True
    if len(text) < 2:
        return False
    if text[0].isascii() and text[0].isdigit():
        for ch in text[1:4]:
            if ch in '.)':
                return True
            if not (ch.isascii() and ch.isdigit()):
                break
    if text[0].isalpha() and text[1] in '.)':
        return True
    return False


def normalize_digits(text: str) -> str:
    """Replace every run of digits with '#'."""
    return DIGIT_RUN_RE.sub('#', text)


def is_page_number_pattern(normalized_text: str) -> bool:
    """Check a digit-normalized string against the page number placeholders."""
    return normalized_text.strip().lower() in _PAGE_NUMBER_FORMS
