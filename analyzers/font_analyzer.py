from collections import Counter
from typing import Dict, Iterable, Sequence

from processor.data_models import TextFragment


class FontAnalyzer:
    BOLD_INDICATORS = ('bold', 'black', 'heavy', 'semibold', 'demibold')
    ITALIC_INDICATORS = ('italic', 'oblique')

    @staticmethod
    def is_font_bold(font_name: str) -> bool:
        font_name_lower = font_name.lower()
        return any(indicator in font_name_lower for indicator in FontAnalyzer.BOLD_INDICATORS)

    @staticmethod
    def is_font_italic(font_name: str) -> bool:
        font_name_lower = font_name.lower()
        return any(indicator in font_name_lower for indicator in FontAnalyzer.ITALIC_INDICATORS)

    @staticmethod
    def is_bold(fragments: Sequence[TextFragment]) -> bool:
        """True when any fragment uses a bold face."""
        return any(FontAnalyzer.is_font_bold(f.font_name) for f in fragments)

    @staticmethod
    def is_italic(fragments: Sequence[TextFragment]) -> bool:
        return any(FontAnalyzer.is_font_italic(f.font_name) for f in fragments)

    @staticmethod
    def is_all_caps(text: str) -> bool:
        """At least three ASCII letters, 90% or more of them upper case."""
        letters = [ch for ch in text if ch.isascii() and ch.isalpha()]
        if len(letters) < 3:
            return False
        upper = sum(1 for ch in letters if ch.isupper())
        lower = len(letters) - upper
        return lower == 0 or upper / len(letters) > 0.9

    @staticmethod
    def font_size_bucket(size: float) -> int:
        """0.1pt resolution key for a font size."""
        return int(round(size * 10))

    @staticmethod
    def body_font_size(weighted_sizes: Iterable) -> float:
        """Most common font size, each ``(size, weight)`` pair counted ``weight`` times.

        Ties go to the size seen first. Returns 0 when there is nothing to count.
        """
        size_counter: Dict[int, float] = Counter()
        for size, weight in weighted_sizes:
            if size <= 0:
                continue
            size_counter[FontAnalyzer.font_size_bucket(size)] += weight
        if not size_counter:
            return 0.0
        bucket = max(size_counter.items(), key=lambda x: x[1])[0]
        return bucket / 10
