import logging
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

from pdfminer.layout import LAParams

logger = logging.getLogger(__name__)


@dataclass
class PDFMinerConfig:
    char_margin: float = 2.0  # Space between chars to be considered separate
    line_margin: float = 0.5  # Space between lines within a text box
    word_margin: float = 0.1  # Space between words
    line_overlap: float = 0.5  # Ratio of overlap for lines to be combined
    boxes_flow: float = 0.5   # Text flow direction (0.5 = mixed)
    detect_vertical: bool = False  # Whether to detect vertical text
    all_texts: bool = True    # Force all text to be extracted
    # One fragment per glyph instead of one per font run
    char_level: bool = False

    def to_laparams(self) -> LAParams:
        return LAParams(
            char_margin=self.char_margin,
            line_margin=self.line_margin,
            word_margin=self.word_margin,
            line_overlap=self.line_overlap,
            boxes_flow=self.boxes_flow,
            detect_vertical=self.detect_vertical,
            all_texts=self.all_texts
        )

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'PDFMinerConfig':
        """Build a config from the ``pdfminer`` section of a configuration file.

        A ``mode`` key of ``strict`` or ``loose`` selects a preset that the
        remaining keys then override.
        """
        if not data:
            return cls()
        if not isinstance(data, Mapping):
            raise ValueError("The 'pdfminer' configuration section must be a mapping")

        mode = data.get('mode', 'default')
        presets = {'default': cls, 'strict': cls.strict_mode, 'loose': cls.loose_mode}
        if mode not in presets:
            raise ValueError(f"Unknown pdfminer mode: {mode!r}")
        config = presets[mode]()

        known = {f.name for f in fields(cls)}
        for key, value in data.items():
            if key == 'mode':
                continue
            if key not in known:
                logger.warning(f"Ignoring unknown pdfminer option: {key}")
                continue
            setattr(config, key, value)
        return config

    @classmethod
    def strict_mode(cls) -> 'PDFMinerConfig':
        """Strict mode: Less likely to merge text runs"""
        return cls(
            char_margin=1.0,
            line_margin=0.3,
            word_margin=0.1,
            line_overlap=0.3
        )

    @classmethod
    def loose_mode(cls) -> 'PDFMinerConfig':
        """Loose mode: More likely to merge text runs"""
        return cls(
            char_margin=3.0,
            line_margin=0.7,
            word_margin=0.2,
            line_overlap=0.7
        )
