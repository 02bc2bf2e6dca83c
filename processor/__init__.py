from .data_models import (
    Direction,
    TextFragment,
    ElementType,
    TextAlignment,
    Element,
    ParagraphElement,
    HeadingElement,
    ListElement,
    ListElementItem
)
from .document_structure import (
    HeaderFooterConfig,
    HeaderFooterDetector,
    HeaderFooterRegion,
    HeaderFooterResult,
    PageFragments,
    RegionType
)

__all__ = [
    'Direction',
    'TextFragment',
    'ElementType',
    'TextAlignment',
    'Element',
    'ParagraphElement',
    'HeadingElement',
    'ListElement',
    'ListElementItem',
    'HeaderFooterConfig',
    'HeaderFooterDetector',
    'HeaderFooterRegion',
    'HeaderFooterResult',
    'PageFragments',
    'RegionType'
]
