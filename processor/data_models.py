from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from utils.geometry_utils import BBox


class Direction(Enum):
    """Writing direction tag attached to a fragment by the upstream extractor."""
    LTR = "ltr"
    RTL = "rtl"
    NEUTRAL = "neutral"

    @classmethod
    def parse(cls, value: Any) -> "Direction":
        if isinstance(value, Direction):
            return value
        if value is None:
            return cls.LTR
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown text direction: {value!r}") from None


@dataclass(frozen=True)
class TextFragment:
    """A positioned run of text with no structural meaning of its own."""
    text: str
    x: float
    y: float
    width: float
    height: float
    font_size: float
    font_name: str = ""
    direction: Direction = Direction.LTR

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def top(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def bbox(self) -> BBox:
        return BBox(self.x, self.y, self.width, self.height)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'text': self.text,
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height,
            'font_size': self.font_size,
            'font_name': self.font_name,
            'direction': self.direction.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TextFragment":
        """Build a fragment from a JSON mapping.

        ``font_size`` falls back to ``height`` when absent; ``fontSize`` and
        ``fontName`` spellings are accepted as well.
        """
        try:
            height = float(data['height'])
            font_size = data.get('font_size', data.get('fontSize', height))
            return cls(
                text=str(data['text']),
                x=float(data['x']),
                y=float(data['y']),
                width=float(data['width']),
                height=height,
                font_size=float(font_size),
                font_name=str(data.get('font_name', data.get('fontName', '')) or ''),
                direction=Direction.parse(data.get('direction')),
            )
        except KeyError as e:
            raise ValueError(f"Fragment is missing required field {e.args[0]!r}: {data!r}") from e
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid fragment {data!r}: {e}") from e


class ElementType(Enum):
    """Types of page elements produced by layout analysis."""
    UNKNOWN = "unknown"
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    LIST = "list"
    TABLE = "table"
    IMAGE = "image"
    FIGURE = "figure"
    CAPTION = "caption"

    def __str__(self) -> str:
        return self.value


class TextAlignment(Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    JUSTIFY = "justify"


@dataclass
class Element:
    text: str
    bbox: BBox = field(default_factory=BBox)
    z_order: int = 0

    @property
    def element_type(self) -> ElementType:
        return ElementType.UNKNOWN


@dataclass
class ParagraphElement(Element):
    font_size: float = 12.0
    alignment: TextAlignment = TextAlignment.LEFT

    @property
    def element_type(self) -> ElementType:
        return ElementType.PARAGRAPH


@dataclass
class HeadingElement(Element):
    level: int = 1
    font_size: float = 12.0

    @property
    def element_type(self) -> ElementType:
        return ElementType.HEADING


@dataclass
class ListElementItem:
    text: str
    level: int = 0


@dataclass
class ListElement(Element):
    items: List[ListElementItem] = field(default_factory=list)
    ordered: bool = False

    @property
    def element_type(self) -> ElementType:
        return ElementType.LIST
