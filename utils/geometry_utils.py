from dataclasses import dataclass
from typing import Iterable, Sequence


@dataclass(frozen=True)
class BBox:
    """Axis-aligned rectangle in page space (Y grows upward, ``y`` is the bottom edge)."""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

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
    def center_y(self) -> float:
        return self.y + self.height / 2

    @property
    def area(self) -> float:
        return self.width * self.height

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def intersects(self, other: "BBox") -> bool:
        """Strict interior overlap, edges that only touch do not count."""
        return (self.right > other.x and self.x < other.right and
                self.top > other.y and self.y < other.top)

    def intersection_area(self, other: "BBox") -> float:
        left = max(self.x, other.x)
        right = min(self.right, other.right)
        bottom = max(self.y, other.y)
        top = min(self.top, other.top)
        if left >= right or bottom >= top:
            return 0.0
        return (right - left) * (top - bottom)

    def union(self, other: "BBox") -> "BBox":
        return minimum_containing_bbox([self, other])

    def overlap_ratio(self, other: "BBox") -> float:
        """Intersection area relative to the smaller of the two areas."""
        smaller = min(self.area, other.area)
        if smaller <= 0:
            return 0.0
        return self.intersection_area(other) / smaller

    def contains_point(self, x: float, y: float) -> bool:
        return self.x <= x <= self.right and self.y <= y <= self.top

    def translated(self, dx: float = 0.0, dy: float = 0.0) -> "BBox":
        return BBox(self.x + dx, self.y + dy, self.width, self.height)

    def to_points(self):
        """(x0, y0, x1, y1) tuple as used by pdfminer and the serializers."""
        return (self.x, self.y, self.right, self.top)

    @classmethod
    def from_fragments(cls, fragments: Sequence) -> "BBox":
        """Bounding box of anything exposing x/y/width/height; zero box when empty."""
        if not fragments:
            return cls()
        min_x = min(f.x for f in fragments)
        min_y = min(f.y for f in fragments)
        max_x = max(f.x + f.width for f in fragments)
        max_y = max(f.y + f.height for f in fragments)
        return cls(min_x, min_y, max_x - min_x, max_y - min_y)


def minimum_containing_bbox(boxes: Iterable[BBox]) -> BBox:
    """Find the minimum bounding box that contains all input boxes."""
    boxes = list(boxes)
    if not boxes:
        return BBox()
    min_x = min(b.x for b in boxes)
    min_y = min(b.y for b in boxes)
    max_x = max(b.right for b in boxes)
    max_y = max(b.top for b in boxes)
    return BBox(min_x, min_y, max_x - min_x, max_y - min_y)


def regions_overlap(a: BBox, b: BBox) -> bool:
    """Region query test shared by the find_*_in_region accessors."""
    return a.intersects(b)
