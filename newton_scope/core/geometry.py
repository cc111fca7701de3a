"""
Integer grid geometry used by the tile renderer.

Coordinates are signed so that neighbour offsets can be applied without
underflow checks; membership in a tile is tested afterwards with
``is_in_rect``.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Coordinates:
    """A cell position inside a tile (column ``x``, row ``y``)."""

    x: int
    y: int

    def __add__(self, other: 'Coordinates') -> 'Coordinates':
        return Coordinates(self.x + other.x, self.y + other.y)

    def is_in_rect(self, width: int, height: int) -> bool:
        """True iff ``(0, 0) <= self < (width, height)``."""
        return 0 <= self.x < width and 0 <= self.y < height

    def to_index(self, width: int) -> int:
        """Row-major index of this cell in a flat buffer ``width`` cells wide."""
        return self.y * width + self.x


# Moore neighbourhood, row by row
MOORE_OFFSETS: Tuple[Coordinates, ...] = (
    Coordinates(-1, -1), Coordinates(0, -1), Coordinates(1, -1),
    Coordinates(-1, 0),                      Coordinates(1, 0),
    Coordinates(-1, 1),  Coordinates(0, 1),  Coordinates(1, 1),
)


def neighbours(coord: Coordinates, width: int, height: int):
    """Yield the Moore neighbours of ``coord`` that lie inside the tile."""
    for offset in MOORE_OFFSETS:
        target = coord + offset
        if target.is_in_rect(width, height):
            yield target
