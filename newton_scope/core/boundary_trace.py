"""
Boundary-tracing tile renderer.

Escape times are constant over large basin interiors, so only the cells
adjacent to a change of value need exact evaluation:

1. the outer ring of the tile is evaluated and every place where two
   consecutive ring cells disagree seeds a work queue;
2. the queue is drained, evaluating the Moore neighbours of each seed and
   queueing every neighbour whose value differs from the seed's;
3. each interior row is completed left to right by carrying the last
   resolved value over the cells that were never evaluated.

The buffers belong to a single call; nothing is shared between tiles.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque

import numpy as np

from .escape_time import RenderContext, TileRequest, escape_time
from .geometry import Coordinates, neighbours

logger = logging.getLogger(__name__)

UNCALCULATED = np.iinfo(np.uint16).max


@dataclass
class TileStats:
    """Work done while rendering one tile."""

    evaluations: int
    seeds: int
    traced: int
    filled: int
    elapsed: float

    @property
    def num_pixels(self) -> int:
        return self.evaluations + self.filled

    @property
    def evaluated_fraction(self) -> float:
        return self.evaluations / max(1, self.num_pixels)


class BoundaryTracer:
    """Owns the grid, queued flags and work queue of one tile render."""

    def __init__(self, request: TileRequest, context: RenderContext):
        self.request = request
        self.context = context
        self.width = request.width
        self.height = request.height

        num_pixels = request.num_pixels
        self.buffer = np.full(num_pixels, UNCALCULATED, dtype=np.uint16)
        self.is_pushed = np.zeros(num_pixels, dtype=np.bool_)
        self.evaluated = np.zeros(num_pixels, dtype=np.bool_)
        self.boundaries: Deque[Coordinates] = deque()

        self.seeds = 0
        self.traced = 0

        self._func = context.function.evaluate
        self._deriv = context.function.derivative

    def calc_escape_time(self, x: int, y: int) -> int:
        """Evaluate tile cell ``(x, y)`` directly and mark it as evaluated."""
        z = self.context.pixel_to_complex(self.request.x, self.request.y, x, y)
        self.evaluated[y * self.width + x] = True
        return escape_time(z, self.context.coeff, self._func, self._deriv,
                           self.context.max_iter)

    def _update_boundary(self, idx: int, prev_idx: int, coord: Coordinates, val: int) -> None:
        """Store a ring value and queue it if it differs from its predecessor."""
        self.buffer[idx] = val
        if not self.is_pushed[idx] and val != self.buffer[prev_idx]:
            self.is_pushed[idx] = True
            self.boundaries.append(coord)
            self.seeds += 1

    def calc_edge(self) -> None:
        """Evaluate the outer ring and seed the queue at its discontinuities."""
        w, h = self.width, self.height

        # top row
        self.buffer[0] = self.calc_escape_time(0, 0)
        for x in range(1, w):
            val = self.calc_escape_time(x, 0)
            self._update_boundary(x, x - 1, Coordinates(x, 0), val)

        # bottom row
        y_bottom = h - 1
        offset_bottom = y_bottom * w
        self.buffer[offset_bottom] = self.calc_escape_time(0, y_bottom)
        for x in range(1, w):
            idx = offset_bottom + x
            val = self.calc_escape_time(x, y_bottom)
            self._update_boundary(idx, idx - 1, Coordinates(x, y_bottom), val)

        # left and right columns, compared with the cell above
        for y in range(1, h - 1):
            for x in (0, w - 1):
                idx = y * w + x
                val = self.calc_escape_time(x, y)
                self._update_boundary(idx, idx - w, Coordinates(x, y), val)

    def track_boundary(self) -> None:
        """Follow value discontinuities inward until the queue is empty."""
        w, h = self.width, self.height
        buffer = self.buffer

        while self.boundaries:
            boundary = self.boundaries.pop()
            boundary_val = buffer[boundary.to_index(w)]
            self.traced += 1

            for target in neighbours(boundary, w, h):
                idx = target.to_index(w)
                if buffer[idx] == UNCALCULATED:
                    buffer[idx] = self.calc_escape_time(target.x, target.y)
                if buffer[idx] != boundary_val and not self.is_pushed[idx]:
                    self.is_pushed[idx] = True
                    self.boundaries.append(target)

    def fill_in_the_rest(self) -> None:
        """Complete interior rows by carrying resolved values rightwards."""
        w, h = self.width, self.height
        buffer = self.buffer

        for y in range(1, h - 1):
            row_start = y * w
            fill_value = buffer[row_start]

            for x in range(1, w - 1):
                idx = row_start + x
                if buffer[idx] == UNCALCULATED:
                    buffer[idx] = fill_value
                else:
                    fill_value = buffer[idx]

    def calc_every_cell(self) -> None:
        """Evaluate each cell directly; used when the tile has no interior."""
        for y in range(self.height):
            for x in range(self.width):
                self.buffer[y * self.width + x] = self.calc_escape_time(x, y)

    def run(self) -> np.ndarray:
        """Render the tile and return the flat row-major buffer."""
        if self.width == 1 or self.height == 1:
            self.calc_every_cell()
        else:
            self.calc_edge()
            self.track_boundary()
            self.fill_in_the_rest()
        return self.buffer

    def get_stats(self, elapsed: float = 0.0) -> TileStats:
        evaluations = int(np.count_nonzero(self.evaluated))
        return TileStats(
            evaluations=evaluations,
            seeds=self.seeds,
            traced=self.traced,
            filled=self.request.num_pixels - evaluations,
            elapsed=elapsed,
        )


def calc_rect_with_stats(request: TileRequest, context: RenderContext):
    """
    Render a tile and report how much work it took.

    Returns:
        Tuple of (flat uint16 buffer, TileStats, evaluated mask)
    """
    start_time = time.time()

    tracer = BoundaryTracer(request, context)
    buffer = tracer.run()
    stats = tracer.get_stats(time.time() - start_time)

    logger.debug(f"Tile ({request.x}, {request.y}) {request.width}x{request.height}: "
                 f"{stats.evaluations} evaluations, {stats.seeds} seeds, "
                 f"{stats.traced} traced, {stats.filled} filled")

    return buffer, stats, tracer.evaluated


def calc_rect(request: TileRequest, context: RenderContext) -> np.ndarray:
    """
    Compute the escape time of every pixel of a tile.

    Args:
        request: Tile origin and size on the canvas
        context: Plane mapping, iteration bound and root function

    Returns:
        Flat row-major ``uint16`` array of ``width * height`` iteration
        counts, each in ``[0, context.max_iter]``
    """
    buffer, _, _ = calc_rect_with_stats(request, context)
    return buffer


def render_brute_force(request: TileRequest, context: RenderContext) -> np.ndarray:
    """Evaluate every pixel of a tile directly, without boundary tracing."""
    out = np.empty(request.num_pixels, dtype=np.uint16)

    idx = 0
    for y in range(request.height):
        for x in range(request.width):
            out[idx] = context.evaluate_point(
                context.pixel_to_complex(request.x, request.y, x, y))
            idx += 1

    return out
