"""
Parallel tile rendering for whole canvases.

A canvas is cut into independent tiles; each worker runs the boundary
tracer on its own tile with its own buffers, and the results are stitched
back together. Root functions must be picklable for the process pool
(module-level callables, ``Polynomial`` and friends are).
"""

import logging
import multiprocessing as mp
import time
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np

from ..core.boundary_trace import TileStats, calc_rect_with_stats
from ..core.escape_time import RenderContext, TileRequest

logger = logging.getLogger(__name__)

EXECUTORS = ('process', 'thread')


class TileRenderError(RuntimeError):
    """Raised when a worker fails to render a tile."""

    def __init__(self, tile_id: int, cause: BaseException):
        super().__init__(f"Tile {tile_id} failed: {cause}")
        self.tile_id = tile_id
        self.cause = cause


@dataclass
class TileSpec:
    """Specification for a single tile in parallel rendering."""
    tile_id: int
    x_start: int
    x_end: int
    y_start: int
    y_end: int

    @property
    def width(self) -> int:
        return self.x_end - self.x_start

    @property
    def height(self) -> int:
        return self.y_end - self.y_start

    def to_request(self) -> TileRequest:
        return TileRequest(self.x_start, self.y_start, self.width, self.height)


@dataclass
class TileResult:
    """Result from processing a single tile."""
    tile_id: int
    iterations: np.ndarray
    x_start: int
    y_start: int
    stats: TileStats


def create_tile_grid(width: int, height: int, tile_size: int = 256,
                     x_offset: int = 0, y_offset: int = 0) -> List[TileSpec]:
    """
    Create a grid of tiles covering a ``width`` x ``height`` rectangle.

    Args:
        width: Total width in pixels
        height: Total height in pixels
        tile_size: Target tile size (pixels)
        x_offset, y_offset: Canvas position of the rectangle's top-left pixel

    Returns:
        List of TileSpec objects in row-major order
    """
    if tile_size < 1:
        raise ValueError("tile_size must be positive")

    tiles = []
    tile_id = 0

    for y in range(y_offset, y_offset + height, tile_size):
        for x in range(x_offset, x_offset + width, tile_size):
            tiles.append(TileSpec(
                tile_id=tile_id,
                x_start=x,
                x_end=min(x + tile_size, x_offset + width),
                y_start=y,
                y_end=min(y + tile_size, y_offset + height),
            ))
            tile_id += 1

    logger.debug(f"Created {len(tiles)} tiles of target size {tile_size}x{tile_size}")
    return tiles


def process_tile(tile_spec: TileSpec, context: RenderContext) -> TileResult:
    """Render one tile; runs inside a worker."""
    buffer, stats, _ = calc_rect_with_stats(tile_spec.to_request(), context)
    return TileResult(
        tile_id=tile_spec.tile_id,
        iterations=buffer.reshape(tile_spec.height, tile_spec.width),
        x_start=tile_spec.x_start,
        y_start=tile_spec.y_start,
        stats=stats,
    )


def assemble_tiles(tile_results: List[TileResult], total_width: int, total_height: int,
                   x_offset: int = 0, y_offset: int = 0) -> np.ndarray:
    """
    Assemble tile results into one 2-D iteration array.

    Args:
        tile_results: Rendered tiles
        total_width: Width of the assembled rectangle
        total_height: Height of the assembled rectangle
        x_offset, y_offset: Canvas position of the rectangle's top-left pixel

    Returns:
        ``uint16`` array of shape (total_height, total_width)
    """
    iterations = np.zeros((total_height, total_width), dtype=np.uint16)

    for tile_result in tile_results:
        x_start = tile_result.x_start - x_offset
        y_start = tile_result.y_start - y_offset
        tile_height, tile_width = tile_result.iterations.shape
        iterations[y_start:y_start + tile_height, x_start:x_start + tile_width] = tile_result.iterations

    return iterations


class ParallelTileRenderer:
    """Renders a rectangle of the canvas tile by tile on a worker pool."""

    def __init__(self, num_processes: Optional[int] = None, tile_size: int = 256,
                 executor: str = 'process'):
        """
        Initialize parallel renderer.

        Args:
            num_processes: Number of workers (None for an automatic choice)
            tile_size: Size of tiles for parallel processing
            executor: 'process' for a process pool, 'thread' for a thread pool
        """
        if executor not in EXECUTORS:
            raise ValueError(f"executor must be one of {EXECUTORS}")

        if num_processes is None:
            self.num_processes = get_optimal_process_count()
        else:
            self.num_processes = max(1, num_processes)

        self.tile_size = tile_size
        self.executor = executor
        self.last_stats: List[TileStats] = []
        logger.info(f"Parallel renderer: {self.num_processes} {executor} workers, "
                    f"{tile_size}x{tile_size} tiles")

    def _create_executor(self) -> Executor:
        if self.executor == 'thread':
            return ThreadPoolExecutor(max_workers=self.num_processes)
        return ProcessPoolExecutor(max_workers=self.num_processes)

    def render(self, context: RenderContext, width: int, height: int,
               x_offset: int = 0, y_offset: int = 0,
               progress_callback: Optional[Callable[[int, int], None]] = None) -> np.ndarray:
        """
        Render a rectangle of the canvas using parallel tile processing.

        Args:
            context: Render context shared by every tile
            width, height: Size of the rectangle
            x_offset, y_offset: Canvas position of the rectangle
            progress_callback: Optional function called with (completed, total)

        Returns:
            ``uint16`` iteration array of shape (height, width)
        """
        start_time = time.time()
        tiles = create_tile_grid(width, height, self.tile_size, x_offset, y_offset)

        tile_results: List[TileResult] = []
        with self._create_executor() as executor:
            future_to_tile = {executor.submit(process_tile, tile, context): tile
                              for tile in tiles}

            for future in as_completed(future_to_tile):
                tile = future_to_tile[future]
                try:
                    tile_results.append(future.result())
                except Exception as e:
                    logger.error(f"Tile {tile.tile_id} failed: {e}")
                    for pending in future_to_tile:
                        pending.cancel()
                    raise TileRenderError(tile.tile_id, e) from e

                completed = len(tile_results)
                if progress_callback:
                    progress_callback(completed, len(tiles))
                if completed % max(1, len(tiles) // 10) == 0:
                    progress = (completed / len(tiles)) * 100
                    logger.debug(f"Completed {completed}/{len(tiles)} tiles ({progress:.1f}%)")

        result = assemble_tiles(tile_results, width, height, x_offset, y_offset)
        self.last_stats = [tr.stats for tr in sorted(tile_results, key=lambda tr: tr.tile_id)]

        total_time = time.time() - start_time
        evaluations = sum(s.evaluations for s in self.last_stats)
        logger.info(f"Parallel rendering complete: {total_time:.2f}s, "
                    f"{evaluations}/{width * height} pixels evaluated")

        return result


class SequentialTileRenderer:
    """Renders a rectangle tile by tile in the calling thread."""

    def __init__(self, tile_size: int = 256):
        self.tile_size = tile_size
        self.last_stats: List[TileStats] = []

    def render(self, context: RenderContext, width: int, height: int,
               x_offset: int = 0, y_offset: int = 0,
               progress_callback: Optional[Callable[[int, int], None]] = None) -> np.ndarray:
        """Same contract as ``ParallelTileRenderer.render``."""
        tiles = create_tile_grid(width, height, self.tile_size, x_offset, y_offset)

        tile_results = []
        for tile in tiles:
            tile_results.append(process_tile(tile, context))
            if progress_callback:
                progress_callback(len(tile_results), len(tiles))

        self.last_stats = [tr.stats for tr in tile_results]
        evaluations = sum(s.evaluations for s in self.last_stats)
        logger.debug(f"Sequential rendering complete: "
                     f"{evaluations}/{width * height} pixels evaluated")

        return assemble_tiles(tile_results, width, height, x_offset, y_offset)


def render_sequential(context: RenderContext, width: int, height: int, tile_size: int = 256,
                      x_offset: int = 0, y_offset: int = 0) -> np.ndarray:
    """Render a rectangle tile by tile in the calling thread."""
    return SequentialTileRenderer(tile_size).render(context, width, height, x_offset, y_offset)


def get_optimal_process_count() -> int:
    """Get optimal number of workers for tile rendering."""
    # Leave one core for system
    return max(1, mp.cpu_count() - 1)
