"""
Main API classes for Newton fractal rendering.

This module ties the escape-time core to the view state of a square
canvas: the canvas holds the plane center and zoom level, the renderer
turns a configuration into tile renders, whole images and files.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from .acceleration.multiprocessing import EXECUTORS, ParallelTileRenderer, SequentialTileRenderer
from .core.boundary_trace import calc_rect_with_stats, render_brute_force
from .core.escape_time import DEFAULT_COEFF, MAX_ITER_LIMIT, RenderContext, TileRequest
from .core.functions import DEFAULT_FUNCTION, FunctionRegistry, NewtonFunction
from .rendering.coloring import ColoringEngine
from .rendering.image_output import ImageExporter, RenderMetadata

logger = logging.getLogger(__name__)

DEFAULT_CANVAS_SIZE = 512
DEFAULT_MAX_ITER = 128
DEFAULT_ZOOM_LEVEL = 0

# Zoom levels per doubling of the scale
ZOOM_STEPS = 8

# Plane width of the view at scale 1, i.e. [-1, 1]
VIEW_WIDTH = 2.0


def format_with_decimal(x: float) -> str:
    """
    Exponent notation that always shows a decimal point (``1e0`` -> ``1.0e0``).

    The mantissa carries the shortest digit string that round-trips to ``x``,
    so nearby centers at deep zoom still print differently.
    """
    mantissa, exponent = np.format_float_scientific(x, unique=True, trim='-').split('e')
    if '.' not in mantissa:
        mantissa += '.0'
    return f"{mantissa}e{int(exponent)}"


@dataclass
class Canvas:
    """Center and zoom level of the view onto the complex plane."""

    center: complex = 0j
    zoom_level: int = DEFAULT_ZOOM_LEVEL

    def scale(self) -> float:
        return 2.0 ** (self.zoom_level / ZOOM_STEPS)

    def plane_range(self) -> float:
        """Plane extent covered by the whole canvas."""
        return self.scale() * VIEW_WIDTH

    def zoom(self, level: int) -> None:
        self.zoom_level += level

    def move(self, dx: float, dy: float) -> None:
        """
        Move the view by a fraction of the canvas.

        Args:
            dx, dy: Movement in canvas widths (pixels divided by canvas size)
        """
        scale = self.scale()
        self.center = complex(
            self.center.real - dx * scale * VIEW_WIDTH,
            self.center.imag + dy * scale * VIEW_WIDTH,
        )

    def center_str(self) -> str:
        return (f"({format_with_decimal(self.center.real)}, "
                f"{format_with_decimal(self.center.imag)})")

    def scale_str(self) -> str:
        return format_with_decimal(self.scale())

    def to_context(self, size: int, max_iter: int, function: NewtonFunction,
                   coeff: complex = DEFAULT_COEFF) -> RenderContext:
        """Build the render context of a ``size`` x ``size`` canvas."""
        return RenderContext(
            center=complex(self.center),
            size=float(size),
            range=self.plane_range(),
            max_iter=max_iter,
            function=function,
            coeff=complex(coeff),
        )


def exposed_rects(dx: int, dy: int, size: int) -> List[TileRequest]:
    """
    Rectangles left blank after shifting a ``size`` x ``size`` image.

    A positive ``dx`` shifts the image right and uncovers a strip on the
    left; a positive ``dy`` uncovers a strip at the bottom. Shifts of a
    whole canvas or more need a full redraw.
    """
    if abs(dx) >= size or abs(dy) >= size:
        return [TileRequest(0, 0, size, size)]

    requests = []

    if dx > 0:
        requests.append(TileRequest(0, 0, dx, size))
    elif dx < 0:
        requests.append(TileRequest(size + dx, 0, -dx, size))

    if dy > 0:
        requests.append(TileRequest(0, size - dy, size, dy))
    elif dy < 0:
        requests.append(TileRequest(0, 0, size, -dy))

    return requests


@dataclass
class RenderConfig:
    """Configuration for Newton fractal rendering."""

    # Canvas
    size: int = DEFAULT_CANVAS_SIZE
    center: Tuple[float, float] = (0.0, 0.0)  # real, imag
    zoom_level: int = DEFAULT_ZOOM_LEVEL

    # Iteration
    formula: str = DEFAULT_FUNCTION
    max_iterations: int = DEFAULT_MAX_ITER
    coeff: Tuple[float, float] = (1.0, 0.0)  # real, imag

    # Performance
    use_multiprocessing: bool = True
    num_processes: Optional[int] = None
    executor: str = 'process'
    tile_size: int = 128

    # Output
    palette: str = 'jet'
    inside_color: Optional[Tuple[int, int, int]] = None
    jpeg_quality: int = 95
    save_metadata: bool = True
    save_raw_data: bool = False

    def validate(self):
        """Validate configuration parameters."""
        if self.size <= 0:
            raise ValueError("size must be positive")

        if not 0 <= self.max_iterations <= MAX_ITER_LIMIT:
            raise ValueError(f"max_iterations must be in [0, {MAX_ITER_LIMIT}]")

        if len(self.center) != 2:
            raise ValueError("center must be (real, imag)")

        if len(self.coeff) != 2:
            raise ValueError("coeff must be (real, imag)")

        if self.tile_size < 2:
            raise ValueError("tile_size must be >= 2")

        if self.executor not in EXECUTORS:
            raise ValueError(f"executor must be one of {EXECUTORS}")

        if self.num_processes is not None and self.num_processes < 1:
            raise ValueError("num_processes must be >= 1")

        if not 1 <= self.jpeg_quality <= 100:
            raise ValueError("jpeg_quality must be in [1, 100]")

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if not k.startswith('_')}


class NewtonRenderer:
    """Main Newton fractal rendering engine."""

    def __init__(self, config: Optional[RenderConfig] = None,
                 function: Optional[NewtonFunction] = None):
        """
        Initialize renderer.

        Args:
            config: Rendering configuration (uses defaults if None)
            function: Root function; defaults to the one named by ``config.formula``
        """
        self.config = config or RenderConfig()
        self.config.validate()

        self.function = function or FunctionRegistry.create(self.config.formula)
        self.canvas = Canvas(complex(*self.config.center), self.config.zoom_level)
        self.coloring_engine = ColoringEngine()
        self.image_exporter = ImageExporter()

        self.parallel_renderer = None
        if self.config.use_multiprocessing:
            self.parallel_renderer = ParallelTileRenderer(
                self.config.num_processes, self.config.tile_size, self.config.executor)
            self.tile_renderer = self.parallel_renderer
        else:
            self.tile_renderer = SequentialTileRenderer(self.config.tile_size)

        logger.info(f"NewtonRenderer initialized: {self.config.size}x{self.config.size}, "
                    f"function={self.function.get_description()}")

    @property
    def context(self) -> RenderContext:
        """Render context of the current view."""
        return self.canvas.to_context(self.config.size, self.config.max_iterations,
                                      self.function, complex(*self.config.coeff))

    def set_function(self, function: NewtonFunction) -> None:
        self.function = function

    def set_max_iterations(self, max_iterations: int) -> None:
        if not 0 <= max_iterations <= MAX_ITER_LIMIT:
            raise ValueError(f"max_iterations must be in [0, {MAX_ITER_LIMIT}]")
        self.config.max_iterations = max_iterations

    def render_tile(self, x: int, y: int, w: int, h: int) -> np.ndarray:
        """
        Iteration counts of one rectangle of the canvas.

        Returns:
            Flat row-major ``uint16`` array of length ``w * h``
        """
        buffer, _, _ = calc_rect_with_stats(TileRequest(x, y, w, h), self.context)
        return buffer

    def render_iterations(self, progress_callback: Optional[Callable[[int, int], None]] = None
                          ) -> np.ndarray:
        """Iteration counts of the whole canvas as a (size, size) array."""
        size = self.config.size
        return self.tile_renderer.render(self.context, size, size,
                                         progress_callback=progress_callback)

    def render(self, output_path: Optional[Path] = None,
               progress_callback: Optional[Callable[[int, int], None]] = None) -> np.ndarray:
        """
        Render the canvas to an RGB image.

        Args:
            output_path: Optional output file path
            progress_callback: Optional function called with (completed, total) tiles

        Returns:
            uint8 RGB image array of shape (size, size, 3)
        """
        start_time = time.time()
        logger.info(f"Starting render: {self.function.name}")

        iterations = self.render_iterations(progress_callback)
        rgb_image = self.coloring_engine.render_color_image(
            iterations, self.config.max_iterations,
            palette=self.config.palette,
            inside_color=self.config.inside_color,
        )

        if output_path:
            self._save_image(rgb_image, iterations, Path(output_path), time.time() - start_time)

        logger.info(f"Render complete: {time.time() - start_time:.2f}s")
        return rgb_image

    def _build_metadata(self, render_time: float) -> RenderMetadata:
        pixels_evaluated = sum(s.evaluations for s in self.tile_renderer.last_stats)
        return RenderMetadata(
            formula=self.function.get_description(),
            center=(self.canvas.center.real, self.canvas.center.imag),
            zoom_level=self.canvas.zoom_level,
            size=self.config.size,
            max_iterations=self.config.max_iterations,
            coeff=tuple(self.config.coeff),
            palette=self.config.palette,
            render_time_seconds=render_time,
            pixels_evaluated=pixels_evaluated,
        )

    def _save_image(self, rgb_image: np.ndarray, iterations: np.ndarray,
                    output_path: Path, render_time: float) -> None:
        metadata = self._build_metadata(render_time) if self.config.save_metadata else None
        self.image_exporter.save_image(rgb_image, output_path, metadata,
                                       quality=self.config.jpeg_quality)
        if self.config.save_raw_data:
            self.image_exporter.save_raw_data(iterations, output_path.with_suffix('.npy'), metadata)

    def pan(self, dx: int, dy: int) -> List[TileRequest]:
        """
        Move the view by whole pixels.

        Returns:
            The tiles that must be re-rendered after shifting the old image
        """
        size = self.config.size
        if dx == 0 and dy == 0:
            return []
        self.canvas.move(dx / size, dy / size)
        return exposed_rects(dx, dy, size)

    def zoom(self, level: int) -> None:
        self.canvas.zoom(level)

    def benchmark(self, repeats: int = 1) -> Dict[str, Any]:
        """
        Compare boundary tracing with direct evaluation of every pixel.

        Returns:
            Timings, evaluation counts and whether both grids agree
        """
        size = self.config.size
        request = TileRequest(0, 0, size, size)
        context = self.context

        start_time = time.time()
        for _ in range(repeats):
            traced, stats, _ = calc_rect_with_stats(request, context)
        traced_time = (time.time() - start_time) / repeats

        start_time = time.time()
        for _ in range(repeats):
            direct = render_brute_force(request, context)
        direct_time = (time.time() - start_time) / repeats

        return {
            'resolution': f'{size}x{size}',
            'max_iterations': self.config.max_iterations,
            'function': self.function.get_description(),
            'traced_time': traced_time,
            'direct_time': direct_time,
            'speedup': direct_time / traced_time if traced_time > 0 else float('inf'),
            'evaluations': stats.evaluations,
            'evaluated_fraction': stats.evaluated_fraction,
            'mismatched_pixels': int(np.count_nonzero(traced != direct)),
        }
