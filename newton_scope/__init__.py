"""
Newton fractal rendering library.

This library renders escape-time images of Newton's method. Tiles are
computed with boundary tracing: only pixels along the borders between
basins of attraction are evaluated, interiors are filled in.

Key Features:
- Boundary-tracing tile renderer returning raw iteration counts
- Built-in polynomial and transcendental root functions, or any callables
- Parallel rendering of independent tiles
- Canvas pan/zoom state, colour mapping and image export

Example usage:
    >>> from newton_scope import NewtonRenderer, RenderConfig
    >>> renderer = NewtonRenderer(RenderConfig(size=256, formula='cubic'))
    >>> counts = renderer.render_tile(0, 0, 64, 64)
"""

__version__ = "0.3.0"

from newton_scope.core.boundary_trace import calc_rect
from newton_scope.core.escape_time import RenderContext, TileRequest, escape_time
from newton_scope.core.functions import CallableFunction, FunctionRegistry, NewtonFunction, Polynomial
from newton_scope.rendering.coloring import ColoringEngine
from newton_scope.rendering.image_output import ImageExporter
from newton_scope.acceleration.multiprocessing import ParallelTileRenderer, SequentialTileRenderer
from newton_scope.io.config import ConfigManager

# Main API classes
from newton_scope.api import Canvas, NewtonRenderer, RenderConfig

__all__ = [
    "NewtonRenderer",
    "RenderConfig",
    "Canvas",
    "calc_rect",
    "escape_time",
    "RenderContext",
    "TileRequest",
    "NewtonFunction",
    "Polynomial",
    "CallableFunction",
    "FunctionRegistry",
    "ColoringEngine",
    "ImageExporter",
    "ParallelTileRenderer",
    "SequentialTileRenderer",
    "ConfigManager",
]
