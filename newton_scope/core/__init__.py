"""Escape-time core: geometry, evaluator, root functions and tile renderer."""

from .boundary_trace import (
    UNCALCULATED,
    BoundaryTracer,
    TileStats,
    calc_rect,
    calc_rect_with_stats,
    render_brute_force,
)
from .escape_time import (
    DEFAULT_COEFF,
    EPSILON,
    MAX_ITER_LIMIT,
    RenderContext,
    TileRequest,
    escape_time,
    is_same,
    newton_step,
)
from .functions import (
    CallableFunction,
    FunctionRegistry,
    NewtonFunction,
    Polynomial,
    SineFunction,
)
from .geometry import MOORE_OFFSETS, Coordinates

__all__ = [
    "UNCALCULATED",
    "BoundaryTracer",
    "TileStats",
    "calc_rect",
    "calc_rect_with_stats",
    "render_brute_force",
    "DEFAULT_COEFF",
    "EPSILON",
    "MAX_ITER_LIMIT",
    "RenderContext",
    "TileRequest",
    "escape_time",
    "is_same",
    "newton_step",
    "CallableFunction",
    "FunctionRegistry",
    "NewtonFunction",
    "Polynomial",
    "SineFunction",
    "MOORE_OFFSETS",
    "Coordinates",
]
