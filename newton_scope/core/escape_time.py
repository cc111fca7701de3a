"""
Escape-time evaluation for damped Newton iteration.

This module provides the per-point evaluator used by the tile renderer and
the immutable values describing what to render: the render context (plane
mapping, iteration bound, root function) and the tile request.
"""

import cmath
import numbers
from dataclasses import dataclass

from .functions import ComplexFunc, NewtonFunction

# Relative tolerance of the convergence test
EPSILON = 10e-10

# Largest usable iteration bound; 0xFFFF marks uncalculated cells
MAX_ITER_LIMIT = 0xFFFE

DEFAULT_COEFF = complex(1.0, 0.0)


def newton_step(z: complex, coeff: complex, func: ComplexFunc, deriv: ComplexFunc) -> complex:
    """One relaxed Newton step ``z - coeff * f(z) / f'(z)``."""
    return z - func(z) / deriv(z) * coeff


def is_same(lhs: complex, rhs: complex, relative_error: float = EPSILON) -> bool:
    """
    Relative-difference test between two consecutive iterates.

    The difference is scaled by ``lhs`` unless it is exactly zero, then by
    ``rhs``; two exact zeros are the same point.
    """
    delta = lhs - rhs
    try:
        if lhs != 0:
            return abs(delta / lhs) < relative_error
        if rhs != 0:
            return abs(delta / rhs) < relative_error
    except OverflowError:
        return False
    return True


def escape_time(z: complex, coeff: complex, func: ComplexFunc, deriv: ComplexFunc,
                max_iter: int) -> int:
    """
    Count Newton iterations until ``z`` converges or diverges.

    Args:
        z: Starting point in the complex plane
        coeff: Relaxation coefficient applied to each step
        func: Root function f
        deriv: Derivative f'
        max_iter: Iteration bound

    Returns:
        Index of the step that produced a non-finite iterate or met the
        convergence test, or ``max_iter`` if neither happened.
    """
    z1 = z
    for n in range(max_iter):
        try:
            z2 = newton_step(z1, coeff, func, deriv)
        except (ZeroDivisionError, OverflowError):
            # Python raises where IEEE arithmetic yields inf/nan
            return n

        if not cmath.isfinite(z2):
            return n
        if is_same(z1, z2, EPSILON):
            return n

        z1 = z2

    return max_iter


def _is_integer(value) -> bool:
    # numpy integers count, bools do not
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


@dataclass(frozen=True)
class TileRequest:
    """A rectangle of the canvas to render, in canvas pixels."""

    x: int
    y: int
    width: int
    height: int

    def __post_init__(self):
        self.validate()
        for name in ('x', 'y', 'width', 'height'):
            object.__setattr__(self, name, int(getattr(self, name)))

    def validate(self) -> None:
        """Validate the rectangle."""
        for name in ('x', 'y', 'width', 'height'):
            if not _is_integer(getattr(self, name)):
                raise ValueError(f"{name} must be an integer")
        if self.x < 0 or self.y < 0:
            raise ValueError("Tile origin must be non-negative")
        if self.width < 1 or self.height < 1:
            raise ValueError("Tile width and height must be at least 1")

    @property
    def num_pixels(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class RenderContext:
    """
    Everything a tile render needs besides the rectangle itself.

    Attributes:
        center: Center of the whole canvas in the complex plane
        size: Number of canvas pixels along one plane axis
        range: Plane extent covered by ``size`` pixels (same on both axes)
        max_iter: Iteration bound
        function: Root function and its derivative
        coeff: Relaxation coefficient of the Newton step
    """

    center: complex
    size: float
    range: float
    max_iter: int
    function: NewtonFunction
    coeff: complex = DEFAULT_COEFF

    def __post_init__(self):
        self.validate()
        object.__setattr__(self, 'max_iter', int(self.max_iter))

    def validate(self) -> None:
        """Validate context parameters."""
        if not cmath.isfinite(complex(self.center)):
            raise ValueError("center must be finite")
        if not self.size > 0:
            raise ValueError("size must be positive")
        if not cmath.isfinite(complex(self.range)):
            raise ValueError("range must be finite")
        if not _is_integer(self.max_iter) or not 0 <= self.max_iter <= MAX_ITER_LIMIT:
            raise ValueError(f"max_iter must be an integer in [0, {MAX_ITER_LIMIT}]")
        if not isinstance(self.function, NewtonFunction):
            raise ValueError("function must be a NewtonFunction")
        if not cmath.isfinite(complex(self.coeff)):
            raise ValueError("coeff must be finite")

    def pixel_to_complex(self, start_x: int, start_y: int, dx: int, dy: int) -> complex:
        """Plane point sampled by pixel ``(dx, dy)`` of a tile at ``(start_x, start_y)``."""
        return complex(
            ((start_x + dx) / self.size - 0.50) * self.range + self.center.real,
            ((start_y + dy) / self.size - 0.50) * self.range + self.center.imag,
        )

    def evaluate_point(self, z: complex) -> int:
        """Escape time of a single plane point under this context."""
        return escape_time(z, self.coeff, self.function.evaluate,
                           self.function.derivative, self.max_iter)
