"""
Root functions for Newton iteration.

A root function is anything that can evaluate ``f(z)`` and ``f'(z)`` for a
single complex number. The tile renderer only sees that capability, so a
hard-coded polynomial, a transcendental function or a pair of arbitrary
callables are interchangeable.
"""

import cmath
import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, Sequence

import numpy as np

logger = logging.getLogger(__name__)

ComplexFunc = Callable[[complex], complex]


class NewtonFunction(ABC):
    """Abstract base class for functions whose roots are searched."""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def evaluate(self, z: complex) -> complex:
        """Value of the function at ``z``."""

    @abstractmethod
    def derivative(self, z: complex) -> complex:
        """Value of the first derivative at ``z``."""

    def get_description(self) -> str:
        """Get a description of this function."""
        return f"{self.name} function"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.get_description()!r})"


def _horner(coefficients: Sequence[complex], z: complex) -> complex:
    result = 0j
    for c in coefficients:
        result = result * z + c
    return result


class Polynomial(NewtonFunction):
    """Polynomial given by its coefficients, highest power first."""

    def __init__(self, *coefficients, name: str = "polynomial"):
        """
        Initialize polynomial.

        Args:
            *coefficients: Coefficients from the highest power down to the
                constant term, e.g. ``Polynomial(1, 0, 0, -1)`` is z^3 - 1
            name: Human-readable name
        """
        if not coefficients:
            raise ValueError("Polynomial needs at least one coefficient")
        super().__init__(name)
        self.coefficients = tuple(complex(c) for c in coefficients)

        # numpy.polynomial stores the constant term first
        poly = np.polynomial.Polynomial(self.coefficients[::-1])
        self.derivative_coefficients = tuple(
            complex(c) for c in poly.deriv().coef[::-1]
        )

    @property
    def degree(self) -> int:
        return len(self.coefficients) - 1

    def evaluate(self, z: complex) -> complex:
        return _horner(self.coefficients, z)

    def derivative(self, z: complex) -> complex:
        return _horner(self.derivative_coefficients, z)

    def get_description(self) -> str:
        terms = []
        for power, c in zip(range(self.degree, -1, -1), self.coefficients):
            if c == 0:
                continue
            coeff = f"{c.real:g}" if c.imag == 0 else f"({c.real:g}{c.imag:+g}j)"
            if power == 0:
                terms.append(coeff)
            elif power == 1:
                terms.append(f"{coeff}*z")
            else:
                terms.append(f"{coeff}*z^{power}")
        return " + ".join(terms).replace("+ -", "- ") or "0"


class SineFunction(NewtonFunction):
    """f(z) = sin(z), roots at multiples of pi."""

    def __init__(self):
        super().__init__("sine")

    def evaluate(self, z: complex) -> complex:
        return cmath.sin(z)

    def derivative(self, z: complex) -> complex:
        return cmath.cos(z)

    def get_description(self) -> str:
        return "sin(z)"


class CallableFunction(NewtonFunction):
    """Adapter for a user-supplied function/derivative pair."""

    def __init__(self, func: ComplexFunc, deriv: ComplexFunc,
                 name: str = "custom", description: str = "Custom function"):
        """
        Initialize callable function.

        Args:
            func: Pure callable computing f(z)
            deriv: Pure callable computing f'(z)
            name: Human-readable name
            description: Text returned by ``get_description``
        """
        if not callable(func) or not callable(deriv):
            raise ValueError("func and deriv must be callable")
        super().__init__(name)
        self.func = func
        self.deriv = deriv
        self.description = description

    def evaluate(self, z: complex) -> complex:
        return self.func(z)

    def derivative(self, z: complex) -> complex:
        return self.deriv(z)

    def get_description(self) -> str:
        return self.description


class FunctionRegistry:
    """Registry for the named root functions offered to users."""

    _functions: Dict[str, Callable[[], NewtonFunction]] = {
        'cubic': lambda: Polynomial(1, 0, 0, -1, name='cubic'),
        'quartic': lambda: Polynomial(1, 0, 0, 0, -1, name='quartic'),
        'quintic': lambda: Polynomial(1, 0, 0, 0, 0, -1, name='quintic'),
        'cycle': lambda: Polynomial(1, 0, -2, 2, name='cycle'),
        'sine': SineFunction,
    }

    @classmethod
    def register(cls, name: str, factory: Callable[[], NewtonFunction]) -> None:
        """
        Register a new named function.

        Args:
            name: Unique identifier
            factory: Zero-argument callable returning a NewtonFunction
        """
        if not callable(factory):
            raise ValueError("factory must be callable")
        cls._functions[name.lower()] = factory
        logger.info(f"Registered root function: {name}")

    @classmethod
    def create(cls, name: str) -> NewtonFunction:
        """Create the function registered under ``name``."""
        factory = cls._functions.get(name.lower())
        if factory is None:
            available = ', '.join(cls._functions.keys())
            raise ValueError(f"Unknown function '{name}'. Available: {available}")
        return factory()

    @classmethod
    def list_functions(cls) -> Dict[str, str]:
        """Get a dictionary of available functions and their descriptions."""
        return {name: factory().get_description()
                for name, factory in cls._functions.items()}


DEFAULT_FUNCTION = 'cubic'
