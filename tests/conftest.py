import pytest

from newton_scope.core.escape_time import RenderContext
from newton_scope.core.functions import CallableFunction, Polynomial


def step_right(z):
    return -1 + 0j


def left_half_plane_deriv(z):
    # zero derivative left of the imaginary axis: diverges immediately
    return 0j if z.real < 0 else 1 + 0j


def lower_left_deriv(z):
    return 0j if z.real + z.imag < 0 else 1 + 0j


def identity(z):
    return z


def one(z):
    return 1 + 0j


@pytest.fixture
def cubic():
    return Polynomial(1, 0, 0, -1, name='cubic')


@pytest.fixture
def cubic_context(cubic):
    return RenderContext(center=0j, size=64.0, range=4.0, max_iter=50, function=cubic)


@pytest.fixture
def half_plane_context():
    """Escape time 0 where Re(z) < 0 and max_iter elsewhere."""
    function = CallableFunction(step_right, left_half_plane_deriv, name='half-plane')
    return RenderContext(center=0j, size=16.0, range=4.0, max_iter=20, function=function)


@pytest.fixture
def diagonal_context():
    """Escape time 0 below the line Re(z) + Im(z) = 0 and max_iter elsewhere."""
    function = CallableFunction(step_right, lower_left_deriv, name='diagonal')
    return RenderContext(center=0j, size=16.0, range=4.0, max_iter=20, function=function)


@pytest.fixture
def uniform_context():
    """Every point away from the origin takes exactly one step."""
    function = CallableFunction(identity, one, name='identity')
    return RenderContext(center=10 + 10j, size=16.0, range=4.0, max_iter=20, function=function)
