import cmath
import pickle

import pytest

from newton_scope.core.functions import (
    DEFAULT_FUNCTION,
    CallableFunction,
    FunctionRegistry,
    NewtonFunction,
    Polynomial,
    SineFunction,
)


def test_polynomial_evaluate_and_derivative(cubic):
    assert cubic.degree == 3
    assert cubic.evaluate(2) == 7
    assert cubic.derivative(2) == 12
    assert cubic.evaluate(1) == 0
    assert cubic.derivative_coefficients == (3, 0, 0)


def test_polynomial_description():
    assert Polynomial(1, 0, 0, -1).get_description() == "1*z^3 - 1"
    assert Polynomial(1, 0, -2, 2).get_description() == "1*z^3 - 2*z + 2"
    assert Polynomial(0).get_description() == "0"


def test_polynomial_complex_coefficients():
    p = Polynomial(1j, 1)
    assert p.evaluate(1j) == 0
    assert p.derivative(5) == 1j
    assert "j" in p.get_description()


def test_polynomial_needs_coefficients():
    with pytest.raises(ValueError):
        Polynomial()


def test_sine_function():
    f = SineFunction()
    assert f.evaluate(0) == 0
    assert f.derivative(0) == 1
    assert abs(f.evaluate(cmath.pi)) < 1e-12
    assert f.get_description() == "sin(z)"


def test_callable_function():
    f = CallableFunction(lambda z: z * z, lambda z: 2 * z, name='square', description='z^2')
    assert f.evaluate(3) == 9
    assert f.derivative(3) == 6
    assert f.get_description() == 'z^2'
    assert 'z^2' in repr(f)


def test_callable_function_rejects_non_callables():
    with pytest.raises(ValueError):
        CallableFunction(1, lambda z: z)


def test_newton_function_is_abstract():
    with pytest.raises(TypeError):
        NewtonFunction('abstract')


def test_registry_creates_builtins():
    functions = FunctionRegistry.list_functions()
    assert DEFAULT_FUNCTION in functions
    assert functions['cubic'] == "1*z^3 - 1"
    assert functions['sine'] == "sin(z)"

    for name in functions:
        assert isinstance(FunctionRegistry.create(name), NewtonFunction)


def test_registry_lookup_is_case_insensitive():
    assert FunctionRegistry.create('CUBIC').name == 'cubic'


def test_registry_unknown_name():
    with pytest.raises(ValueError, match='Unknown function'):
        FunctionRegistry.create('no-such-function')


def test_registry_register(monkeypatch):
    monkeypatch.setattr(FunctionRegistry, '_functions', dict(FunctionRegistry._functions))

    FunctionRegistry.register('Linear', lambda: Polynomial(1, -1, name='linear'))

    assert FunctionRegistry.create('linear').evaluate(1) == 0
    assert 'linear' in FunctionRegistry.list_functions()

    with pytest.raises(ValueError):
        FunctionRegistry.register('broken', None)


def test_builtin_functions_pickle():
    for name in FunctionRegistry.list_functions():
        f = FunctionRegistry.create(name)
        clone = pickle.loads(pickle.dumps(f))
        assert clone.evaluate(0.5 + 0.5j) == f.evaluate(0.5 + 0.5j)
