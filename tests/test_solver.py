"""Tests for the convergence test and the five root finders."""

import math

import pytest

from numan_errors import (
    DegenerateSeedError,
    InvalidBracketError,
    RootFindingError,
    ZeroDerivativeError,
)
from numan_function import Function, parse_function
from numan_solver import (
    METHOD_LABELS,
    MethodResult,
    bisection,
    converged,
    false_position,
    fixed_point,
    newton_raphson,
    relative_error,
    run_method,
    secant,
)


class CountingFunction(Function):
    """Function that records how many times it was evaluated."""

    def __init__(self, text):
        super().__init__()
        self.extract_expression(text)
        self.calls = 0

    def evaluate(self, x):
        self.calls += 1
        return super().evaluate(x)

    __call__ = evaluate


SQRT2 = math.sqrt(2.0)


# ================================================================
# CONVERGENCE TEST
# ================================================================

class TestConvergence:

    def test_relative_change_below_tolerance(self):
        assert converged(1.0, 1.0000001, 1e-6)
        assert not converged(1.0, 1.1, 1e-6)

    def test_relative_not_absolute(self):
        # absolute change 1.0, relative change 1e-9
        assert converged(1e9, 1e9 + 1.0, 1e-6)
        # absolute change 1e-9, relative change 1e-3
        assert not converged(1e-6, 1.001e-6, 1e-6)

    def test_zero_iterate_counts_as_converged(self):
        assert converged(0.5, 0.0, 1e-12)

    def test_relative_error(self):
        assert relative_error(2.0, 4.0) == 0.5
        assert relative_error(3.0, 0.0) == 0.0


# ================================================================
# BISECTION
# ================================================================

class TestBisection:

    def test_sqrt2(self):
        result = bisection(parse_function("x^2-2"), 0.0, 2.0, 1e-6, 100)
        assert isinstance(result, MethodResult)
        assert result.converged
        assert result.root == pytest.approx(SQRT2, abs=1e-6)
        assert result.iterations_used == len(result.iterations)

    def test_same_sign_bracket_raises(self):
        with pytest.raises(InvalidBracketError):
            bisection(parse_function("x-5"), 1.0, 2.0, 1e-6, 50)

    def test_root_at_endpoint(self):
        result = bisection(parse_function("x-1"), 1.0, 3.0, 1e-6, 50)
        assert result.converged
        assert result.root == 1.0
        assert result.iterations_used == 0

    def test_exact_root_at_midpoint(self):
        result = bisection(parse_function("x-2"), 1.0, 3.0, 1e-6, 50)
        assert result.converged
        assert result.root == 2.0
        assert result.iterations_used == 1

    def test_bracket_always_contains_sign_change(self):
        f = parse_function("x^3 - 2x - 5")
        result = bisection(f, 2.0, 3.0, 1e-9, 100)
        for row in result.iterations:
            assert f(row["a"]) * f(row["b"]) <= 0
        assert result.root == pytest.approx(2.0945514815, abs=1e-8)

    def test_exhausted_budget(self):
        result = bisection(parse_function("x^2-2"), 0.0, 2.0, 1e-12, 1)
        assert not result.converged
        assert result.root is None
        assert result.last_iterate == 1.0
        assert result.iterations_used == 1

    def test_tiny_values_with_same_sign_are_rejected(self):
        # f(a) * f(b) underflows to 0.0 here
        with pytest.raises(InvalidBracketError):
            bisection(parse_function("x^100"), 0.001, 0.002, 1e-6, 100)

    def test_tiny_values_keep_the_bracket(self):
        f = Function({"poly(2)": 1e-170, "poly(0)": -2e-170})
        result = bisection(f, 0.0, 2.0, 1e-9, 100)
        assert result.converged
        assert result.root == pytest.approx(SQRT2, abs=1e-8)

    @pytest.mark.parametrize("tol, max_iter", [(0.0, 10), (-1e-6, 10), (1e-6, 0), (1e-6, -3), (1e-6, 2.5)])
    def test_invalid_budget(self, tol, max_iter):
        with pytest.raises(ValueError):
            bisection(parse_function("x^2-2"), 0.0, 2.0, tol, max_iter)


# ================================================================
# FIXED POINT
# ================================================================

class TestFixedPoint:

    def test_cosine_fixed_point(self):
        result = fixed_point(parse_function("cos(x)"), 1.0, 1e-8, 200)
        assert result.converged
        assert result.root == pytest.approx(0.7390851332, abs=1e-7)

    def test_function_is_used_as_g(self):
        # g(x) = 0.5x + 1 has fixed point x = 2
        result = fixed_point(parse_function("0.5x + 1"), 0.0, 1e-10, 100)
        assert result.converged
        assert result.root == pytest.approx(2.0, abs=1e-9)

    def test_divergence_reports_not_converged(self):
        result = fixed_point(parse_function("2x + 1"), 1.0, 1e-6, 20)
        assert not result.converged
        assert result.root is None
        assert result.iterations_used == 20

    def test_stops_when_g_of_next_iterate_is_zero(self):
        # g(x) = x - 1 from x0 = 2: next iterate 1, g(1) = 0
        result = fixed_point(parse_function("x - 1"), 2.0, 1e-12, 10)
        assert result.converged
        assert result.root == 1.0
        assert result.iterations_used == 1


# ================================================================
# FALSE POSITION
# ================================================================

class TestFalsePosition:

    def test_sqrt2(self):
        result = false_position(parse_function("x^2-2"), 0.0, 2.0, 1e-10, 200)
        assert result.converged
        assert result.root == pytest.approx(SQRT2, abs=1e-8)

    def test_same_sign_bracket_raises(self):
        with pytest.raises(InvalidBracketError):
            false_position(parse_function("x-5"), 1.0, 2.0, 1e-6, 50)

    def test_linear_function_hits_root_exactly(self):
        result = false_position(parse_function("2x-3"), 0.0, 4.0, 1e-6, 50)
        assert result.converged
        assert result.root == 1.5
        assert result.iterations_used == 1

    def test_root_at_endpoint(self):
        result = false_position(parse_function("x^2-4"), 2.0, 5.0, 1e-6, 50)
        assert result.converged
        assert result.root == 2.0

    def test_trig_root(self):
        result = false_position(parse_function("sin(x)"), 3.0, 3.5, 1e-12, 100)
        assert result.converged
        assert result.root == pytest.approx(math.pi, abs=1e-9)

    def test_exhausted_budget(self):
        result = false_position(parse_function("x^2-2"), 0.0, 2.0, 1e-12, 1)
        assert not result.converged
        assert result.root is None

    def test_tiny_values_converge(self):
        # f(p) * f(a) underflows to 0.0 for every step here
        f = Function({"poly(2)": 1e-170, "poly(0)": -2e-170})
        result = false_position(f, 0.0, 2.0, 1e-10, 200)
        assert result.converged
        assert "stalled" not in result.message.lower()
        assert result.root == pytest.approx(SQRT2, abs=1e-8)

    def test_tiny_values_with_same_sign_are_rejected(self):
        with pytest.raises(InvalidBracketError):
            false_position(parse_function("x^100"), 0.001, 0.002, 1e-6, 100)

    def test_stall_is_reported_not_looped(self):
        # f(a) overflows to -inf, so p and f(p) are NaN and neither
        # sub-interval keeps a strict sign change
        result = false_position(parse_function("x^401 + 1"), -10.0, 1.0, 1e-6, 50)
        assert not result.converged
        assert "stalled" in result.message.lower()
        assert result.iterations_used == 1


# ================================================================
# NEWTON-RAPHSON
# ================================================================

class TestNewtonRaphson:

    def test_sqrt2_converges_quadratically(self):
        result = newton_raphson(parse_function("x^2-2"), 1.0, 1e-10, 50)
        assert result.converged
        assert result.root == pytest.approx(SQRT2, abs=1e-12)
        assert result.iterations_used <= 6

    def test_zero_derivative_at_start(self):
        f = CountingFunction("x^3")
        with pytest.raises(ZeroDerivativeError) as excinfo:
            newton_raphson(f, 0.0, 1e-6, 50)
        assert excinfo.value.iteration == 1
        assert excinfo.value.x == 0.0

    def test_zero_derivative_mid_run(self):
        # x^2 - 2x + 2 from x0 = 0: 0 -> 1, where f'(1) = 0
        with pytest.raises(ZeroDerivativeError) as excinfo:
            newton_raphson(parse_function("x^2 - 2x + 2"), 0.0, 1e-6, 50)
        assert excinfo.value.iteration == 2

    def test_trig_root(self):
        result = newton_raphson(parse_function("cos(x) - x"), 1.0, 1e-12, 50)
        assert result.converged
        assert result.root == pytest.approx(0.7390851332151607, abs=1e-12)

    def test_exhausted_budget(self):
        result = newton_raphson(parse_function("x^2-2"), 1.0, 1e-12, 1)
        assert not result.converged
        assert result.root is None
        assert result.last_iterate == 1.5


# ================================================================
# SECANT
# ================================================================

class TestSecant:

    def test_sqrt2(self):
        result = secant(parse_function("x^2-2"), 1.0, 2.0, 1e-10, 50)
        assert result.converged
        assert result.root == pytest.approx(SQRT2, abs=1e-9)

    def test_equal_seeds_raise_without_evaluating(self):
        f = CountingFunction("x^2-2")
        with pytest.raises(DegenerateSeedError):
            secant(f, 1.0, 1.0, 1e-6, 50)
        assert f.calls == 0

    def test_flat_window_stops(self):
        result = secant(parse_function("x^2-2"), -1.0, 1.0, 1e-6, 50)
        assert not result.converged
        assert "division by zero" in result.message.lower()

    def test_exhausted_budget(self):
        result = secant(parse_function("x^2-2"), 1.0, 2.0, 1e-12, 1)
        assert not result.converged
        assert result.root is None


# ================================================================
# RUNNER
# ================================================================

class TestRunMethod:

    @pytest.mark.parametrize("method, params", [
        ("bisection", {"a": 0, "b": 2}),
        ("false_position", {"a": 0, "b": 2}),
        ("regula_falsi", {"a": 0, "b": 2}),
        ("newton_raphson", {"x0": 1}),
        ("secant", {"x0": 1, "x1": 2}),
    ])
    def test_methods_find_sqrt2(self, method, params):
        params = dict(params, tolerance=1e-10, max_iterations=200)
        result = run_method(method, "x^2 - 2", params)
        assert result.converged
        assert result.root == pytest.approx(SQRT2, abs=1e-6)

    def test_fixed_point_through_runner(self):
        result = run_method("fixed_point", parse_function("cos(x)"),
                            {"x0": 1.0, "tolerance": 1e-8, "max_iterations": 200})
        assert result.converged
        assert result.method == "fixed_point"

    def test_defaults_apply(self):
        result = run_method("bisection", "x^2-2", {"a": 0, "b": 2})
        assert result.converged
        assert result.root == pytest.approx(SQRT2, rel=1e-5)

    def test_unknown_method(self):
        with pytest.raises(ValueError):
            run_method("golden_section", "x", {})

    def test_missing_parameter(self):
        with pytest.raises(ValueError, match="'b'"):
            run_method("bisection", "x", {"a": 0})

    def test_precondition_failures_share_a_base_class(self):
        with pytest.raises(RootFindingError):
            run_method("secant", "x", {"x0": 1, "x1": 1})

    @pytest.mark.parametrize("method", sorted(METHOD_LABELS))
    def test_single_iteration_is_not_converged(self, method):
        params = {"a": 0, "b": 2, "x0": 1, "x1": 2, "tolerance": 1e-14, "max_iterations": 1}
        text = "0.5x + 0.7" if method == "fixed_point" else "x^2 - 2"
        result = run_method(method, text, params)
        assert result.converged is False
        assert result.root is None
