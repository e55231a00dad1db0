"""
Convergence test and the five classical root-finding algorithms.

This module centralizes:
    - The relative-error convergence test shared by every method.
    - Bisection, fixed-point iteration, false position, Newton-Raphson and
      the secant method, all operating on a parsed `Function`.
    - A thin façade (`run_method`) so both the CLI and Flask layers can
      consume the same API.

Each solver returns a `MethodResult` with:
    method: str
    converged: bool
    root: Optional[float]          # None unless converged
    last_iterate: Optional[float]
    final_error: Optional[float]   # relative change at the last step
    iterations: List[Dict[str, float]]
    columns: List[str]             # keys to display for each iteration dict
    message: str

Running out of iterations yields `converged=False`; precondition failures
raise a `RootFindingError` before any iteration runs.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Union

from numan_errors import (
    DegenerateSeedError,
    InvalidBracketError,
    ZeroDerivativeError,
)
from numan_function import Function, parse_function

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 1e-6
DEFAULT_MAX_ITERATIONS = 50


# --------------------------------------------------------------------------- #
# Convergence test
# --------------------------------------------------------------------------- #


def relative_error(previous: float, current: float) -> float:
    """|current - previous| / |current|; 0 when `current` is exactly 0."""
    if current == 0:
        return 0.0
    return abs(current - previous) / abs(current)


def converged(previous: float, current: float, tolerance: float) -> bool:
    """
    Relative-error stopping rule used by every method.

    `tolerance` is a relative bound, not a count of decimal digits. An
    iterate of exactly 0 counts as converged.
    """
    if current == 0:
        return True
    return relative_error(previous, current) < tolerance


# --------------------------------------------------------------------------- #
# Result container
# --------------------------------------------------------------------------- #


@dataclass
class MethodResult:
    method: str
    converged: bool
    root: Optional[float]
    last_iterate: Optional[float]
    final_error: Optional[float]
    iterations: List[Dict[str, float]] = field(default_factory=list)
    columns: List[str] = field(default_factory=list)
    message: str = ""

    @property
    def iterations_used(self) -> int:
        return len(self.iterations)


def _base_result(method: str, columns: List[str]) -> MethodResult:
    return MethodResult(
        method=method,
        converged=False,
        root=None,
        last_iterate=None,
        final_error=None,
        iterations=[],
        columns=columns,
        message="",
    )


def _finalize_converged(
    result: MethodResult, value: float, error: Optional[float]
) -> MethodResult:
    result.converged = True
    result.root = value
    result.last_iterate = value
    result.final_error = error
    result.message = f"Converged in {result.iterations_used} iterations."
    logger.debug("%s converged to %r after %d iterations",
                 result.method, value, result.iterations_used)
    return result


def _finalize_not_converged(
    result: MethodResult,
    last: Optional[float],
    error: Optional[float],
    message: str = "Maximum iterations reached without convergence.",
) -> MethodResult:
    result.converged = False
    result.root = None
    result.last_iterate = last
    result.final_error = error
    result.message = message
    logger.debug("%s did not converge: %s", result.method, message)
    return result


def _check_budget(tolerance: float, max_iterations: int) -> int:
    if not tolerance > 0:
        raise ValueError(f"Tolerance must be positive, got {tolerance}")
    if int(max_iterations) != max_iterations or max_iterations <= 0:
        raise ValueError(f"Maximum iterations must be a positive integer, got {max_iterations}")
    return int(max_iterations)


def _same_sign(u: float, v: float) -> bool:
    return (u > 0 and v > 0) or (u < 0 and v < 0)


def _opposite_sign(u: float, v: float) -> bool:
    return (u > 0 and v < 0) or (u < 0 and v > 0)


def _check_bracket(method: str, fa: float, fb: float) -> None:
    # Compare signs directly: fa * fb underflows to 0 for tiny values.
    if math.isnan(fa) or math.isnan(fb) or _same_sign(fa, fb):
        logger.debug("%s rejected bracket: f(a)=%r f(b)=%r", method, fa, fb)
        raise InvalidBracketError(
            f"f(a) and f(b) must have opposite signs for {METHOD_LABELS[method]}."
        )


# --------------------------------------------------------------------------- #
# Numerical methods
# --------------------------------------------------------------------------- #


def bisection(
    f: Function,
    a: float,
    b: float,
    tol: float = DEFAULT_TOLERANCE,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
) -> MethodResult:
    max_iter = _check_budget(tol, max_iter)
    result = _base_result("bisection", ["iteration", "a", "b", "m", "f(m)", "error"])
    fa, fb = f(a), f(b)
    _check_bracket("bisection", fa, fb)
    if fa == 0:
        return _finalize_converged(result, a, 0.0)
    if fb == 0:
        return _finalize_converged(result, b, 0.0)

    prev_m: Optional[float] = None
    m = a
    error: Optional[float] = None
    for i in range(1, max_iter + 1):
        m = (a + b) / 2.0
        fm = f(m)
        error = relative_error(prev_m, m) if prev_m is not None else None
        result.iterations.append(
            {
                "iteration": i,
                "a": a,
                "b": b,
                "m": m,
                "f(m)": fm,
                "error": error if error is not None else float("nan"),
            }
        )
        logger.debug("bisection iter %d: a=%r b=%r m=%r f(m)=%r", i, a, b, m, fm)
        if fm == 0 or (prev_m is not None and converged(prev_m, m, tol)):
            return _finalize_converged(result, m, error)
        if _same_sign(fa, fm):
            a, fa = m, fm
        else:
            b, fb = m, fm
        prev_m = m

    return _finalize_not_converged(result, m, error)


def fixed_point(
    g: Function,
    x0: float,
    tol: float = DEFAULT_TOLERANCE,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
) -> MethodResult:
    """
    Iterate x_{n+1} = g(x_n). The function passed in *is* g; no contraction
    check is made, divergence simply exhausts the iteration budget.
    """
    max_iter = _check_budget(tol, max_iter)
    result = _base_result("fixed_point", ["iteration", "x", "g(x)", "error"])
    x = x0
    gx = g(x)
    error: Optional[float] = None
    for i in range(1, max_iter + 1):
        x_next = gx
        gx = g(x_next)
        error = relative_error(x, x_next)
        result.iterations.append({"iteration": i, "x": x, "g(x)": x_next, "error": error})
        logger.debug("fixed_point iter %d: x=%r g(x)=%r", i, x, x_next)
        if gx == 0 or converged(x, x_next, tol):
            return _finalize_converged(result, x_next, error)
        x = x_next

    return _finalize_not_converged(result, x, error)


def false_position(
    f: Function,
    a: float,
    b: float,
    tol: float = DEFAULT_TOLERANCE,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
) -> MethodResult:
    max_iter = _check_budget(tol, max_iter)
    result = _base_result("false_position", ["iteration", "a", "b", "p", "f(p)", "error"])
    fa, fb = f(a), f(b)
    _check_bracket("false_position", fa, fb)
    if fa == 0:
        return _finalize_converged(result, a, 0.0)
    if fb == 0:
        return _finalize_converged(result, b, 0.0)

    p: Optional[float] = None
    error: Optional[float] = None
    for i in range(1, max_iter + 1):
        denominator = fb - fa
        if denominator == 0:
            logger.warning("false_position: f(b) - f(a) is zero at iteration %d", i)
            return _finalize_not_converged(
                result, p, error, "Division by zero encountered in False Position."
            )
        p = (a * fb - b * fa) / denominator
        fp = f(p)
        row = {"iteration": i, "a": a, "b": b, "p": p, "f(p)": fp, "error": float("nan")}
        result.iterations.append(row)
        logger.debug("false_position iter %d: a=%r b=%r p=%r f(p)=%r", i, a, b, p, fp)

        if fp == 0:
            return _finalize_converged(result, p, error)
        if _opposite_sign(fp, fa):
            previous = b
            b, fb = p, fp
        elif _opposite_sign(fp, fb):
            previous = a
            a, fa = p, fp
        else:
            logger.warning("false_position stalled at iteration %d: f(p)=%r", i, fp)
            return _finalize_not_converged(
                result, p, error, "False Position stalled: no sub-interval keeps a sign change."
            )
        error = relative_error(previous, p)
        row["error"] = error
        if converged(previous, p, tol):
            return _finalize_converged(result, p, error)

    return _finalize_not_converged(result, p, error)


def newton_raphson(
    f: Function,
    x0: float,
    tol: float = DEFAULT_TOLERANCE,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
) -> MethodResult:
    max_iter = _check_budget(tol, max_iter)
    result = _base_result("newton_raphson", ["iteration", "x", "f(x)", "f'(x)", "error"])
    x = x0
    error: Optional[float] = None
    for i in range(1, max_iter + 1):
        fx = f(x)
        dfx = f.derivative(x)
        if dfx == 0 or not math.isfinite(dfx):
            logger.debug("newton_raphson: f'(%r) = %r at iteration %d", x, dfx, i)
            raise ZeroDerivativeError(x, i)
        x_new = x - fx / dfx
        error = relative_error(x, x_new)
        result.iterations.append(
            {"iteration": i, "x": x, "f(x)": fx, "f'(x)": dfx, "error": error}
        )
        logger.debug("newton_raphson iter %d: x=%r f(x)=%r f'(x)=%r", i, x, fx, dfx)
        if converged(x, x_new, tol):
            return _finalize_converged(result, x_new, error)
        x = x_new

    return _finalize_not_converged(result, x, error)


def secant(
    f: Function,
    x0: float,
    x1: float,
    tol: float = DEFAULT_TOLERANCE,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
) -> MethodResult:
    max_iter = _check_budget(tol, max_iter)
    if x0 == x1:
        raise DegenerateSeedError(
            f"Secant method needs two distinct initial points, got x0 = x1 = {x0}."
        )
    result = _base_result(
        "secant", ["iteration", "x_prev", "x_curr", "x_next", "f(x_next)", "error"]
    )
    a, b = x0, x1
    fa, fb = f(a), f(b)
    error: Optional[float] = None
    for i in range(1, max_iter + 1):
        denominator = fb - fa
        if denominator == 0:
            logger.warning("secant: f(x_curr) - f(x_prev) is zero at iteration %d", i)
            return _finalize_not_converged(
                result, b, error, "Division by zero encountered in Secant method."
            )
        p = (a * fb - b * fa) / denominator
        fp = f(p)
        error = relative_error(b, p)
        result.iterations.append(
            {
                "iteration": i,
                "x_prev": a,
                "x_curr": b,
                "x_next": p,
                "f(x_next)": fp,
                "error": error,
            }
        )
        logger.debug("secant iter %d: a=%r b=%r p=%r f(p)=%r", i, a, b, p, fp)
        if fp == 0 or converged(b, p, tol):
            return _finalize_converged(result, p, error)
        a, fa = b, fb
        b, fb = p, fp

    return _finalize_not_converged(result, b, error)


# --------------------------------------------------------------------------- #
# Public runner
# --------------------------------------------------------------------------- #

MethodParams = Mapping[str, float]


def _param(params: MethodParams, name: str, method: str) -> float:
    try:
        return float(params[name])
    except KeyError as exc:
        raise ValueError(f"Parameter '{name}' is required for {METHOD_LABELS[method]}.") from exc


def run_method(
    method: str,
    function: Union[Function, str],
    params: MethodParams,
) -> MethodResult:
    """
    Dispatch helper that runs the chosen numerical method.

    Parameters
    ----------
    method : key identifying the algorithm (see `METHOD_LABELS`).
    function : a parsed Function, or expression text to parse.
    params : numeric values needed by the specific method: `a`/`b` for the
        bracketing methods, `x0` for fixed point and Newton-Raphson, `x0`/`x1`
        for the secant method; `tolerance` and `max_iterations` for all.
    """
    method = METHOD_ALIASES.get(method.lower(), method.lower())
    if method not in METHOD_LABELS:
        raise ValueError(f"Unknown method: {method}")

    f = parse_function(function) if isinstance(function, str) else function
    tol = float(params.get("tolerance", DEFAULT_TOLERANCE))
    max_iter = params.get("max_iterations", DEFAULT_MAX_ITERATIONS)

    if method == "bisection":
        return bisection(
            f, a=_param(params, "a", method), b=_param(params, "b", method),
            tol=tol, max_iter=max_iter,
        )
    if method == "false_position":
        return false_position(
            f, a=_param(params, "a", method), b=_param(params, "b", method),
            tol=tol, max_iter=max_iter,
        )
    if method == "fixed_point":
        return fixed_point(f, x0=_param(params, "x0", method), tol=tol, max_iter=max_iter)
    if method == "newton_raphson":
        return newton_raphson(f, x0=_param(params, "x0", method), tol=tol, max_iter=max_iter)
    return secant(
        f, x0=_param(params, "x0", method), x1=_param(params, "x1", method),
        tol=tol, max_iter=max_iter,
    )


# Mapping useful for UI layers
METHOD_LABELS = {
    "bisection": "Bisection Method",
    "fixed_point": "Fixed Point Iteration",
    "false_position": "False Position (Regula Falsi)",
    "newton_raphson": "Newton–Raphson Method",
    "secant": "Secant Method",
}

METHOD_ALIASES = {
    "regula_falsi": "false_position",
    "newton": "newton_raphson",
}

METHOD_PARAMS = {
    "bisection": ("a", "b"),
    "fixed_point": ("x0",),
    "false_position": ("a", "b"),
    "newton_raphson": ("x0",),
    "secant": ("x0", "x1"),
}
