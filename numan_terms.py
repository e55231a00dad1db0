"""
Term keys and their per-term value/derivative rules.

Two families of basis functions are supported:
    PolyTerm(N)      x^N,     N >= 0
    TrigTerm(F, N)   F(x^N),  F in {sin, cos, tan}, N >= 1

Both are frozen dataclasses, so they can be used directly as mapping keys.
Their canonical text forms are `poly(N)` and `trig(F,N)`.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Tuple, Union

from numan_errors import InvalidTermError


TRIG_FUNCTIONS = ("sin", "cos", "tan")

_POLY_KEY_RE = re.compile(r"^poly\((\d+)\)$")
_TRIG_KEY_RE = re.compile(r"^trig\((sin|cos|tan),(\d+)\)$")


# --------------------------------------------------------------------------- #
# IEEE-propagating helpers
# --------------------------------------------------------------------------- #


def _power(x: float, n: int) -> float:
    """x ** n, returning a signed infinity instead of raising on overflow."""
    try:
        return float(x) ** n
    except OverflowError:
        sign = -1.0 if (x < 0 and n % 2 == 1) else 1.0
        return sign * math.inf


def _trig(name: str, u: float) -> float:
    """sin/cos/tan of `u`; NaN for non-finite arguments."""
    if not math.isfinite(u):
        return math.nan
    return getattr(math, name)(u)


def _sec_squared(u: float) -> float:
    if not math.isfinite(u):
        return math.nan
    c = math.cos(u)
    if c == 0.0:
        return math.inf
    return 1.0 / (c * c)


def _inner_derivative(x: float, n: int) -> float:
    """d/dx x^n."""
    if n == 0:
        return 0.0
    return n * _power(x, n - 1)


# --------------------------------------------------------------------------- #
# Term types
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class PolyTerm:
    degree: int

    def __post_init__(self):
        if isinstance(self.degree, bool) or not isinstance(self.degree, int):
            raise InvalidTermError(f"Polynomial degree must be an integer, got {self.degree!r}")
        if self.degree < 0:
            raise InvalidTermError(f"Polynomial degree must be >= 0, got {self.degree}")

    @property
    def key(self) -> str:
        return f"poly({self.degree})"

    def evaluate(self, x: float) -> float:
        return _power(x, self.degree)

    def derivative(self, x: float) -> float:
        return _inner_derivative(x, self.degree)

    def display(self) -> str:
        if self.degree == 0:
            return ""
        if self.degree == 1:
            return "x"
        return f"x^{self.degree}"

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class TrigTerm:
    function: str
    degree: int = 1

    def __post_init__(self):
        if self.function not in TRIG_FUNCTIONS:
            raise InvalidTermError(
                f"Trig function must be one of {', '.join(TRIG_FUNCTIONS)}, got {self.function!r}"
            )
        if isinstance(self.degree, bool) or not isinstance(self.degree, int):
            raise InvalidTermError(f"Trig argument degree must be an integer, got {self.degree!r}")
        if self.degree < 1:
            raise InvalidTermError(f"Trig argument degree must be >= 1, got {self.degree}")

    @property
    def key(self) -> str:
        return f"trig({self.function},{self.degree})"

    def evaluate(self, x: float) -> float:
        return _trig(self.function, _power(x, self.degree))

    def derivative(self, x: float) -> float:
        # Chain rule: F'(x^N) * N * x^(N-1)
        u = _power(x, self.degree)
        inner = _inner_derivative(x, self.degree)
        if self.function == "sin":
            outer = _trig("cos", u)
        elif self.function == "cos":
            outer = -_trig("sin", u)
        else:
            outer = _sec_squared(u)
        return outer * inner

    def display(self) -> str:
        argument = "x" if self.degree == 1 else f"x^{self.degree}"
        return f"{self.function}({argument})"

    def __str__(self) -> str:
        return self.key


Term = Union[PolyTerm, TrigTerm]
KeyLike = Union[PolyTerm, TrigTerm, str]


# --------------------------------------------------------------------------- #
# Key helpers
# --------------------------------------------------------------------------- #


def parse_key(key: KeyLike) -> Term:
    """Return the term object for `key` (a term or its `poly(N)`/`trig(F,N)` text)."""
    if isinstance(key, (PolyTerm, TrigTerm)):
        return key
    if not isinstance(key, str):
        raise InvalidTermError(f"Term key must be a string or term, got {type(key).__name__}")

    compact = "".join(key.split())
    match = _POLY_KEY_RE.match(compact)
    if match:
        return PolyTerm(int(match.group(1)))
    match = _TRIG_KEY_RE.match(compact)
    if match:
        return TrigTerm(match.group(1), int(match.group(2)))
    raise InvalidTermError(f"Invalid term key: {key!r}")


def is_valid_key(key: KeyLike) -> bool:
    try:
        parse_key(key)
    except InvalidTermError:
        return False
    return True


def evaluate_key(key: KeyLike, x: float) -> float:
    """Value of the basis function named by `key` at `x`."""
    return parse_key(key).evaluate(x)


def derivative_key(key: KeyLike, x: float) -> float:
    """Derivative of the basis function named by `key` at `x`."""
    return parse_key(key).derivative(x)


def sort_key(term: Term) -> Tuple[int, int, int]:
    """Display order: x^N descending, then sin/cos/tan terms, then the constant."""
    if isinstance(term, PolyTerm):
        if term.degree == 0:
            return (2, 0, 0)
        return (0, 0, -term.degree)
    return (1, TRIG_FUNCTIONS.index(term.function), -term.degree)
