"""
Exception taxonomy shared by the parser, the Function container and the
root finders.

Running out of iterations is *not* an error: the solvers report it through
`MethodResult.converged`.
"""

from __future__ import annotations

from typing import Optional


class NumanError(Exception):
    """Base class for every error raised by the numerical core."""


# --------------------------------------------------------------------------- #
# Parsing
# --------------------------------------------------------------------------- #


class ParseError(NumanError, ValueError):
    """Raised when an expression (or one of its terms) cannot be classified."""

    def __init__(self, message: str, term: Optional[str] = None):
        if term is not None:
            message = f'{message}: "{term}"'
        super().__init__(message)
        self.term = term


# --------------------------------------------------------------------------- #
# Coefficient mapping
# --------------------------------------------------------------------------- #


class TermError(NumanError, ValueError):
    """Base class for invalid mutations of a Function's coefficients."""


class InvalidTermError(TermError):
    """The key does not name a polynomial or trigonometric term."""


class DuplicateTermError(TermError):
    """`add` was called for a term that already has a coefficient."""


class UnknownTermError(TermError):
    """`update` was called for a term that has no coefficient yet."""


# --------------------------------------------------------------------------- #
# Root finding
# --------------------------------------------------------------------------- #


class RootFindingError(NumanError):
    """A root finder's precondition does not hold."""


class InvalidBracketError(RootFindingError):
    """f(a) and f(b) do not have opposite signs."""


class DegenerateSeedError(RootFindingError):
    """The secant method was seeded with two equal points."""


class ZeroDerivativeError(RootFindingError):
    """Newton-Raphson met a zero or undefined derivative."""

    def __init__(self, x: float, iteration: int):
        super().__init__(
            f"Derivative is zero or undefined at x={x} (iteration {iteration}); "
            "Newton-Raphson cannot proceed."
        )
        self.x = x
        self.iteration = iteration
