"""
The Function container: a term -> coefficient mapping with analytic
evaluation and differentiation.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, Mapping, Optional, Tuple

import sympy as sp

from numan_errors import DuplicateTermError, UnknownTermError
from numan_parser import parse
from numan_terms import KeyLike, PolyTerm, Term, parse_key, sort_key

logger = logging.getLogger(__name__)

X_SYMBOL = sp.symbols("x")

_SYMPY_TRIG = {"sin": sp.sin, "cos": sp.cos, "tan": sp.tan}


def _format_number(value: float) -> str:
    return f"{value:g}"


class Function:
    """
    f(x) = sum(coefficient * term(x)).

    Built empty and populated once, either by parsing an expression or
    through `add`/`update`. Root finders only read it.
    """

    def __init__(self, coefficients: Optional[Mapping[KeyLike, float]] = None):
        self._coeff: Dict[Term, float] = {}
        for key, value in (coefficients or {}).items():
            self.add(key, value)

    @classmethod
    def parse(cls, text: str) -> "Function":
        func = cls()
        func.extract_expression(text)
        return func

    def extract_expression(self, text: str) -> None:
        """Accumulate the terms of `text` into this function."""
        parsed = parse(text)
        for term, value in parsed.items():
            self._coeff[term] = self._coeff.get(term, 0.0) + value

    # ------------------------------------------------------------------ #
    # Evaluation
    # ------------------------------------------------------------------ #

    def evaluate(self, x: float) -> float:
        total = 0.0
        for term, coef in self._coeff.items():
            total += coef * term.evaluate(x)
        return total

    __call__ = evaluate

    def derivative(self, x: float) -> float:
        total = 0.0
        for term, coef in self._coeff.items():
            total += coef * term.derivative(x)
        return total

    # ------------------------------------------------------------------ #
    # Mapping access
    # ------------------------------------------------------------------ #

    def get(self, key: KeyLike) -> float:
        return self._coeff.get(parse_key(key), 0.0)

    def add(self, key: KeyLike, value: float) -> None:
        term = parse_key(key)
        if term in self._coeff:
            raise DuplicateTermError(
                f'Term "{term}" already exists; use update() to change it.'
            )
        self._coeff[term] = float(value)

    def update(self, key: KeyLike, value: float) -> None:
        term = parse_key(key)
        if term not in self._coeff:
            raise UnknownTermError(f'Term "{term}" does not exist; use add() instead.')
        self._coeff[term] = float(value)

    def terms(self) -> Iterator[Tuple[Term, float]]:
        """(term, coefficient) pairs in deterministic display order."""
        for term in sorted(self._coeff, key=sort_key):
            yield term, self._coeff[term]

    def coefficients(self) -> Dict[str, float]:
        """Canonical-key view of the mapping, e.g. {"poly(2)": 3.0}."""
        return {term.key: coef for term, coef in self.terms()}

    def __len__(self) -> int:
        return len(self._coeff)

    def __contains__(self, key) -> bool:
        try:
            return parse_key(key) in self._coeff
        except ValueError:
            return False

    def __eq__(self, other) -> bool:
        if not isinstance(other, Function):
            return NotImplemented
        return self._coeff == other._coeff

    # ------------------------------------------------------------------ #
    # Presentation
    # ------------------------------------------------------------------ #

    def to_display_string(self) -> str:
        parts = []
        for term, coef in self.terms():
            if coef == 0:
                continue
            magnitude = abs(coef)
            is_constant = isinstance(term, PolyTerm) and term.degree == 0
            body = term.display()
            if is_constant or magnitude != 1:
                body = _format_number(magnitude) + body
            if not parts:
                parts.append(f"-{body}" if coef < 0 else body)
            else:
                parts.append(f"- {body}" if coef < 0 else f"+ {body}")
        return " ".join(parts) if parts else "0"

    def __str__(self) -> str:
        return self.to_display_string()

    def __repr__(self) -> str:
        return f"Function({self.coefficients()!r})"

    def to_sympy(self) -> sp.Expr:
        """The same function as a sympy expression in `x`."""
        expr = sp.Integer(0)
        for term, coef in self.terms():
            if isinstance(term, PolyTerm):
                basis = X_SYMBOL ** term.degree
            else:
                basis = _SYMPY_TRIG[term.function](X_SYMBOL ** term.degree)
            expr += sp.nsimplify(coef, rational=True) * basis
        return expr


def parse_function(text: str) -> Function:
    """Build a Function from its textual form; raises ParseError."""
    func = Function.parse(text)
    logger.debug("Parsed function f(x) = %s", func)
    return func
