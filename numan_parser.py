"""
Parser for the compact textual function grammar.

Examples of accepted input:
    "3x^2 + 2x - 5", "x^2+3x^2", "2sin(x^2) - cos(x) + 0.5", "-tan(x^3)"

Rules:
    - whitespace is ignored everywhere;
    - terms are split on `+`/`-` at parenthesis depth 0 only;
    - trig functions need a parenthesized `x` or `x^D` argument;
    - a missing coefficient means 1 (the sign still applies);
    - repeated terms accumulate into a single coefficient.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List

from numan_errors import InvalidTermError, ParseError
from numan_terms import PolyTerm, Term, TrigTerm

logger = logging.getLogger(__name__)

_NUMBER = r"(\d+\.?\d*|\.\d+)"

_TRIG_TERM_RE = re.compile(
    r"^([+-]?)" + _NUMBER + r"?(sin|cos|tan)\(x(?:\^(\d+))?\)$"
)
_POLY_TERM_RE = re.compile(r"^([+-]?)" + _NUMBER + r"?(x?)(?:\^(\d+))?$")
_BARE_TRIG_RE = re.compile(r"(sin|cos|tan)(?!\()")


def split_terms(expr: str) -> List[str]:
    """
    Split an expression (already stripped of whitespace) into signed terms.

    A `+` or `-` starts a new term only at parenthesis depth 0, and never at
    position 0, where it is the sign of the first term.
    """
    tokens: List[str] = []
    depth = 0
    start = 0
    for pos, char in enumerate(expr):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise ParseError("Unbalanced parentheses", expr[: pos + 1])
        elif char in "+-" and depth == 0 and pos > 0:
            tokens.append(expr[start:pos])
            start = pos
    if depth != 0:
        raise ParseError("Unbalanced parentheses", expr)
    tokens.append(expr[start:])
    return [token for token in tokens if token]


def _signed(sign: str, digits: str) -> float:
    value = float(digits) if digits else 1.0
    return -value if sign == "-" else value


def _classify(token: str):
    """
    Return (term, coefficient) for a single token, or None for an empty term.
    """
    match = _TRIG_TERM_RE.match(token)
    if match:
        sign, digits, func, exponent = match.groups()
        degree = int(exponent) if exponent is not None else 1
        try:
            term: Term = TrigTerm(func, degree)
        except InvalidTermError as exc:
            raise ParseError("Trig argument must be x or x^D with D >= 1", token) from exc
        return term, _signed(sign, digits)

    match = _POLY_TERM_RE.match(token)
    if match:
        sign, digits, has_x, exponent = match.groups()
        if not has_x and not digits:
            if exponent is not None:
                raise ParseError("Unrecognized term", token)
            return None
        if has_x:
            degree = int(exponent) if exponent is not None else 1
        elif exponent is not None:
            raise ParseError("Unrecognized term", token)
        else:
            degree = 0
        return PolyTerm(degree), _signed(sign, digits)

    raise ParseError("Unrecognized term", token)


def parse(text: str) -> Dict[Term, float]:
    """
    Turn `text` into a term -> coefficient mapping.

    Raises ParseError on the first term that cannot be classified; nothing
    is returned for a partially understood expression.
    """
    if text is None:
        raise ParseError("Function expression cannot be empty.")
    expr = "".join(text.split())
    if not expr:
        raise ParseError("Function expression cannot be empty.")

    bare = _BARE_TRIG_RE.search(expr)
    if bare:
        raise ParseError(
            "Trig requires parenthesized monomial argument", expr[bare.start():]
        )

    coefficients: Dict[Term, float] = {}
    for token in split_terms(expr):
        classified = _classify(token)
        if classified is None:
            logger.debug("Skipping empty term %r", token)
            continue
        term, value = classified
        coefficients[term] = coefficients.get(term, 0.0) + value
        logger.debug("Parsed %r as %s with coefficient %s", token, term, value)

    return coefficients
