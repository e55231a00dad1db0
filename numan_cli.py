"""
Command-Line Interface for the numerical root-finding toolkit.

Two modes:
    - Interactive menu (no arguments): choose one of the five methods, enter
      f(x) and the method parameters, then view per-iteration diagnostics
      plus the final estimated root.
    - One-shot: `numan-cli bisection "x^2-2" --a 0 --b 2`.

The same numerical core is shared with the Flask web interface.
"""

from __future__ import annotations

import argparse
import logging
import math
import sys
from typing import Dict, List, Optional, Sequence

import sympy as sp

from numan_errors import NumanError
from numan_function import X_SYMBOL, Function, parse_function
from numan_solver import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TOLERANCE,
    METHOD_ALIASES,
    METHOD_LABELS,
    METHOD_PARAMS,
    MethodResult,
    run_method,
)

logger = logging.getLogger(__name__)

PARAM_PROMPTS = {
    "a": "Enter point a:",
    "b": "Enter point b:",
    "x0": "Enter initial point (x0):",
    "x1": "Enter second initial point (x1):",
}


def _format_value(value) -> str:
    """Cell text for a trace value: `--` for a missing or undefined number."""
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return "--"
    if isinstance(value, int):
        return str(value)
    return f"{value:.10g}"


def iteration_table(result: MethodResult) -> List[str]:
    """Lines of the per-iteration trace, numbers right-aligned under each column."""
    cells = [
        [_format_value(entry.get(col)) for col in result.columns]
        for entry in result.iterations
    ]
    widths = [len(col) for col in result.columns]
    for row in cells:
        widths = [max(width, len(cell)) for width, cell in zip(widths, row)]

    header = " | ".join(col.center(width) for col, width in zip(result.columns, widths))
    lines = [header, "-+-".join("-" * width for width in widths)]
    for row in cells:
        lines.append(" | ".join(cell.rjust(width) for cell, width in zip(row, widths)))
    return lines


def _print_iterations(result: MethodResult) -> None:
    if not result.iterations:
        print("No iterations were run.")
        return
    print(f"\n{METHOD_LABELS[result.method]}: iteration trace")
    for line in iteration_table(result):
        print(line)


def _display_summary(result: MethodResult) -> None:
    print("\nSummary")
    print("-------")
    if result.converged:
        print("Status        : Converged")
        print(f"Estimated root: {_format_value(result.root)}")
    else:
        print("Status        : No result within the requested tolerance")
        print(f"Last iterate  : {_format_value(result.last_iterate)}")
    print(f"Relative error: {_format_value(result.final_error)}")
    print(f"Iterations    : {result.iterations_used}")
    print(f"Message       : {result.message}")


def _display_function(func: Function, method_key: str) -> None:
    label = "g(x)" if method_key == "fixed_point" else "f(x)"
    print(f"\n{label} = {func}")
    if method_key == "newton_raphson":
        derivative = sp.diff(func.to_sympy(), X_SYMBOL)
        print(f"{label[0]}'(x) = {derivative}")


# --------------------------------------------------------------------------- #
# Interactive prompts
# --------------------------------------------------------------------------- #


def _prompt_float(message: str, *, default: Optional[float] = None) -> float:
    while True:
        raw = input(f"{message} " + (f"[default: {default}] " if default is not None else ""))
        if not raw.strip():
            if default is not None:
                return default
            print("Value is required. Please try again.")
            continue
        try:
            value = float(raw)
        except ValueError:
            print("Invalid number. Please enter a numeric value.")
            continue
        if not math.isfinite(value):
            print("Value must be finite.")
            continue
        return value


def _prompt_positive_float(message: str, *, default: float) -> float:
    while True:
        value = _prompt_float(message, default=default)
        if value > 0:
            return value
        print("Tolerance must be a positive value.")


def _prompt_positive_int(message: str, *, default: int) -> int:
    while True:
        raw = input(f"{message} [default: {default}] ")
        if not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError:
            print("Invalid integer. Please enter a whole number.")
            continue
        if value > 0:
            return value
        print("The number of iterations must be positive.")


def _prompt_function(prompt: str) -> Function:
    while True:
        expr = input(prompt).strip()
        if not expr:
            print("Expression cannot be empty. Please try again.")
            continue
        try:
            return parse_function(expr)
        except NumanError as exc:
            print(f"  {exc}\nPlease try again.")


def _collect_method_params(method_key: str) -> Dict[str, float]:
    params: Dict[str, float] = {}
    for name in METHOD_PARAMS[method_key]:
        params[name] = _prompt_float(PARAM_PROMPTS[name])
    if method_key == "secant":
        while params["x1"] == params["x0"]:
            print("The two initial points must be different.")
            params["x1"] = _prompt_float(PARAM_PROMPTS["x1"])

    params["tolerance"] = _prompt_positive_float(
        "Enter tolerance (relative error, > 0):", default=DEFAULT_TOLERANCE
    )
    params["max_iterations"] = _prompt_positive_int(
        "Enter maximum iterations (> 0):", default=DEFAULT_MAX_ITERATIONS
    )
    return params


def interactive() -> None:
    print("=" * 70)
    print("Numerical Analysis - root finding")
    print("Enter functions using x, e.g. 3x^2 + 2x - 5 or 2sin(x^2) - x")
    print("=" * 70)

    method_keys = list(METHOD_LABELS.keys())

    while True:
        print("\nAvailable Methods:")
        for idx, key in enumerate(method_keys, start=1):
            print(f"  {idx}. {METHOD_LABELS[key]}")
        print("  0. Exit")

        choice_raw = input("\nSelect a method by number: ").strip()
        if choice_raw == "0":
            print("Thanks for using the solver!")
            break
        try:
            choice = int(choice_raw)
            if choice < 1:
                raise IndexError(choice)
            method_key = method_keys[choice - 1]
        except (ValueError, IndexError):
            print("Invalid selection. Please choose a valid method number.")
            continue

        prompt = "Enter g(x): " if method_key == "fixed_point" else "Enter f(x): "
        func = _prompt_function(prompt)
        params = _collect_method_params(method_key)

        try:
            result = run_method(method_key, func, params)
        except (NumanError, ValueError) as exc:
            print(f"Input error: {exc}")
            continue

        _display_function(func, method_key)
        _print_iterations(result)
        _display_summary(result)


# --------------------------------------------------------------------------- #
# One-shot mode
# --------------------------------------------------------------------------- #


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="numan-cli",
        description=(
            "Find a root of f(x) built from x^N, sin(x^N), cos(x^N) and tan(x^N) "
            "terms. Run without arguments for the interactive menu."
        ),
    )
    parser.add_argument(
        "method",
        nargs="?",
        choices=sorted(set(METHOD_LABELS) | set(METHOD_ALIASES)),
        help="root-finding method",
    )
    parser.add_argument("expression", nargs="?", help='function text, e.g. "x^2-2"')
    parser.add_argument("--a", type=float, help="left end of the bracket")
    parser.add_argument("--b", type=float, help="right end of the bracket")
    parser.add_argument("--x0", type=float, help="initial point")
    parser.add_argument("--x1", type=float, help="second initial point (secant)")
    parser.add_argument("--tolerance", type=float, default=DEFAULT_TOLERANCE,
                        help="relative error bound (default: %(default)s)")
    parser.add_argument("--max-iterations", type=int, default=DEFAULT_MAX_ITERATIONS,
                        help="iteration budget (default: %(default)s)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="log every iteration")
    return parser


def one_shot(args: argparse.Namespace) -> int:
    method_key = METHOD_ALIASES.get(args.method, args.method)
    params: Dict[str, float] = {
        "tolerance": args.tolerance,
        "max_iterations": args.max_iterations,
    }
    for name in METHOD_PARAMS[method_key]:
        value = getattr(args, name)
        if value is None:
            print(f"Input error: --{name} is required for {METHOD_LABELS[method_key]}.",
                  file=sys.stderr)
            return 2
        params[name] = value

    logger.debug("One-shot %s on %r with %s", method_key, args.expression, params)
    try:
        func = parse_function(args.expression)
        result = run_method(method_key, func, params)
    except (NumanError, ValueError) as exc:
        print(f"Input error: {exc}", file=sys.stderr)
        return 2

    _display_function(func, method_key)
    _print_iterations(result)
    _display_summary(result)
    return 0 if result.converged else 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.method is None:
        interactive()
        return 0
    if args.expression is None:
        parser.error("an expression is required when a method is given")
    return one_shot(args)


if __name__ == "__main__":
    sys.exit(main())
