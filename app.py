"""
Flask web GUI for the numerical root-finding toolkit.

Users can:
    - Pick any of the five numerical methods.
    - Enter f(x) (or g(x) for fixed-point iteration) plus method-specific
      parameters.
    - Review per-iteration diagnostics and the final estimated root.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from flask import Flask, render_template, request

from numan_errors import NumanError
from numan_function import parse_function
from numan_solver import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TOLERANCE,
    METHOD_LABELS,
    METHOD_PARAMS,
    MethodResult,
    run_method,
)

logger = logging.getLogger(__name__)

app = Flask(__name__)

DEFAULTS = {
    "function_expr": "x^3 - x - 2",
    "a": "1",
    "b": "2",
    "x0": "1",
    "x1": "2",
    "tolerance": str(DEFAULT_TOLERANCE),
    "max_iterations": str(DEFAULT_MAX_ITERATIONS),
}

# Every method parameter, in form order
PARAM_NAMES = list(dict.fromkeys(name for names in METHOD_PARAMS.values() for name in names))


def _float_from_form(name: str, form, default: Optional[float] = None) -> float:
    raw = form.get(name)
    if raw is None or raw.strip() == "":
        if default is None:
            raise ValueError(f"{name.replace('_', ' ').title()} is required.")
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name.replace('_', ' ').title()} must be numeric.") from exc


def _int_from_form(name: str, form, default: Optional[int] = None) -> int:
    raw = form.get(name)
    if raw is None or raw.strip() == "":
        if default is None:
            raise ValueError(f"{name.replace('_', ' ').title()} is required.")
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name.replace('_', ' ').title()} must be an integer.") from exc


def _collect_params(method: str, form) -> Dict[str, float]:
    if method not in METHOD_PARAMS:
        raise ValueError(f"Unsupported method: {method}")

    params: Dict[str, float] = {
        "tolerance": _float_from_form("tolerance", form, default=DEFAULT_TOLERANCE),
        "max_iterations": _int_from_form(
            "max_iterations", form, default=DEFAULT_MAX_ITERATIONS
        ),
    }
    for name in METHOD_PARAMS[method]:
        params[name] = _float_from_form(name, form)
    return params


@app.route("/", methods=["GET", "POST"])
def index():
    result: Optional[MethodResult] = None
    error_message: Optional[str] = None
    display_function: Optional[str] = None
    selected_method = request.form.get("method", "bisection")
    function_expr = request.form.get("function_expr", DEFAULTS["function_expr"])

    if request.method == "POST":
        function_expr = function_expr.strip()
        if not function_expr:
            error_message = "Please provide f(x)."
        else:
            try:
                params = _collect_params(selected_method, request.form)
                func = parse_function(function_expr)
                display_function = func.to_display_string()
                result = run_method(selected_method, func, params)
            except (NumanError, ValueError) as exc:
                logger.debug("Rejected form input: %s", exc)
                error_message = str(exc)

    context = {
        "methods": METHOD_LABELS,
        "param_names": PARAM_NAMES,
        "needed_params": METHOD_PARAMS.get(selected_method, ()),
        "selected_method": selected_method,
        "function_expr": function_expr,
        "display_function": display_function,
        "form": request.form,
        "defaults": DEFAULTS,
        "result": result,
        "error_message": error_message,
    }
    return render_template("index.html", **context)


if __name__ == "__main__":
    app.run(debug=True)
