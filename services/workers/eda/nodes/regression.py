from __future__ import annotations
import logging
import math
from typing import Any, Dict, List, MutableMapping, Optional, Sequence, Tuple

import numpy as np
from sklearn.metrics import accuracy_score

from ..core.constants import (
    _LOGISTIC_ITERATIONS,
    _LOGISTIC_LEARNING_RATE,
    _MAX_REGRESSION_COLUMNS,
    _MAX_REGRESSION_PAIRS,
    _MIN_LOGISTIC_OBSERVATIONS,
)
from ..core.state import _with_phase, _emit_callback
from ..core.types import (
    STATUS_COMPLETED,
    STATUS_SKIPPED,
    ColumnClassification,
    LinearRegressionResult,
    LogisticRegressionResult,
    Row,
    Value,
)
from ..core.utils import _format_number, _is_number, _mean

logger = logging.getLogger(__name__)

_NAN = float("nan")


def regression_node(state: MutableMapping[str, Any]) -> Dict[str, Any]:
    table: List[Row] = state["table"]
    classification: ColumnClassification = state["classification"]

    linear = run_linear_regressions(table, classification.numeric_columns)
    logistic = run_logistic_regression(table, classification)

    status = {
        "linear": _status_entry(
            bool(linear),
            f"Fitted {len(linear)} column pair(s).",
            "Linear regression requires two numeric columns with paired values.",
        ),
        "logistic": _status_entry(
            logistic is not None,
            "Fitted one binary target.",
            "Logistic regression requires a two-class categorical column, a numeric feature "
            f"and at least {_MIN_LOGISTIC_OBSERVATIONS} paired observations.",
        ),
    }
    logistic_results = [logistic] if logistic is not None else []
    logger.info(
        "regression: %d linear fit(s), logistic %s",
        len(linear),
        status["logistic"]["status"],
    )

    payload = {
        "linearRegression": [item.to_dict() for item in linear],
        "logisticRegression": [item.to_dict() for item in logistic_results],
        "status": status,
    }
    update = _with_phase(
        state,
        "regression",
        payload,
        linear_regression=linear,
        logistic_regression=logistic_results,
        regression_status=status,
    )
    _emit_callback(state, "regression", payload)
    return update


def _status_entry(completed: bool, done_message: str, skipped_message: str) -> Dict[str, str]:
    if completed:
        return {"status": STATUS_COMPLETED, "message": done_message}
    return {"status": STATUS_SKIPPED, "message": skipped_message}


def _paired_values(table: Sequence[Row], x_column: str, y_column: str) -> Tuple[List[float], List[float]]:
    xs: List[float] = []
    ys: List[float] = []
    for row in table:
        x = row.get(x_column)
        y = row.get(y_column)
        if _is_number(x) and _is_number(y):
            xs.append(float(x))
            ys.append(float(y))
    return xs, ys


def regression_pairs(numeric_columns: Sequence[str]) -> List[Tuple[str, str]]:
    candidates = list(numeric_columns[:_MAX_REGRESSION_COLUMNS])
    pairs: List[Tuple[str, str]] = []
    for i, x_column in enumerate(candidates):
        for y_column in candidates[i + 1 :]:
            pairs.append((x_column, y_column))
    return pairs[:_MAX_REGRESSION_PAIRS]


def run_linear_regressions(table: Sequence[Row], numeric_columns: Sequence[str]) -> List[LinearRegressionResult]:
    results: List[LinearRegressionResult] = []
    for x_column, y_column in regression_pairs(numeric_columns):
        xs, ys = _paired_values(table, x_column, y_column)
        if not xs:
            continue
        results.append(fit_linear(x_column, y_column, xs, ys))
    return results


def fit_linear(x_column: str, y_column: str, xs: Sequence[float], ys: Sequence[float]) -> LinearRegressionResult:
    """
    Closed-form ordinary least squares for ``y = slope * x + intercept``.

    A constant ``x`` leaves slope, intercept and r-squared undefined (``nan``);
    a constant ``y`` leaves r-squared undefined; either leaves the correlation
    undefined. Constancy is judged on the values themselves, and the sums are
    taken over centred values.
    """
    n = len(xs)
    constant_x = min(xs) == max(xs)
    constant_y = min(ys) == max(ys)
    mean_x = xs[0] if constant_x else _mean(xs)
    mean_y = ys[0] if constant_y else _mean(ys)

    s_xx = sum((x - mean_x) ** 2 for x in xs)
    s_yy = sum((y - mean_y) ** 2 for y in ys)
    s_xy = sum((x - mean_x) * (y - mean_y) for x, y in zip(xs, ys))

    if constant_x:
        slope = intercept = _NAN
    else:
        slope = s_xy / s_xx
        intercept = mean_y - slope * mean_x

    if constant_y or constant_x:
        r_squared = _NAN
    else:
        ss_residual = sum((y - (slope * x + intercept)) ** 2 for x, y in zip(xs, ys))
        r_squared = 1 - ss_residual / s_yy

    correlation = _NAN if constant_x or constant_y else s_xy / math.sqrt(s_xx * s_yy)

    return LinearRegressionResult(
        x_column=x_column,
        y_column=y_column,
        slope=slope,
        intercept=intercept,
        r_squared=r_squared,
        correlation=correlation,
        equation=_equation(y_column, x_column, slope, intercept),
        observations=n,
    )


def _equation(y_column: str, x_column: str, slope: float, intercept: float) -> str:
    if math.isnan(slope):
        return f"{y_column} is undefined in terms of {x_column} (no variation in {x_column})"
    sign = "-" if intercept < 0 else "+"
    return f"{y_column} = {_format_number(slope)} * {x_column} {sign} {_format_number(abs(intercept))}"


def _binary_target(table: Sequence[Row], categorical_columns: Sequence[str]) -> Optional[Tuple[str, List[Value]]]:
    for name in categorical_columns:
        classes: List[Value] = []
        for row in table:
            value = row.get(name)
            if value is None or value in classes:
                continue
            classes.append(value)
            if len(classes) > 2:
                break
        if len(classes) == 2:
            return name, classes
    return None


def _sigmoid(z: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-z))


def run_logistic_regression(
    table: Sequence[Row], classification: ColumnClassification
) -> Optional[LogisticRegressionResult]:
    if not classification.numeric_columns:
        return None
    target = _binary_target(table, classification.categorical_columns)
    if target is None:
        return None
    target_column, classes = target
    feature_column = classification.numeric_columns[0]

    features: List[float] = []
    labels: List[int] = []
    for row in table:
        x = row.get(feature_column)
        y = row.get(target_column)
        if _is_number(x) and y is not None:
            features.append(float(x))
            labels.append(classes.index(y))
    if len(features) < _MIN_LOGISTIC_OBSERVATIONS:
        return None

    return fit_logistic(feature_column, target_column, classes, features, labels)


def fit_logistic(
    feature_column: str,
    target_column: str,
    classes: Sequence[Value],
    features: Sequence[float],
    labels: Sequence[int],
    *,
    learning_rate: float = _LOGISTIC_LEARNING_RATE,
    iterations: int = _LOGISTIC_ITERATIONS,
) -> LogisticRegressionResult:
    """Full-batch gradient descent on the cross-entropy loss of a standardised feature."""
    x = np.asarray(features, dtype=float)
    y = np.asarray(labels, dtype=float)
    if x.size == 0 or x.min() == x.max():
        x = np.zeros_like(x)
    else:
        x = (x - x.mean()) / x.std()

    weight = 0.0
    bias = 0.0
    for _ in range(iterations):
        error = _sigmoid(weight * x + bias) - y
        weight -= learning_rate * float(np.mean(error * x))
        bias -= learning_rate * float(np.mean(error))

    predictions = (_sigmoid(weight * x + bias) >= 0.5).astype(int)
    accuracy = float(accuracy_score(y.astype(int), predictions))

    return LogisticRegressionResult(
        feature_column=feature_column,
        target_column=target_column,
        weight=weight,
        bias=bias,
        accuracy=accuracy,
        classes=list(classes),
        interpretation=_interpret(feature_column, classes, weight, accuracy),
        observations=len(labels),
    )


def _interpret(feature_column: str, classes: Sequence[Value], weight: float, accuracy: float) -> str:
    if weight == 0:
        direction = f"{feature_column} does not separate {classes[0]} from {classes[1]}"
    else:
        favoured = classes[1] if weight > 0 else classes[0]
        direction = (
            f"higher {feature_column} favours '{favoured}' "
            f"(odds ratio {math.exp(abs(weight)):.2f} per standard deviation)"
        )
    return f"{direction}; training accuracy {accuracy:.1%}"
