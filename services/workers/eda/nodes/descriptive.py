from __future__ import annotations
import logging
import math
from typing import Any, Dict, List, MutableMapping, Optional, Sequence

from ..core.state import _with_phase, _emit_callback
from ..core.types import ColumnClassification, DescriptiveStats, Row
from ..core.utils import _column_values, _mean

logger = logging.getLogger(__name__)

_NAN = float("nan")


def descriptive_stats_node(state: MutableMapping[str, Any]) -> Dict[str, Any]:
    table: List[Row] = state["table"]
    classification: ColumnClassification = state["classification"]

    stats = compute_descriptive_stats(table, classification.numeric_columns)
    payload = {
        "numericColumns": len(stats),
        "descriptiveStats": {name: item.to_dict() for name, item in stats.items()},
        "outliers": {name: item.outlier_count for name, item in stats.items() if item.outlier_count},
    }
    update = _with_phase(state, "descriptive_stats", payload, column_stats=stats)
    _emit_callback(state, "descriptive_stats", payload)
    return update


def compute_descriptive_stats(table: Sequence[Row], numeric_columns: Sequence[str]) -> Dict[str, DescriptiveStats]:
    stats: Dict[str, DescriptiveStats] = {}
    for name in numeric_columns:
        described = describe_values(name, _column_values(table, name))
        if described is not None:
            stats[name] = described
    return stats


def describe_values(column: str, values: Sequence[float]) -> Optional[DescriptiveStats]:
    """
    Summarise one numeric column.

    Quartiles are read at sorted index ``floor(n * p)`` without interpolation
    and the variance is the population variance. Shape statistics fall back to
    ``0`` for a constant column and to ``nan`` when ``n`` is too small for the
    small-sample correction (skewness needs ``n >= 3``, kurtosis ``n >= 4``).
    """
    ordered = sorted(values)
    n = len(ordered)
    if n == 0:
        return None

    middle = n // 2
    median = (ordered[middle - 1] + ordered[middle]) / 2 if n % 2 == 0 else ordered[middle]
    if ordered[0] == ordered[-1]:
        # constant column: rounding in the mean must not leave a residual spread
        mean = ordered[0]
        std_dev = 0.0
    else:
        mean = _mean(ordered)
        std_dev = math.sqrt(sum((value - mean) ** 2 for value in ordered) / n)

    q1 = ordered[math.floor(n * 0.25)]
    q3 = ordered[math.floor(n * 0.75)]
    iqr = q3 - q1
    lower_fence = q1 - 1.5 * iqr
    upper_fence = q3 + 1.5 * iqr
    outlier_count = sum(1 for value in ordered if value < lower_fence or value > upper_fence)

    skewness, kurtosis = _shape_statistics(ordered, mean, std_dev)

    return DescriptiveStats(
        column=column,
        count=n,
        mean=mean,
        median=median,
        std_dev=std_dev,
        min=ordered[0],
        max=ordered[-1],
        q1=q1,
        q3=q3,
        iqr=iqr,
        outlier_count=outlier_count,
        skewness=skewness,
        kurtosis=kurtosis,
    )


def _shape_statistics(values: Sequence[float], mean: float, std_dev: float) -> tuple[float, float]:
    n = len(values)
    if std_dev == 0:
        return 0.0, 0.0

    standardized = [(value - mean) / std_dev for value in values]

    skewness = _NAN
    if n >= 3:
        skewness = (n / ((n - 1) * (n - 2))) * sum(z ** 3 for z in standardized)

    kurtosis = _NAN
    if n >= 4:
        kurtosis = (n * (n + 1) / ((n - 1) * (n - 2) * (n - 3))) * sum(z ** 4 for z in standardized) - (
            3 * (n - 1) ** 2 / ((n - 2) * (n - 3))
        )
    else:
        logger.debug("kurtosis undefined for %d observations", n)

    return skewness, kurtosis
