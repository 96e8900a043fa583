from __future__ import annotations
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Sequence

import pandas as pd

from ..core.constants import (
    _CLUSTER_FIELD,
    _HISTOGRAM_BINS,
    _MAX_BAR_GROUPS,
    _MAX_SCATTER_POINTS,
    _MAX_TREND_POINTS,
)
from ..core.state import _with_phase, _emit_callback
from ..core.types import (
    ClusteringResult,
    ColumnClassification,
    DescriptiveStats,
    LinearRegressionResult,
    Row,
    VisualizationSpec,
)
from ..core.utils import _is_number


def labeled_rows(table: Sequence[Row], clustering: Optional[ClusteringResult]) -> List[Row]:
    """Copies of ``table`` rows carrying their cluster label, when one was assigned."""
    if clustering is None or not clustering.assignments:
        return [dict(row) for row in table]
    labeled: List[Row] = []
    for index, row in enumerate(table):
        copy = dict(row)
        if index in clustering.assignments:
            copy[_CLUSTER_FIELD] = clustering.assignments[index]
        labeled.append(copy)
    return labeled


def visualization_node(state: MutableMapping[str, Any]) -> Dict[str, Any]:
    specs = build_visualizations(
        state["table"],
        state["classification"],
        state.get("column_stats", {}),
        state.get("cluster_result"),
        state.get("linear_regression", []),
    )
    payload = {"visualizations": [spec.to_dict() for spec in specs]}
    update = _with_phase(state, "visualization", payload, visualizations=specs)
    _emit_callback(state, "visualization", payload)
    return update


def build_visualizations(
    table: Sequence[Row],
    classification: ColumnClassification,
    stats: Mapping[str, DescriptiveStats],
    clustering: Optional[ClusteringResult],
    linear: Sequence[LinearRegressionResult],
) -> List[VisualizationSpec]:
    specs: List[VisualizationSpec] = []
    numeric = classification.numeric_columns
    first_numeric = numeric[0] if numeric else None

    if first_numeric is not None:
        category = _grouping_column(table, classification.categorical_columns)
        if category is not None:
            bar = _grouped_means(table, classification.columns, category, first_numeric)
            if bar is not None:
                specs.append(bar)
        specs.append(_trend(table, first_numeric))

    if linear:
        specs.append(_scatter(labeled_rows(table, clustering), linear[0]))

    if first_numeric is not None and first_numeric in stats:
        specs.append(_histogram(table, stats[first_numeric]))

    return specs


def _grouping_column(table: Sequence[Row], categorical_columns: Sequence[str]) -> Optional[str]:
    for name in categorical_columns:
        if name == _CLUSTER_FIELD:
            continue
        if any(row.get(name) is not None for row in table):
            return name
    return None


def _native(value: Any) -> Any:
    return value.item() if hasattr(value, "item") else value


def _grouped_means(
    table: Sequence[Row], columns: Sequence[str], category: str, value_column: str
) -> Optional[VisualizationSpec]:
    frame = pd.DataFrame(list(table), columns=list(columns))
    subset = frame[[category, value_column]].dropna()
    if subset.empty:
        return None
    grouped = subset.groupby(category, sort=False)[value_column].agg(["mean", "count"]).head(_MAX_BAR_GROUPS)

    data = [
        {category: _native(group), value_column: float(row["mean"]), "count": int(row["count"])}
        for group, row in grouped.iterrows()
    ]
    return VisualizationSpec(
        type="bar",
        available_types=["bar", "line", "pie"],
        title=f"Average {value_column} by {category}",
        description=f"Mean {value_column} for the first {len(data)} {category} groups.",
        x_axis=category,
        y_axis=value_column,
        data=data,
    )


def _trend(table: Sequence[Row], column: str) -> VisualizationSpec:
    data = [
        {"index": position + 1, column: row.get(column)}
        for position, row in enumerate(table[:_MAX_TREND_POINTS])
    ]
    return VisualizationSpec(
        type="line",
        available_types=["line", "area", "bar"],
        title=f"{column} trend",
        description=f"{column} across the first {len(data)} rows in dataset order.",
        x_axis="index",
        y_axis=column,
        data=data,
    )


def _scatter(rows: Sequence[Row], regression: LinearRegressionResult) -> VisualizationSpec:
    x_column = regression.x_column
    y_column = regression.y_column
    data: List[Dict[str, Any]] = []
    for row in rows[:_MAX_SCATTER_POINTS]:
        x = row.get(x_column)
        y = row.get(y_column)
        if not (_is_number(x) and _is_number(y)):
            continue
        point: Dict[str, Any] = {x_column: x, y_column: y}
        if _CLUSTER_FIELD in row:
            point[_CLUSTER_FIELD] = row[_CLUSTER_FIELD]
        data.append(point)
    return VisualizationSpec(
        type="scatter",
        available_types=["scatter"],
        title=f"{y_column} vs {x_column}",
        description=f"Relationship between {x_column} and {y_column} ({regression.equation}).",
        x_axis=x_column,
        y_axis=y_column,
        data=data,
    )


def _histogram(table: Sequence[Row], stats: DescriptiveStats) -> VisualizationSpec:
    column = stats.column
    low, high = stats.min, stats.max
    width = (high - low) / _HISTOGRAM_BINS
    bins = _HISTOGRAM_BINS if width > 0 else 1

    counts = [0] * bins
    for row in table:
        value = row.get(column)
        if not _is_number(value):
            continue
        position = int((value - low) / width) if width > 0 else 0
        counts[min(max(position, 0), bins - 1)] += 1

    data = []
    for index, count in enumerate(counts):
        start = low + index * width
        end = low + (index + 1) * width if width > 0 else high
        data.append(
            {
                "range": f"{start:.2f}-{end:.2f}",
                "binStart": start,
                "binEnd": end,
                "count": count,
            }
        )
    return VisualizationSpec(
        type="histogram",
        available_types=["histogram", "bar"],
        title=f"Distribution of {column}",
        description=f"{bins} equal-width bins spanning {low} to {high}.",
        x_axis="range",
        y_axis="count",
        data=data,
    )
