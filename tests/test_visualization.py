import pytest

from services.workers.eda.core.types import ClusteringResult
from services.workers.eda.nodes.clean import clean_table
from services.workers.eda.nodes.descriptive import compute_descriptive_stats
from services.workers.eda.nodes.regression import run_linear_regressions
from services.workers.eda.nodes.schema import classify_columns
from services.workers.eda.nodes.visualization import build_visualizations, labeled_rows


def _specs(table, clustering=None):
    rows, columns, _ = clean_table(table)
    classification = classify_columns(rows, columns)
    stats = compute_descriptive_stats(rows, classification.numeric_columns)
    linear = run_linear_regressions(rows, classification.numeric_columns)
    specs = build_visualizations(rows, classification, stats, clustering, linear)
    return rows, {spec.type: spec for spec in specs}, [spec.type for spec in specs]


SALES = [
    {"region": "north", "sales": 1, "units": 2},
    {"region": "south", "sales": 10, "units": 21},
    {"region": "north", "sales": 3, "units": 6},
    {"region": None, "sales": 50, "units": 99},
    {"region": "east", "sales": 5, "units": 11},
]


def test_all_four_specs_are_built_in_order():
    _, _, order = _specs(SALES)

    assert order == ["bar", "line", "scatter", "histogram"]


def test_grouped_means_by_first_categorical_column():
    _, specs, _ = _specs(SALES)
    bar = specs["bar"]

    assert bar.x_axis == "region"
    assert bar.y_axis == "sales"
    assert bar.data == [
        {"region": "north", "sales": 2.0, "count": 2},
        {"region": "south", "sales": 10.0, "count": 1},
        {"region": "east", "sales": 5.0, "count": 1},
    ]
    assert "bar" in bar.available_types


def test_grouped_means_are_capped_at_ten_groups():
    table = [{"shop": f"s{i}", "revenue": i} for i in range(15)]

    _, specs, _ = _specs(table)

    assert len(specs["bar"].data) == 10
    assert specs["bar"].data[0] == {"shop": "s0", "revenue": 0.0, "count": 1}


def test_trend_covers_first_fifty_rows():
    table = [{"value": i * 2} for i in range(80)]

    _, specs, _ = _specs(table)
    trend = specs["line"]

    assert len(trend.data) == 50
    assert trend.data[0] == {"index": 1, "value": 0}
    assert trend.data[-1] == {"index": 50, "value": 98}


def test_histogram_has_ten_bins_covering_every_value():
    values = [0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 10, 2.5]
    table = [{"value": v, "id": f"r{i}"} for i, v in enumerate(values)]

    _, specs, _ = _specs(table)
    histogram = specs["histogram"]

    assert len(histogram.data) == 10
    assert sum(item["count"] for item in histogram.data) == 13
    assert histogram.data[0]["binStart"] == pytest.approx(0)
    assert histogram.data[-1]["binEnd"] == pytest.approx(10)
    assert histogram.data[-1]["count"] == 3


def test_histogram_of_constant_column_uses_one_bin():
    table = [{"value": 4, "id": f"r{i}"} for i in range(6)]

    _, specs, _ = _specs(table)

    assert specs["histogram"].data == [
        {"range": "4.00-4.00", "binStart": 4, "binEnd": 4, "count": 6}
    ]


def test_scatter_carries_cluster_labels_without_touching_rows():
    table = [{"x": i, "y": 3 * i + 1} for i in range(6)]
    clustering = ClusteringResult(
        status="completed", k=2, assignments={0: 0, 1: 0, 2: 0, 3: 1, 4: 1}
    )

    rows, specs, _ = _specs(table, clustering)
    scatter = specs["scatter"]

    assert scatter.x_axis == "x"
    assert scatter.y_axis == "y"
    assert scatter.data[0] == {"x": 0, "y": 1, "cluster": 0}
    assert scatter.data[3]["cluster"] == 1
    assert "cluster" not in scatter.data[5]
    assert all("cluster" not in row for row in rows)


def test_no_numeric_columns_means_no_specs():
    _, _, order = _specs([{"name": "a"}, {"name": "b"}])

    assert order == []


def test_labeled_rows_returns_copies():
    rows = [{"a": 1}, {"a": 2}]
    clustering = ClusteringResult(status="completed", k=2, assignments={1: 1})

    labeled = labeled_rows(rows, clustering)

    assert labeled == [{"a": 1}, {"a": 2, "cluster": 1}]
    assert rows == [{"a": 1}, {"a": 2}]
