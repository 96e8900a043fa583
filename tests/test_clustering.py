import numpy as np
import pytest

from services.workers.eda.nodes.clean import clean_table
from services.workers.eda.nodes.clustering import run_kmeans
from services.workers.eda.nodes.descriptive import compute_descriptive_stats
from services.workers.eda.nodes.schema import classify_columns


def _blobs(per_blob=10):
    centers = [(0.0, 0.0), (50.0, 50.0), (100.0, 0.0)]
    rows = []
    for blob, (cx, cy) in enumerate(centers):
        for offset in range(per_blob):
            rows.append({"x": cx + offset * 0.1, "y": cy - offset * 0.1, "group": f"g{blob}"})
    return rows


def _cluster(table, seed=7):
    rows, columns, _ = clean_table(table)
    classification = classify_columns(rows, columns)
    stats = compute_descriptive_stats(rows, classification.numeric_columns)
    result = run_kmeans(rows, classification.numeric_columns, stats, np.random.default_rng(seed))
    return rows, result


def test_thirty_rows_form_three_clusters_covering_every_row():
    rows, result = _cluster(_blobs())

    assert result.completed
    assert result.k == 3
    assert sorted(result.clusters) == [0, 1, 2]
    assert sum(result.clusters.values()) == 30
    assert result.rows_considered == 30
    assert set(result.assignments) == set(range(len(rows)))
    assert all(0 <= label < 3 for label in result.assignments.values())
    assert len(result.centroids) == 3
    assert all(len(centroid) == 2 for centroid in result.centroids)
    assert result.features == ["x", "y"]
    assert result.converged
    assert 1 <= result.iterations <= 100


def test_cluster_sizes_match_assignments():
    _, result = _cluster(_blobs(per_blob=14), seed=3)

    counted = {label: 0 for label in range(result.k)}
    for label in result.assignments.values():
        counted[label] += 1
    assert counted == result.clusters


def test_same_seed_reproduces_assignments():
    _, first = _cluster(_blobs(), seed=11)
    _, second = _cluster(_blobs(), seed=11)

    assert first.assignments == second.assignments
    assert first.centroids == second.centroids


def test_rows_missing_a_feature_are_not_assigned():
    table = _blobs()
    for index in (0, 5, 12, 25):
        table[index]["y"] = None

    rows, result = _cluster(table)

    assert result.k == 3
    assert result.rows_considered == 26
    assert sum(result.clusters.values()) == 26
    assert 0 not in result.assignments


def test_cleaned_rows_are_not_mutated():
    rows, result = _cluster(_blobs())

    assert result.completed
    assert all("cluster" not in row for row in rows)


def test_at_most_three_features_are_used():
    table = [{"a": i, "b": i % 7, "c": i * i, "d": -i} for i in range(40)]

    _, result = _cluster(table)

    assert result.features == ["a", "b", "c"]
    assert all(len(centroid) == 3 for centroid in result.centroids)


def test_constant_feature_is_standardised_to_zero():
    table = [{"a": i, "b": 5} for i in range(20)]

    _, result = _cluster(table)

    assert result.completed
    assert result.k == 2
    assert all(centroid[1] == 0 for centroid in result.centroids)


def test_constant_decimal_feature_is_standardised_to_zero():
    table = [{"a": i, "price": 0.1} for i in range(20)]

    _, result = _cluster(table)

    assert result.completed
    assert all(centroid[1] == 0 for centroid in result.centroids)


@pytest.mark.parametrize(
    "table, reason",
    [
        ([{"a": i, "b": i * 2} for i in range(19)], "rows"),
        ([{"a": i, "label": "x"} for i in range(40)], "numeric columns"),
        ([{"a": i, "b": None if i > 0 else 1} for i in range(30)], "rows have values"),
    ],
)
def test_clustering_is_skipped_when_preconditions_fail(table, reason):
    _, result = _cluster(table)

    assert not result.completed
    assert result.status == "skipped"
    assert reason in result.message
    assert result.to_dict() == {"status": "skipped", "message": result.message}
    assert result.assignments == {}


def test_completed_result_serialises_string_cluster_keys():
    _, result = _cluster(_blobs())

    payload = result.to_dict()

    assert payload["method"] == "k-means"
    assert set(payload["clusters"]) == {"0", "1", "2"}
    assert payload["rowsConsidered"] == 30
    assert payload["silhouetteScore"] is None or -1.0 <= payload["silhouetteScore"] <= 1.0
