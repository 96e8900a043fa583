from __future__ import annotations
import logging
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Sequence, Tuple

import numpy as np
from sklearn.metrics import silhouette_score

from ..core.constants import (
    _KMEANS_MAX_ITERATIONS,
    _MAX_CLUSTER_FEATURES,
    _MAX_CLUSTERS,
    _ROWS_PER_CLUSTER,
)
from ..core.state import _with_phase, _emit_callback
from ..core.types import (
    STATUS_COMPLETED,
    STATUS_SKIPPED,
    ClusteringResult,
    ColumnClassification,
    DescriptiveStats,
    Row,
)
from ..core.utils import _is_number

logger = logging.getLogger(__name__)

_MAX_SILHOUETTE_SAMPLES = 2000


def clustering_node(state: MutableMapping[str, Any]) -> Dict[str, Any]:
    table: List[Row] = state["table"]
    classification: ColumnClassification = state["classification"]
    stats: Dict[str, DescriptiveStats] = state["column_stats"]
    rng = state.get("rng")
    if rng is None:
        rng = np.random.default_rng()

    result = run_kmeans(table, classification.numeric_columns, stats, rng)
    if result.completed:
        logger.info(
            "k-means finished: k=%d over %d rows after %d iterations (converged=%s)",
            result.k,
            result.rows_considered,
            result.iterations,
            result.converged,
        )
    else:
        logger.info("clustering skipped: %s", result.message)

    payload = result.to_dict()
    update = _with_phase(state, "clustering", payload, cluster_result=result)
    _emit_callback(state, "clustering", payload)
    return update


def _skipped(message: str) -> ClusteringResult:
    return ClusteringResult(status=STATUS_SKIPPED, message=message)


def _standardized_points(
    table: Sequence[Row], features: Sequence[str], stats: Mapping[str, DescriptiveStats]
) -> Tuple[List[int], np.ndarray]:
    indices: List[int] = []
    points: List[List[float]] = []
    for index, row in enumerate(table):
        values = [row.get(name) for name in features]
        if not all(_is_number(value) for value in values):
            continue
        point = []
        for name, value in zip(features, values):
            column = stats[name]
            point.append((float(value) - column.mean) / column.std_dev if column.std_dev else 0.0)
        indices.append(index)
        points.append(point)
    return indices, np.asarray(points, dtype=float).reshape(len(points), len(features))


def _assign(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    distances = ((points[:, None, :] - centroids[None, :, :]) ** 2).sum(axis=2)
    return distances.argmin(axis=1)


def run_kmeans(
    table: Sequence[Row],
    numeric_columns: Sequence[str],
    stats: Mapping[str, DescriptiveStats],
    rng: np.random.Generator,
    *,
    max_iterations: int = _KMEANS_MAX_ITERATIONS,
) -> ClusteringResult:
    """
    Lloyd's k-means over the first numeric columns, standardised with each
    column's own mean and population standard deviation.

    ``k = min(3, rows // 10)``. Initial centroids are ``k`` rows drawn
    uniformly with replacement from ``rng``. A cluster that loses every member
    keeps its previous centroid. Iteration stops once assignments repeat or
    after ``max_iterations`` passes.
    """
    features = [name for name in numeric_columns if name in stats][:_MAX_CLUSTER_FEATURES]
    if len(features) < 2:
        return _skipped("Clustering requires at least two numeric columns.")

    k = min(_MAX_CLUSTERS, len(table) // _ROWS_PER_CLUSTER)
    if k < 2:
        return _skipped(
            f"Clustering requires at least {2 * _ROWS_PER_CLUSTER} rows; dataset has {len(table)}."
        )

    indices, points = _standardized_points(table, features, stats)
    if len(indices) < k:
        return _skipped(f"Only {len(indices)} rows have values for every clustering feature.")

    centroids = points[rng.integers(0, len(points), size=k)].copy()

    labels: Optional[np.ndarray] = None
    converged = False
    iterations = 0
    for iteration in range(1, max_iterations + 1):
        iterations = iteration
        assigned = _assign(points, centroids)
        if labels is not None and np.array_equal(assigned, labels):
            converged = True
            break
        labels = assigned
        for cluster in range(k):
            members = points[labels == cluster]
            if len(members):
                centroids[cluster] = members.mean(axis=0)

    if labels is None:
        labels = _assign(points, centroids)
    sizes = np.bincount(labels, minlength=k)

    return ClusteringResult(
        status=STATUS_COMPLETED,
        k=k,
        features=features,
        clusters={cluster: int(sizes[cluster]) for cluster in range(k)},
        centroids=[[float(value) for value in centroid] for centroid in centroids],
        assignments={row_index: int(label) for row_index, label in zip(indices, labels)},
        iterations=iterations,
        converged=converged,
        silhouette_score=_silhouette(points, labels, rng),
    )


def _silhouette(points: np.ndarray, labels: np.ndarray, rng: np.random.Generator) -> Optional[float]:
    distinct = len(np.unique(labels))
    if distinct < 2 or distinct > len(points) - 1:
        return None
    sample_size = min(len(points), _MAX_SILHOUETTE_SAMPLES)
    try:
        if sample_size < len(points):
            return float(
                silhouette_score(
                    points,
                    labels,
                    sample_size=sample_size,
                    random_state=int(rng.integers(0, 2 ** 31 - 1)),
                )
            )
        return float(silhouette_score(points, labels))
    except ValueError as exc:
        logger.warning("silhouette score unavailable: %s", exc)
        return None
