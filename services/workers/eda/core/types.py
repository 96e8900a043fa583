from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

# type aliases used across the code
Value = Union[int, float, str, None]
Row = Dict[str, Value]
Table = List[Row]

STATUS_COMPLETED = "completed"
STATUS_SKIPPED = "skipped"


@dataclass
class DataQualityReport:
    original_rows: int
    duplicates_removed: int
    invalid_rows_removed: int
    final_rows: int
    missing_values_per_column: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "originalRows": self.original_rows,
            "duplicatesRemoved": self.duplicates_removed,
            "invalidRowsRemoved": self.invalid_rows_removed,
            "finalRows": self.final_rows,
            "missingValuesPerColumn": {
                name: dict(entry) for name, entry in self.missing_values_per_column.items()
            },
        }


@dataclass
class ColumnClassification:
    columns: List[str]
    numeric_columns: List[str]
    categorical_columns: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "columns": list(self.columns),
            "numericColumns": list(self.numeric_columns),
            "categoricalColumns": list(self.categorical_columns),
        }


@dataclass
class DescriptiveStats:
    column: str
    count: int
    mean: float
    median: float
    std_dev: float
    min: float
    max: float
    q1: float
    q3: float
    iqr: float
    outlier_count: int
    skewness: float
    kurtosis: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mean": self.mean,
            "median": self.median,
            "stdDev": self.std_dev,
            "min": self.min,
            "max": self.max,
            "count": self.count,
            "q1": self.q1,
            "q3": self.q3,
            "iqr": self.iqr,
            "outlierCount": self.outlier_count,
            "skewness": self.skewness,
            "kurtosis": self.kurtosis,
        }


@dataclass
class ClusteringResult:
    """k-means outcome; ``assignments`` maps cleaned-row index to cluster label."""

    status: str
    message: str = ""
    k: int = 0
    features: List[str] = field(default_factory=list)
    clusters: Dict[int, int] = field(default_factory=dict)
    centroids: List[List[float]] = field(default_factory=list)
    assignments: Dict[int, int] = field(default_factory=dict)
    iterations: int = 0
    converged: bool = False
    silhouette_score: Optional[float] = None

    @property
    def completed(self) -> bool:
        return self.status == STATUS_COMPLETED

    @property
    def rows_considered(self) -> int:
        return len(self.assignments)

    def to_dict(self) -> Dict[str, Any]:
        if not self.completed:
            return {"status": self.status, "message": self.message}
        return {
            "status": self.status,
            "method": "k-means",
            "k": self.k,
            "features": list(self.features),
            "clusters": {str(label): size for label, size in sorted(self.clusters.items())},
            "centroids": [list(centroid) for centroid in self.centroids],
            "rowsConsidered": self.rows_considered,
            "iterations": self.iterations,
            "converged": self.converged,
            "silhouetteScore": self.silhouette_score,
        }


@dataclass
class LinearRegressionResult:
    x_column: str
    y_column: str
    slope: float
    intercept: float
    r_squared: float
    correlation: float
    equation: str
    observations: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "xColumn": self.x_column,
            "yColumn": self.y_column,
            "slope": self.slope,
            "intercept": self.intercept,
            "rSquared": self.r_squared,
            "correlation": self.correlation,
            "equation": self.equation,
            "observations": self.observations,
        }


@dataclass
class LogisticRegressionResult:
    feature_column: str
    target_column: str
    weight: float
    bias: float
    accuracy: float
    classes: List[Value]
    interpretation: str
    observations: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "featureColumn": self.feature_column,
            "targetColumn": self.target_column,
            "weight": self.weight,
            "bias": self.bias,
            "accuracy": self.accuracy,
            "classes": list(self.classes),
            "interpretation": self.interpretation,
            "observations": self.observations,
        }


@dataclass
class VisualizationSpec:
    type: str
    available_types: List[str]
    title: str
    description: str
    x_axis: str
    y_axis: str
    data: List[Dict[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "availableTypes": list(self.available_types),
            "title": self.title,
            "description": self.description,
            "xAxis": self.x_axis,
            "yAxis": self.y_axis,
            "data": [dict(point) for point in self.data],
        }


@dataclass
class AnalysisResult:
    dataset_id: Optional[str]
    summary: Dict[str, Any]
    insights: List[Dict[str, Any]]
    insight_source: str
    phases: Dict[str, Dict[str, Any]]
    report: Mapping[str, str] = field(default_factory=dict)
