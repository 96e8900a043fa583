from __future__ import annotations
from typing import Any, Dict, Mapping, MutableMapping, Optional, Sequence

from ..core.constants import _MAX_SAMPLE_ROWS
from ..core.state import _with_phase, _emit_callback
from ..core.types import (
    ClusteringResult,
    ColumnClassification,
    DataQualityReport,
    DescriptiveStats,
    LinearRegressionResult,
    LogisticRegressionResult,
    Row,
    VisualizationSpec,
)
from .visualization import labeled_rows


def assemble_summary(
    *,
    table: Sequence[Row],
    data_quality: DataQualityReport,
    classification: ColumnClassification,
    stats: Mapping[str, DescriptiveStats],
    clustering: Optional[ClusteringResult],
    linear: Sequence[LinearRegressionResult],
    logistic: Sequence[LogisticRegressionResult],
    regression_status: Mapping[str, Mapping[str, str]],
    visualizations: Sequence[VisualizationSpec],
    dataset_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Package every stage's output into the JSON-ready AnalysisSummary."""
    summary: Dict[str, Any] = {
        "datasetId": dataset_id,
        "dataQuality": data_quality.to_dict(),
        "totalRows": data_quality.final_rows,
        "columns": list(classification.columns),
        "numericColumns": list(classification.numeric_columns),
        "categoricalColumns": list(classification.categorical_columns),
        "descriptiveStats": {name: item.to_dict() for name, item in stats.items()},
        "clustering": clustering.to_dict() if clustering is not None else {},
        "linearRegression": [item.to_dict() for item in linear],
        "logisticRegression": [item.to_dict() for item in logistic],
        "regressionStatus": {name: dict(entry) for name, entry in regression_status.items()},
        "visualizations": [spec.to_dict() for spec in visualizations],
        "sampleData": labeled_rows(table[:_MAX_SAMPLE_ROWS], clustering),
    }
    return summary


def summary_node(state: MutableMapping[str, Any]) -> Dict[str, Any]:
    summary = assemble_summary(
        table=state["table"],
        data_quality=state["data_quality"],
        classification=state["classification"],
        stats=state.get("column_stats", {}),
        clustering=state.get("cluster_result"),
        linear=state.get("linear_regression", []),
        logistic=state.get("logistic_regression", []),
        regression_status=state.get("regression_status", {}),
        visualizations=state.get("visualizations", []),
        dataset_id=state.get("dataset_id"),
    )
    payload: Dict[str, Any] = {
        "totalRows": summary["totalRows"],
        "columns": len(summary["columns"]),
        "clustering": summary["clustering"].get("status"),
        "linearRegressions": len(summary["linearRegression"]),
        "logisticRegressions": len(summary["logisticRegression"]),
        "visualizations": len(summary["visualizations"]),
    }
    update = _with_phase(state, "summary", payload, analysis_summary=summary)
    _emit_callback(state, "summary", payload)
    return update
