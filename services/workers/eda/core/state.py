from __future__ import annotations
from typing import Any, Callable, Dict, List, Mapping, MutableMapping, Optional, TypedDict

import numpy as np

from .constants import PHASE_ORDER
from .types import (
    ClusteringResult,
    ColumnClassification,
    DataQualityReport,
    DescriptiveStats,
    LinearRegressionResult,
    LogisticRegressionResult,
    Row,
    VisualizationSpec,
)


class AnalysisState(TypedDict, total=False):
    dataset_id: Optional[str]
    raw_table: List[Mapping[str, Any]]
    rng: np.random.Generator
    insight_generator: Optional[Callable[[Mapping[str, Any]], Any]]
    _callback: Optional[Callable[..., None]]
    phase_outputs: Dict[str, Dict[str, Any]]

    table: List[Row]
    columns: List[str]
    data_quality: DataQualityReport
    classification: ColumnClassification
    column_stats: Dict[str, DescriptiveStats]
    cluster_result: ClusteringResult
    linear_regression: List[LinearRegressionResult]
    logistic_regression: List[LogisticRegressionResult]
    regression_status: Dict[str, Dict[str, str]]
    visualizations: List[VisualizationSpec]
    analysis_summary: Dict[str, Any]
    insight_items: List[Dict[str, Any]]
    report: Dict[str, str]


def _with_phase(state: MutableMapping[str, Any], phase: str, payload: Dict[str, Any], **extra: Any) -> Dict[str, Any]:
    phases = dict(state.get("phase_outputs", {}))
    phases[phase] = payload
    update: Dict[str, Any] = {"phase_outputs": phases}
    update.update(extra)
    return update


def _emit_callback(state: Mapping[str, Any], phase: str, payload: Mapping[str, Any]) -> None:
    callback = state.get("_callback")
    if not callable(callback):
        return
    index = PHASE_ORDER.index(phase)
    callback(phase, payload, index, len(PHASE_ORDER))
