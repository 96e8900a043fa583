from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, Mapping, Optional

import numpy as np
from langgraph.graph import END, StateGraph

from services.common.payload import build_results_payload

from .nodes import (
    clean_node, classify_node, descriptive_stats_node, clustering_node,
    regression_node, visualization_node, summary_node, insights_node,
)
from .nodes.clean import validate_table
from .nodes.report import InsightGenerator
from .core.constants import PHASE_ORDER, _DEFAULT_MAX_COLUMNS, _DEFAULT_MAX_ROWS
from .core.errors import InvalidInputError, ResourceLimitExceededError
from .core.state import AnalysisState
from .core.types import AnalysisResult
from .core.utils import _ordered_columns

logger = logging.getLogger(__name__)

PhaseCallback = Optional[Callable[..., None]]


def build_graph():
    g = StateGraph(AnalysisState)
    g.add_node("clean", clean_node)
    g.add_node("classify", classify_node)
    g.add_node("descriptive_stats", descriptive_stats_node)
    g.add_node("clustering", clustering_node)
    g.add_node("regression", regression_node)
    g.add_node("visualization", visualization_node)
    g.add_node("summary", summary_node)
    g.add_node("insights", insights_node)

    g.set_entry_point("clean")
    g.add_edge("clean", "classify")
    g.add_edge("classify", "descriptive_stats")
    g.add_edge("descriptive_stats", "clustering")
    g.add_edge("clustering", "regression")
    g.add_edge("regression", "visualization")
    g.add_edge("visualization", "summary")
    g.add_edge("summary", "insights")
    g.add_edge("insights", END)
    return g.compile()


def _env_limit(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("ignoring non-integer %s=%r", name, raw)
        return default
    return value if value > 0 else default


def check_resource_limits(
    table: Any, *, max_rows: Optional[int] = None, max_columns: Optional[int] = None
) -> None:
    """Reject tables larger than the configured row/column caps before any work is done."""
    rows = validate_table(table)
    row_limit = max_rows or _env_limit("EDA_MAX_ROWS", _DEFAULT_MAX_ROWS)
    column_limit = max_columns or _env_limit("EDA_MAX_COLUMNS", _DEFAULT_MAX_COLUMNS)
    if len(rows) > row_limit:
        raise ResourceLimitExceededError("rows", len(rows), row_limit)
    column_count = len(_ordered_columns(rows))
    if column_count > column_limit:
        raise ResourceLimitExceededError("columns", column_count, column_limit)


def run_analysis(
    table: Any,
    dataset_id: Optional[str] = None,
    *,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
    insight_generator: Optional[InsightGenerator] = None,
    on_phase: PhaseCallback = None,
    max_rows: Optional[int] = None,
    max_columns: Optional[int] = None,
) -> AnalysisResult:
    check_resource_limits(table, max_rows=max_rows, max_columns=max_columns)
    if rng is None:
        rng = np.random.default_rng(seed)

    initial_state: Dict[str, Any] = {
        "dataset_id": dataset_id,
        "raw_table": list(table),
        "rng": rng,
        "insight_generator": insight_generator,
        "phase_outputs": {},
    }
    if on_phase:
        initial_state["_callback"] = on_phase

    logger.info("analysing dataset %s with %d rows", dataset_id or "<anonymous>", len(table))
    app = build_graph()
    final_state = app.invoke(initial_state)

    phases = final_state.get("phase_outputs", {}) or {}
    return AnalysisResult(
        dataset_id=dataset_id,
        summary=final_state.get("analysis_summary", {}) or {},
        insights=final_state.get("insight_items", []) or [],
        insight_source=(phases.get("insights") or {}).get("source", "fallback"),
        phases={phase: phases[phase] for phase in PHASE_ORDER if phase in phases},
        report=final_state.get("report", {}) or {},
    )


def lambda_handler(event: Mapping[str, Any], _context: Any) -> Dict[str, Any]:
    if not logging.getLogger().handlers:
        logging.basicConfig(level=os.environ.get("EDA_LOG_LEVEL", "INFO").upper())

    seed = event.get("seed")
    try:
        seed_value = int(seed) if seed is not None else None
    except (TypeError, ValueError):
        return {"statusCode": 400, "body": {"error": "seed must be an integer"}}

    try:
        result = run_analysis(event.get("data"), event.get("datasetId"), seed=seed_value)
    except ResourceLimitExceededError as exc:
        logger.warning("rejected dataset: %s", exc)
        return {"statusCode": 413, "body": {"error": str(exc)}}
    except InvalidInputError as exc:
        logger.warning("rejected dataset: %s", exc)
        return {"statusCode": 400, "body": {"error": str(exc)}}

    return {"statusCode": 200, "body": build_results_payload(result)}
