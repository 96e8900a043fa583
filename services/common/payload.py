"""Helpers for turning analysis results into JSON payloads."""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - import only for static typing
    from services.workers.eda.core.types import AnalysisResult
else:  # pragma: no cover - at runtime we treat AnalysisResult as ``Any``
    AnalysisResult = Any  # type: ignore[misc,assignment]


ANALYSIS_VERSION = "2025.01"


def json_safe(value: Any) -> Any:
    """Recursively replace non-finite floats with ``None`` and tuples with lists."""
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Mapping):
        return {str(key): json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [json_safe(item) for item in value]
    if hasattr(value, "item") and callable(value.item):
        return json_safe(value.item())
    return value


def build_results_payload(
    result: "AnalysisResult",
    *,
    analysis_version: str = ANALYSIS_VERSION,
) -> Dict[str, Any]:
    payload = {
        "datasetId": result.dataset_id,
        "analysisVersion": analysis_version,
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "summary": result.summary,
        "insights": result.insights,
        "insightSource": result.insight_source,
        "phases": result.phases,
    }
    return json_safe(payload)


__all__ = [
    "ANALYSIS_VERSION",
    "build_results_payload",
    "json_safe",
]
