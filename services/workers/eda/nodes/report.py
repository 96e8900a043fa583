from __future__ import annotations
import logging
import math
from typing import Any, Callable, Dict, List, Mapping, MutableMapping, Optional, Sequence, Tuple

from jinja2 import Environment, FileSystemLoader, select_autoescape

from services.common.payload import json_safe

from ..core.constants import _INSIGHT_TYPES, _INSIGHTS_REPORT_TEMPLATE_NAME, _TEMPLATE_DIR
from ..core.state import _with_phase, _emit_callback
from ..core.utils import _is_number

logger = logging.getLogger(__name__)

InsightGenerator = Callable[[Mapping[str, Any]], Sequence[Mapping[str, Any]]]

SOURCE_COLLABORATOR = "collaborator"
SOURCE_FALLBACK = "fallback"

_JINJA_ENV = Environment(
    loader=FileSystemLoader(str(_TEMPLATE_DIR)),
    autoescape=select_autoescape(["html", "xml", "html.j2"]),
)


def fallback_insights(summary: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Deterministic insights built only from the data-quality and clustering sections."""
    dq = summary.get("dataQuality", {}) or {}
    numeric = summary.get("numericColumns", []) or []
    categorical = summary.get("categoricalColumns", []) or []
    columns = summary.get("columns", []) or []
    missing = dq.get("missingValuesPerColumn", {}) or {}

    description = (
        f"Dataset contains {dq.get('finalRows', 0)} rows and {len(columns)} columns "
        f"({len(numeric)} numeric, {len(categorical)} categorical). "
        f"Cleaning removed {dq.get('duplicatesRemoved', 0)} duplicate rows and "
        f"{dq.get('invalidRowsRemoved', 0)} empty rows from {dq.get('originalRows', 0)}."
    )
    if missing:
        worst = max(missing.items(), key=lambda item: item[1].get("count", 0))
        description += (
            f" {len(missing)} column(s) have missing values; {worst[0]} is missing "
            f"{worst[1].get('percentage', 0)}% of values."
        )
    else:
        description += " No missing values remain."

    insights: List[Dict[str, Any]] = [
        {
            "type": "pattern",
            "title": "Data Quality Overview",
            "description": description,
            "confidence_score": 1.0,
        }
    ]

    clustering = summary.get("clustering", {}) or {}
    if clustering.get("status") == "completed":
        sizes = ", ".join(
            f"cluster {label}: {size} rows" for label, size in (clustering.get("clusters") or {}).items()
        )
        features = ", ".join(clustering.get("features") or [])
        insights.append(
            {
                "type": "pattern",
                "title": "Clustering",
                "description": (
                    f"K-means grouped {clustering.get('rowsConsidered', 0)} rows into "
                    f"{clustering.get('k')} clusters using {features} ({sizes})."
                ),
                "confidence_score": 0.8,
            }
        )
    return insights


def _validate_insight(entry: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(entry, Mapping):
        return None
    kind = entry.get("type")
    title = entry.get("title")
    description = entry.get("description")
    score = entry.get("confidence_score")
    if kind not in _INSIGHT_TYPES:
        return None
    if not isinstance(title, str) or not title.strip():
        return None
    if not isinstance(description, str) or not description.strip():
        return None
    if not _is_number(score) or math.isnan(score):
        return None
    return {
        "type": kind,
        "title": title.strip(),
        "description": description.strip(),
        "confidence_score": min(1.0, max(0.0, float(score))),
    }


def generate_insights(
    summary: Mapping[str, Any], generator: Optional[InsightGenerator] = None
) -> Tuple[List[Dict[str, Any]], str]:
    """
    Ask the external generator for insights and fall back to the rule-based
    list when it is missing, fails, or returns nothing usable. The generator
    receives a strict-JSON copy of the summary with non-finite numbers as
    ``None``.

    Returns ``(insights, source)``.
    """
    if generator is None:
        return fallback_insights(summary), SOURCE_FALLBACK

    try:
        raw = generator(json_safe(summary))
    except Exception:
        logger.exception("insight generator failed; using rule-based insights")
        return fallback_insights(summary), SOURCE_FALLBACK

    insights: List[Dict[str, Any]] = []
    for entry in raw or []:
        validated = _validate_insight(entry)
        if validated is None:
            logger.warning("discarding malformed insight: %r", entry)
            continue
        insights.append(validated)

    if not insights:
        return fallback_insights(summary), SOURCE_FALLBACK
    return insights, SOURCE_COLLABORATOR


def render_report(summary: Mapping[str, Any], insights: Sequence[Mapping[str, Any]]) -> Dict[str, str]:
    dq = summary.get("dataQuality", {}) or {}
    lines = [
        f"The cleaned dataset contains {summary.get('totalRows', 0):,} rows across "
        f"{len(summary.get('columns', []))} columns.",
    ]
    lines.extend(f"{item['title']}: {item['description']}" for item in insights)
    text = "\n".join(lines)

    template = _JINJA_ENV.get_template(_INSIGHTS_REPORT_TEMPLATE_NAME)
    html_report = template.render(
        dataset_id=summary.get("datasetId"),
        total_rows=summary.get("totalRows", 0),
        columns=summary.get("columns", []),
        numeric_columns=summary.get("numericColumns", []),
        categorical_columns=summary.get("categoricalColumns", []),
        dq=dq,
        insights=list(insights),
    )
    return {"text": text, "html": html_report}


def insights_node(state: MutableMapping[str, Any]) -> Dict[str, Any]:
    summary: Dict[str, Any] = state["analysis_summary"]
    insights, source = generate_insights(summary, state.get("insight_generator"))
    logger.info("produced %d insight(s) from %s", len(insights), source)

    report = render_report(summary, insights)
    payload = {"insights": insights, "source": source, "summary": report["text"]}
    update = _with_phase(state, "insights", payload, insight_items=insights, report=report)
    _emit_callback(state, "insights", payload)
    return update
