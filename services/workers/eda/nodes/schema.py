from __future__ import annotations
from typing import Any, Dict, List, MutableMapping, Sequence

from ..core.state import _with_phase, _emit_callback
from ..core.types import ColumnClassification, Row
from ..core.utils import _is_number


def classify_columns(table: Sequence[Row], columns: Sequence[str]) -> ColumnClassification:
    # an all-null column has no numeric evidence and is treated as categorical
    numeric: List[str] = []
    categorical: List[str] = []
    for name in columns:
        values = [row.get(name) for row in table if row.get(name) is not None]
        if values and all(_is_number(value) for value in values):
            numeric.append(name)
        else:
            categorical.append(name)
    return ColumnClassification(columns=list(columns), numeric_columns=numeric, categorical_columns=categorical)


def classify_node(state: MutableMapping[str, Any]) -> Dict[str, Any]:
    classification = classify_columns(state["table"], state["columns"])
    payload = classification.to_dict()
    update = _with_phase(state, "classify", payload, classification=classification)
    _emit_callback(state, "classify", payload)
    return update
