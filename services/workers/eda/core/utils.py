from __future__ import annotations
import json
import math
import re
from typing import Any, Iterable, List, Mapping, Sequence

from .constants import _MAX_EXACT_INTEGER, _NULL_SENTINELS
from .types import Row, Value

_DECIMAL_PATTERN = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _canonical_number(value: float) -> Value:
    if not math.isfinite(value):
        return None
    if float(value).is_integer() and abs(value) < _MAX_EXACT_INTEGER:
        return int(value)
    return float(value)


def _normalize_cell(value: Any) -> Value:
    """Map a raw cell to ``None``, a finite number, or a trimmed string."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if _is_number(value):
        return _canonical_number(value)

    text = value.strip() if isinstance(value, str) else str(value).strip()
    if text in _NULL_SENTINELS:
        return None
    if _DECIMAL_PATTERN.match(text):
        parsed = _canonical_number(float(text))
        if parsed is not None:
            return parsed
    return text


def _canonical_row_key(row: Mapping[str, Value]) -> str:
    return json.dumps(row, sort_keys=True, default=str)


def _ordered_columns(rows: Iterable[Mapping[Any, Any]]) -> List[str]:
    seen: dict[str, None] = {}
    for row in rows:
        for key in row.keys():
            seen.setdefault(str(key), None)
    return list(seen)


def _column_values(table: Sequence[Row], column: str) -> List[float]:
    return [float(row[column]) for row in table if _is_number(row.get(column))]


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def _format_number(value: float, digits: int = 4) -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return "n/a"
    return f"{value:.{digits}f}"
