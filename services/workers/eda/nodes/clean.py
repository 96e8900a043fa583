from __future__ import annotations
import logging
from collections.abc import Mapping as MappingABC
from typing import Any, Dict, List, Mapping, MutableMapping, Sequence, Tuple

from ..core.errors import InvalidInputError
from ..core.state import _with_phase, _emit_callback
from ..core.types import DataQualityReport, Row
from ..core.utils import _canonical_row_key, _normalize_cell, _ordered_columns

logger = logging.getLogger(__name__)


def validate_table(table: Any) -> List[Mapping[Any, Any]]:
    if table is None:
        raise InvalidInputError("No dataset provided.")
    if isinstance(table, (str, bytes, bytearray, MappingABC)) or not isinstance(table, Sequence):
        raise InvalidInputError("Dataset must be a sequence of row objects.")
    if len(table) == 0:
        raise InvalidInputError("Dataset is empty.")
    for index, row in enumerate(table):
        if not isinstance(row, MappingABC):
            raise InvalidInputError(f"Row {index} is not an object (got {type(row).__name__}).")
    return list(table)


def clean_table(table: Any) -> Tuple[List[Row], List[str], DataQualityReport]:
    """
    Normalise every cell, drop exact duplicates (first occurrence wins) and
    drop rows whose fields are all missing.

    Rows are made rectangular over the union of keys in first-seen order, so
    ragged input is padded with ``None``. Cleaning is a fixed point: running it
    on its own output changes nothing.
    """
    rows = validate_table(table)
    columns = _ordered_columns(rows)

    normalized: List[Row] = []
    for raw in rows:
        by_name = {str(key): value for key, value in raw.items()}
        normalized.append({name: _normalize_cell(by_name.get(name)) for name in columns})

    seen: set[str] = set()
    unique: List[Row] = []
    for row in normalized:
        key = _canonical_row_key(row)
        if key in seen:
            continue
        seen.add(key)
        unique.append(row)

    cleaned = [row for row in unique if any(value is not None for value in row.values())]

    final_rows = len(cleaned)
    missing: Dict[str, Dict[str, Any]] = {}
    for name in columns:
        null_count = sum(1 for row in cleaned if row[name] is None)
        if null_count:
            missing[name] = {
                "count": null_count,
                "percentage": round(null_count / final_rows * 100, 2),
            }

    report = DataQualityReport(
        original_rows=len(rows),
        duplicates_removed=len(rows) - len(unique),
        invalid_rows_removed=len(unique) - final_rows,
        final_rows=final_rows,
        missing_values_per_column=missing,
    )
    return cleaned, columns, report


def clean_node(state: MutableMapping[str, Any]) -> Dict[str, Any]:
    table, columns, report = clean_table(state.get("raw_table"))
    logger.info(
        "cleaned dataset: %d rows in, %d duplicates, %d invalid, %d kept",
        report.original_rows,
        report.duplicates_removed,
        report.invalid_rows_removed,
        report.final_rows,
    )

    payload = report.to_dict()
    update = _with_phase(
        state,
        "clean",
        payload,
        table=table,
        columns=columns,
        data_quality=report,
        raw_table=[],
    )
    _emit_callback(state, "clean", payload)
    return update
