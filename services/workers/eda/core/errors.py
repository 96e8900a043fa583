"""Errors raised by the analysis engine before any stage runs."""
from __future__ import annotations


class AnalysisError(Exception):
    """Base class for failures that abort an analysis run."""


class InvalidInputError(AnalysisError, ValueError):
    """The table is missing, empty, or not a sequence of row mappings."""


class ResourceLimitExceededError(AnalysisError, ValueError):
    def __init__(self, dimension: str, actual: int, limit: int) -> None:
        self.dimension = dimension
        self.actual = actual
        self.limit = limit
        super().__init__(
            f"Dataset has {actual} {dimension}; the analysis engine supports at most {limit}."
        )
