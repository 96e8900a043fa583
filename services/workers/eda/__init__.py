"""Automated exploratory data analysis engine."""
from .app import build_graph, check_resource_limits, lambda_handler, run_analysis
from .core.constants import PHASE_ORDER
from .core.errors import AnalysisError, InvalidInputError, ResourceLimitExceededError
from .core.types import AnalysisResult

__all__ = [
    "PHASE_ORDER",
    "AnalysisError",
    "AnalysisResult",
    "InvalidInputError",
    "ResourceLimitExceededError",
    "build_graph",
    "check_resource_limits",
    "lambda_handler",
    "run_analysis",
]
