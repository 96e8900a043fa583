from .clean import clean_node
from .schema import classify_node
from .descriptive import descriptive_stats_node
from .clustering import clustering_node
from .regression import regression_node
from .visualization import visualization_node
from .summary import summary_node
from .report import insights_node

__all__ = [
    "clean_node",
    "classify_node",
    "descriptive_stats_node",
    "clustering_node",
    "regression_node",
    "visualization_node",
    "summary_node",
    "insights_node",
]
