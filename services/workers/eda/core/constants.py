from pathlib import Path

PHASE_ORDER = [
    "clean",
    "classify",
    "descriptive_stats",
    "clustering",
    "regression",
    "visualization",
    "summary",
    "insights",
]

_DEFAULT_MAX_ROWS = 10_000
_DEFAULT_MAX_COLUMNS = 200

_NULL_SENTINELS = {"", "N/A", "null"}

# numbers beyond this magnitude stay floats when normalised
_MAX_EXACT_INTEGER = 2 ** 53

_MAX_SAMPLE_ROWS = 10

_MAX_CLUSTER_FEATURES = 3
_MAX_CLUSTERS = 3
_ROWS_PER_CLUSTER = 10
_KMEANS_MAX_ITERATIONS = 100
_CLUSTER_FIELD = "cluster"

_MAX_REGRESSION_COLUMNS = 3
_MAX_REGRESSION_PAIRS = 3
_LOGISTIC_LEARNING_RATE = 0.01
_LOGISTIC_ITERATIONS = 1000
_MIN_LOGISTIC_OBSERVATIONS = 10

_MAX_BAR_GROUPS = 10
_MAX_TREND_POINTS = 50
_MAX_SCATTER_POINTS = 100
_HISTOGRAM_BINS = 10

_INSIGHT_TYPES = {"trend", "correlation", "outlier", "pattern"}

_TEMPLATE_DIR = Path(__file__).resolve().parents[1] / "templates"
_INSIGHTS_REPORT_TEMPLATE_NAME = "insights_report.html.j2"
