"""Monitoring configuration for the scheduling engine."""
from prometheus_client import Counter, start_http_server

# Review metrics
reviews = Counter(
    "vocabsrs_reviews_total",
    "Total number of ratings applied to cards",
    ["mode", "rating"],
)

lapses = Counter(
    "vocabsrs_lapses_total",
    "Total number of ratings below the remembered threshold",
    ["mode"],
)

# Session metrics
sessions_started = Counter(
    "vocabsrs_sessions_started_total",
    "Total number of study sessions started",
    ["mode"],
)

sessions_completed = Counter(
    "vocabsrs_sessions_completed_total",
    "Total number of study sessions that reached the summary",
    ["mode"],
)

progress_resets = Counter(
    "vocabsrs_progress_resets_total",
    "Total number of explicit progress resets",
    ["mode"],
)

# Storage metrics
storage_errors = Counter(
    "vocabsrs_storage_errors_total",
    "Total number of storage failures",
    ["operation"],
)

corrupt_state_loads = Counter(
    "vocabsrs_corrupt_state_loads_total",
    "Total number of persisted documents or records that could not be parsed",
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
