"""Prometheus metrics definitions for the health tracker service."""

from prometheus_client import Counter, Gauge, Histogram, Info

# -- Service info --
SERVICE_INFO = Info("health_tracker", "Health tracker service info")

# -- Domain store --
STORE_MUTATIONS = Counter(
    "health_tracker_store_mutations_total",
    "Total successful store mutations",
    ["domain", "operation"],
)
LOGINS = Counter(
    "health_tracker_logins_total",
    "Total login attempts",
    ["status"],
)
ACTIVE_SESSIONS = Gauge(
    "health_tracker_active_sessions",
    "Current number of live session tokens",
)

# -- Snapshot persistence --
SNAPSHOT_SAVES = Counter(
    "health_tracker_snapshot_saves_total",
    "Total snapshot write attempts",
    ["status"],
)
SNAPSHOT_LOADS = Counter(
    "health_tracker_snapshot_loads_total",
    "Total snapshot load attempts",
    ["status"],
)
SNAPSHOT_SAVE_DURATION = Histogram(
    "health_tracker_snapshot_save_duration_seconds",
    "Snapshot rewrite latency",
    buckets=(0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

# -- HTTP --
HTTP_REQUESTS_TOTAL = Counter(
    "health_tracker_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
