"""Prometheus metrics shared across CATH Guard components."""

from prometheus_client import Counter, Gauge, Histogram

CLASSIFICATIONS_TOTAL = Counter(
    "cath_guard_classifications_total",
    "Total number of token classifications by final verdict",
    ["classification", "threat_level"],
)

SUPPLIER_FAILURES_TOTAL = Counter(
    "cath_guard_supplier_failures_total",
    "Total number of failed calls to external suppliers",
    ["supplier"],
)

DEEP3_LATENCY = Histogram(
    "cath_guard_deep3_latency_seconds",
    "Deep3 risk analysis latency in seconds",
    buckets=[0.05, 0.1, 0.25, 0.5, 0.8, 1.0, 1.2, 2.0, 5.0],
)

TIER_RESOLUTIONS_TOTAL = Counter(
    "cath_guard_tier_resolutions_total",
    "Total number of tier resolutions by resolved tier and source",
    ["tier", "source"],
)

LIFECYCLE_ACTIONS_TOTAL = Counter(
    "cath_guard_lifecycle_actions_total",
    "Total number of bot lifecycle actions",
    ["action"],
)

LIFECYCLE_SWEEP_DURATION = Histogram(
    "cath_guard_lifecycle_sweep_duration_seconds",
    "Duration of bot lifecycle sweeps in seconds",
    buckets=[0.001, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0],
)

WEBSOCKET_CLIENTS = Gauge(
    "cath_guard_websocket_clients",
    "Number of connected WebSocket clients",
)

EVENTS_BROADCAST_TOTAL = Counter(
    "cath_guard_events_broadcast_total",
    "Total number of events broadcast",
    ["event_type"],
)
