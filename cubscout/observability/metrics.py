"""Prometheus metrics for cub-scout.

All collectors live on the default registry so ``/metrics`` exposes them
without extra wiring.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

findings_total = Counter(
    "cubscout_findings_total",
    "Structural-integrity findings emitted, by check and severity.",
    ["rule_id", "severity"],
)

check_errors_total = Counter(
    "cubscout_check_errors_total",
    "Checks or objects skipped because of malformed data or an unexpected error.",
    ["check_id"],
)

chain_resolutions_total = Counter(
    "cubscout_chain_resolutions_total",
    "Provenance chains resolved, by terminus.",
    ["terminus"],
)

ownership_classifications_total = Counter(
    "cubscout_ownership_classifications_total",
    "Objects classified, by owner type.",
    ["owner"],
)

snapshot_objects = Gauge(
    "cubscout_snapshot_objects",
    "Objects held by the current snapshot index.",
)

snapshot_collect_seconds = Histogram(
    "cubscout_snapshot_collect_seconds",
    "Wall-clock duration of a live snapshot collection.",
    buckets=(0.5, 1, 2, 5, 10, 30, 60, 120),
)

collector_errors_total = Counter(
    "cubscout_collector_errors_total",
    "Per-kind list failures during snapshot collection, by error type.",
    ["kind", "error_type"],
)
