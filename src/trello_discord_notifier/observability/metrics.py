from __future__ import annotations

from pathlib import Path

from prometheus_client import REGISTRY, Counter, Gauge, Histogram, write_to_textfile

events_detected_total = Counter(
    "events_detected_total",
    "Number of board changes detected, by event kind.",
    labelnames=("kind",),
)
notifications_sent_total = Counter(
    "notifications_sent_total",
    "Number of notifications accepted by the webhook.",
)
notifications_failed_total = Counter(
    "notifications_failed_total",
    "Number of notifications that could not be delivered.",
)
render_failed_total = Counter(
    "render_failed_total",
    "Number of change events that could not be rendered into a notification.",
)

poll_seconds = Histogram(
    "poll_seconds",
    "Seconds spent on one poll cycle (fetch, diff, deliver, persist).",
)
last_success_timestamp_seconds = Gauge(
    "last_success_timestamp_seconds",
    "Unix time of the last poll cycle that completed without a fatal error.",
)


def write_textfile(path: Path, *, registry=REGISTRY) -> None:
    """Expose run metrics to the node-exporter textfile collector (written atomically)."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    write_to_textfile(str(path), registry)
