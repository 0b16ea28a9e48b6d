"""In-memory metrics engine.

Create metrics through a ``MetricsRegistry`` and update them through the
returned handles:

    registry = MetricsRegistry(prefix="obsidian_")
    opened = registry.create_counter(
        CounterOptions(name="notes_opened_total", help="Notes opened", label_names=["folder"])
    )
    opened.inc(labels={"folder": "journal"})

    registry.render()  # Prometheus text exposition
"""

from obsidian_metrics.metrics.exposition import CONTENT_TYPE_LATEST, render_families
from obsidian_metrics.metrics.family import MetricFamily
from obsidian_metrics.metrics.handles import BoundMetric, MetricHandle
from obsidian_metrics.metrics.registry import MetricsRegistry
from obsidian_metrics.metrics.values import MetricKind
from obsidian_metrics.schemas.metric_options import (
    CounterOptions,
    GaugeOptions,
    HistogramOptions,
    SummaryOptions,
)

__all__ = [
    "CONTENT_TYPE_LATEST",
    "BoundMetric",
    "CounterOptions",
    "GaugeOptions",
    "HistogramOptions",
    "MetricFamily",
    "MetricHandle",
    "MetricKind",
    "MetricsRegistry",
    "SummaryOptions",
    "render_families",
]
