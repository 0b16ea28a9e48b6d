"""Metrics registry: owns every metric family and renders them."""

import logging
import threading
import time
from collections.abc import Callable, Mapping
from functools import partial
from typing import Any, TypeVar

from obsidian_metrics.exceptions import (
    LabelSchemaConflictException,
    MetricKindConflictException,
)
from obsidian_metrics.metrics.exposition import render_families
from obsidian_metrics.metrics.family import MetricFamily
from obsidian_metrics.metrics.handles import MetricHandle
from obsidian_metrics.metrics.values import (
    Clock,
    CounterValue,
    GaugeValue,
    HistogramValue,
    MetricKind,
    MetricValue,
    SummaryValue,
)
from obsidian_metrics.schemas.metric_options import (
    LABEL_NAME_RE,
    CounterOptions,
    GaugeOptions,
    HistogramOptions,
    MetricOptions,
    SummaryOptions,
)

logger = logging.getLogger(__name__)

_RESERVED_DEFAULT_LABELS = frozenset({"le", "quantile"})

OptionsT = TypeVar("OptionsT", bound=MetricOptions)


class MetricsRegistry:
    """In-memory store of named, typed, labeled metric families.

    Creation is idempotent: creating a metric whose full (prefixed) name
    already exists returns a handle to the existing family. Metadata of the
    first creation wins; re-creating with a different kind or a different
    set of label names is rejected.

    Families render in creation order.
    """

    def __init__(
        self,
        prefix: str = "",
        default_labels: Mapping[str, str] | None = None,
        clock: Clock = time.monotonic,
    ):
        """Initialize the registry.

        Args:
            prefix: Prefix applied to every metric name
            default_labels: Labels added to every rendered series
            clock: Monotonic clock driving summary window rotation
        """
        self._prefix = prefix
        self._default_labels: dict[str, str] = {}
        self._clock = clock
        self._families: dict[str, MetricFamily] = {}
        self._lock = threading.RLock()

        self.set_default_labels(default_labels or {})

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def default_labels(self) -> dict[str, str]:
        return dict(self._default_labels)

    def set_default_labels(self, labels: Mapping[str, str]) -> None:
        """Replace the labels merged into every rendered series."""
        for name in labels:
            if not LABEL_NAME_RE.match(name) or name in _RESERVED_DEFAULT_LABELS:
                raise ValueError(f"invalid default label name: {name!r}")
        self._default_labels = {name: str(value) for name, value in labels.items()}

    def create_counter(self, options: CounterOptions | Mapping[str, Any]) -> MetricHandle:
        opts = _coerce(CounterOptions, options)
        return self._get_or_create(MetricKind.COUNTER, opts, CounterValue)

    def create_gauge(self, options: GaugeOptions | Mapping[str, Any]) -> MetricHandle:
        opts = _coerce(GaugeOptions, options)
        return self._get_or_create(MetricKind.GAUGE, opts, GaugeValue)

    def create_histogram(
        self, options: HistogramOptions | Mapping[str, Any]
    ) -> MetricHandle:
        opts = _coerce(HistogramOptions, options)
        return self._get_or_create(
            MetricKind.HISTOGRAM, opts, partial(HistogramValue, opts.buckets)
        )

    def create_summary(self, options: SummaryOptions | Mapping[str, Any]) -> MetricHandle:
        opts = _coerce(SummaryOptions, options)
        return self._get_or_create(
            MetricKind.SUMMARY,
            opts,
            partial(
                SummaryValue,
                opts.percentiles,
                opts.max_age_seconds,
                opts.age_buckets,
                self._clock,
            ),
        )

    def _get_or_create(
        self,
        kind: MetricKind,
        options: MetricOptions,
        value_factory: Callable[[], MetricValue],
    ) -> MetricHandle:
        full_name = self._prefix + options.name

        with self._lock:
            family = self._families.get(full_name)
            if family is None:
                family = MetricFamily(
                    full_name, options.help, kind, options.label_names, value_factory
                )
                self._families[full_name] = family
                logger.debug(
                    "Created metric",
                    extra={"metric": full_name, "kind": kind.value},
                )
            else:
                if family.kind is not kind:
                    raise MetricKindConflictException(
                        full_name, family.kind.value, kind.value
                    )
                if set(family.label_names) != set(options.label_names):
                    raise LabelSchemaConflictException(
                        full_name, family.label_names, options.label_names
                    )

        return MetricHandle(self, family)

    def _resolve_name(self, name: str) -> str:
        if name.startswith(self._prefix) and name in self._families:
            return name
        return self._prefix + name

    def get_family(self, name: str) -> MetricFamily | None:
        """Look up a family by name, with or without the prefix."""
        with self._lock:
            return self._families.get(self._resolve_name(name))

    def get_metric(self, name: str) -> MetricHandle | None:
        """Look up a metric handle by name, with or without the prefix."""
        family = self.get_family(name)
        if family is None:
            return None
        return MetricHandle(self, family)

    def families(self) -> list[MetricFamily]:
        """Snapshot of all families in creation order."""
        with self._lock:
            return list(self._families.values())

    def clear_metric(self, name: str) -> bool:
        """Remove one family and all of its series.

        Returns:
            True if a family was found and removed
        """
        with self._lock:
            family = self._families.pop(self._resolve_name(name), None)

        if family is None:
            return False
        logger.info("Cleared metric", extra={"metric": family.name})
        return True

    def clear_all_metrics(self) -> None:
        """Drop every family. Nothing is re-created automatically."""
        with self._lock:
            count = len(self._families)
            self._families.clear()
        logger.info("Cleared all metrics", extra={"count": count})

    def render(self) -> str:
        """Render every family in the Prometheus text format."""
        return render_families(self.families(), self._default_labels)


def _coerce(model: type[OptionsT], options: OptionsT | Mapping[str, Any]) -> OptionsT:
    if isinstance(options, model):
        return options
    if isinstance(options, MetricOptions):
        return model.model_validate(options.model_dump())
    return model.model_validate(options)
