"""Public metrics API for host integrations and plugins."""

import functools
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, ParamSpec, TypeVar

from obsidian_metrics.exceptions import (
    MetricNotFoundException,
    UnsupportedOperationException,
)
from obsidian_metrics.metrics.handles import MetricHandle
from obsidian_metrics.metrics.registry import MetricsRegistry
from obsidian_metrics.metrics.values import MetricKind
from obsidian_metrics.schemas.metric_options import (
    CounterOptions,
    GaugeOptions,
    HistogramOptions,
    SummaryOptions,
)

P = ParamSpec("P")
T = TypeVar("T")

_TIMING_KINDS = (MetricKind.HISTOGRAM, MetricKind.SUMMARY)


class MetricsApi:
    """Convenience layer over a single injected registry.

    Adds create-and-set shortcuts, timers and measured execution helpers on
    top of the registry operations, which are passed through unchanged.
    """

    def __init__(self, registry: MetricsRegistry):
        self._registry = registry

    @property
    def registry(self) -> MetricsRegistry:
        return self._registry

    def create_counter(self, options: CounterOptions | Mapping[str, Any]) -> MetricHandle:
        """Create a counter; counters only go up."""
        return self._registry.create_counter(options)

    def create_gauge(self, options: GaugeOptions | Mapping[str, Any]) -> MetricHandle:
        """Create a gauge; gauges hold a point-in-time value."""
        return self._registry.create_gauge(options)

    def create_histogram(
        self, options: HistogramOptions | Mapping[str, Any]
    ) -> MetricHandle:
        """Create a histogram counting observations into fixed buckets."""
        return self._registry.create_histogram(options)

    def create_summary(self, options: SummaryOptions | Mapping[str, Any]) -> MetricHandle:
        """Create a summary reporting quantiles over a sliding window."""
        return self._registry.create_summary(options)

    def get_metric(self, name: str) -> MetricHandle | None:
        return self._registry.get_metric(name)

    def get_all_metrics(self) -> str:
        """All metrics in the Prometheus text format."""
        return self._registry.render()

    def clear_metric(self, name: str) -> bool:
        return self._registry.clear_metric(name)

    def clear_all_metrics(self) -> None:
        """Clear every metric, built-in ones included."""
        self._registry.clear_all_metrics()

    def counter(self, name: str, help: str, value: float | None = None) -> MetricHandle:
        """Create a counter and optionally increment it by ``value``."""
        counter = self.create_counter(CounterOptions(name=name, help=help))
        if value is not None:
            counter.inc(value)
        return counter

    def gauge(self, name: str, help: str, value: float | None = None) -> MetricHandle:
        """Create a gauge and optionally set it to ``value``."""
        gauge = self.create_gauge(GaugeOptions(name=name, help=help))
        if value is not None:
            gauge.set(value)
        return gauge

    def histogram(
        self, name: str, help: str, buckets: list[float] | None = None
    ) -> MetricHandle:
        return self.create_histogram(HistogramOptions(name=name, help=help, buckets=buckets))

    def summary(
        self, name: str, help: str, percentiles: list[float] | None = None
    ) -> MetricHandle:
        return self.create_summary(
            SummaryOptions(name=name, help=help, percentiles=percentiles)
        )

    def create_timer(self, metric_name: str) -> Callable[[], float]:
        """Start timing into an existing histogram or summary.

        Returns:
            Stop function; the first call observes the elapsed seconds and
            returns them, later calls only return them

        Raises:
            MetricNotFoundException: If no metric has this name
            UnsupportedOperationException: If the metric cannot time
        """
        metric = self.get_metric(metric_name)
        if metric is None:
            raise MetricNotFoundException(metric_name)
        if metric.kind not in _TIMING_KINDS:
            raise UnsupportedOperationException(metric.kind.value, "start_timer")
        return metric.start_timer()

    def measure_sync(self, metric_name: str, fn: Callable[[], T]) -> T:
        """Run ``fn`` and observe its duration, whether it returns or raises."""
        stop = self.create_timer(metric_name)
        try:
            return fn()
        finally:
            stop()

    async def measure_async(
        self, metric_name: str, fn: Callable[[], Awaitable[T]]
    ) -> T:
        """Await ``fn()`` and observe its duration, whether it returns or raises."""
        stop = self.create_timer(metric_name)
        try:
            return await fn()
        finally:
            stop()

    def timed(self, metric_name: str) -> Callable[[Callable[P, T]], Callable[P, T]]:
        """Decorator observing each call's duration into ``metric_name``."""

        def decorator(fn: Callable[P, T]) -> Callable[P, T]:
            @functools.wraps(fn)
            def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
                return self.measure_sync(metric_name, lambda: fn(*args, **kwargs))

            return wrapper

        return decorator
