"""Per-label-combination metric values.

Every kind exposes the same update interface (``inc``, ``dec``, ``set``,
``observe``, ``start_timer``). Operations that are foreign to a kind raise
``UnsupportedOperationException`` naming the kind, so a caller holding a
generic handle gets a localized error instead of silently corrupting state.

Each value guards its own state with its own lock; there is no lock shared
between unrelated series.
"""

import bisect
import heapq
import math
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from obsidian_metrics.exceptions import (
    InvalidOperationException,
    UnsupportedOperationException,
)

Clock = Callable[[], float]
Timer = Callable[[], float]


class MetricKind(str, Enum):
    """Metric types, valued as they appear on ``# TYPE`` lines."""

    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"
    SUMMARY = "summary"


@dataclass(frozen=True)
class HistogramSnapshot:
    """Consistent read of one histogram series."""

    bounds: tuple[float, ...]
    cumulative_counts: tuple[int, ...]
    sum: float
    count: int


@dataclass(frozen=True)
class SummarySnapshot:
    """Consistent read of one summary series over its live window."""

    quantiles: tuple[tuple[float, float], ...]
    sum: float
    count: int


class StopTimer:
    """Single-fire stop function returned by ``start_timer``.

    The first call observes the elapsed wall-clock seconds and returns them;
    later calls observe nothing and return the same duration.
    """

    def __init__(self, observe: Callable[[float], None]) -> None:
        self._observe = observe
        self._start = time.perf_counter()
        self._lock = threading.Lock()
        self._duration: float | None = None

    def __call__(self) -> float:
        with self._lock:
            if self._duration is not None:
                return self._duration
            self._duration = time.perf_counter() - self._start
        self._observe(self._duration)
        return self._duration


class MetricValue(ABC):
    """Base class for the value stored per label combination."""

    kind: MetricKind

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def inc(self, amount: float = 1) -> None:
        raise UnsupportedOperationException(self.kind.value, "inc")

    def dec(self, amount: float = 1) -> None:
        raise UnsupportedOperationException(self.kind.value, "dec")

    def set(self, value: float) -> None:
        raise UnsupportedOperationException(self.kind.value, "set")

    def observe(self, value: float) -> None:
        raise UnsupportedOperationException(self.kind.value, "observe")

    def start_timer(self) -> Timer:
        raise UnsupportedOperationException(self.kind.value, "start_timer")

    @abstractmethod
    def snapshot(self) -> object:
        """Return an immutable, internally consistent read of the value."""
        pass


class CounterValue(MetricValue):
    """Monotonically non-decreasing accumulated value."""

    kind = MetricKind.COUNTER

    def __init__(self) -> None:
        super().__init__()
        self._value = 0.0

    def inc(self, amount: float = 1) -> None:
        # Also rejects NaN, which would otherwise stick forever
        if not amount >= 0:
            raise InvalidOperationException(
                "increment counter", "counter cannot decrease"
            )
        with self._lock:
            self._value += amount

    def snapshot(self) -> float:
        with self._lock:
            return self._value


class GaugeValue(MetricValue):
    """Signed value that can be set or moved by any amount."""

    kind = MetricKind.GAUGE

    def __init__(self) -> None:
        super().__init__()
        self._value = 0.0

    def inc(self, amount: float = 1) -> None:
        with self._lock:
            self._value += amount

    def dec(self, amount: float = 1) -> None:
        with self._lock:
            self._value -= amount

    def set(self, value: float) -> None:
        with self._lock:
            self._value = float(value)

    def snapshot(self) -> float:
        with self._lock:
            return self._value


class HistogramValue(MetricValue):
    """Fixed-bucket histogram with cumulative bucket counts.

    ``bounds`` must already be sorted ascending and must not contain
    ``+Inf``; the implicit ``+Inf`` bucket is the last slot of the counts.
    """

    kind = MetricKind.HISTOGRAM

    def __init__(self, bounds: Sequence[float]) -> None:
        super().__init__()
        self._bounds = tuple(bounds)
        self._counts = [0] * (len(self._bounds) + 1)
        self._sum = 0.0
        self._count = 0

    def observe(self, value: float) -> None:
        if math.isnan(value):
            first = len(self._bounds)
        else:
            first = bisect.bisect_left(self._bounds, value)
        with self._lock:
            for i in range(first, len(self._counts)):
                self._counts[i] += 1
            self._sum += value
            self._count += 1

    def start_timer(self) -> Timer:
        return StopTimer(self.observe)

    def snapshot(self) -> HistogramSnapshot:
        with self._lock:
            return HistogramSnapshot(
                bounds=self._bounds,
                cumulative_counts=tuple(self._counts),
                sum=self._sum,
                count=self._count,
            )


@dataclass
class _AgeBucket:
    """Observations that arrived during one time slice of the window."""

    samples: list[float] = field(default_factory=list)
    sum: float = 0.0
    count: int = 0

    def add(self, value: float) -> None:
        bisect.insort(self.samples, value)
        self.sum += value
        self.count += 1

    def reset(self) -> None:
        self.samples = []
        self.sum = 0.0
        self.count = 0


class TimeWindowQuantiles:
    """Approximate sliding window of observations built from rotating buckets.

    The window of ``max_age_seconds`` is split into ``age_buckets`` slices.
    New observations land in the active bucket; once a slice has elapsed the
    rotation moves on and the bucket it moves onto is emptied, evicting the
    oldest slice. Expiry therefore happens one whole slice at a time.

    Rotation is lazy: it is checked on every observation and every read,
    never from a background timer. Not thread-safe on its own.
    """

    def __init__(
        self, max_age_seconds: float, age_buckets: int, clock: Clock = time.monotonic
    ) -> None:
        self._clock = clock
        self._slice_seconds = max_age_seconds / age_buckets
        self._buckets = [_AgeBucket() for _ in range(age_buckets)]
        self._current = 0
        self._last_rotated = clock()

    def _rotate(self) -> None:
        elapsed = self._clock() - self._last_rotated
        if elapsed < self._slice_seconds:
            return

        steps = int(elapsed // self._slice_seconds)
        if steps >= len(self._buckets):
            for bucket in self._buckets:
                bucket.reset()
            self._current = (self._current + steps) % len(self._buckets)
        else:
            for _ in range(steps):
                self._current = (self._current + 1) % len(self._buckets)
                self._buckets[self._current].reset()
        self._last_rotated += steps * self._slice_seconds

    def observe(self, value: float) -> None:
        self._rotate()
        self._buckets[self._current].add(value)

    def totals(self) -> tuple[float, int]:
        """Sum and count over the live buckets."""
        self._rotate()
        return self._totals()

    def quantiles(self, percentiles: Sequence[float]) -> tuple[tuple[float, float], ...]:
        """Quantile values over the live buckets; empty when nothing is live."""
        self._rotate()
        return self._quantiles(percentiles)

    def snapshot(self, percentiles: Sequence[float]) -> SummarySnapshot:
        """Quantiles, sum and count computed from a single rotation."""
        self._rotate()
        total, count = self._totals()
        return SummarySnapshot(self._quantiles(percentiles), total, count)

    def _totals(self) -> tuple[float, int]:
        return (
            sum(bucket.sum for bucket in self._buckets),
            sum(bucket.count for bucket in self._buckets),
        )

    def _quantiles(self, percentiles: Sequence[float]) -> tuple[tuple[float, float], ...]:
        merged = list(heapq.merge(*(bucket.samples for bucket in self._buckets)))
        if not merged:
            return ()
        return tuple((q, _value_at_rank(merged, q)) for q in percentiles)


def _value_at_rank(samples: list[float], q: float) -> float:
    # Decimal keeps q * N exact so that e.g. 0.7 * 10 ranks as 7, not 8.
    rank = math.ceil(Decimal(repr(q)) * len(samples)) - 1
    return samples[min(max(rank, 0), len(samples) - 1)]


class SummaryValue(MetricValue):
    """Sliding-window quantile summary.

    Reported ``sum`` and ``count`` cover the live window only, so unlike a
    counter they drop when old slices are evicted.
    """

    kind = MetricKind.SUMMARY

    def __init__(
        self,
        percentiles: Sequence[float],
        max_age_seconds: float,
        age_buckets: int,
        clock: Clock = time.monotonic,
    ) -> None:
        super().__init__()
        self._percentiles = tuple(percentiles)
        self._window = TimeWindowQuantiles(max_age_seconds, age_buckets, clock)

    def observe(self, value: float) -> None:
        with self._lock:
            self._window.observe(value)

    def start_timer(self) -> Timer:
        return StopTimer(self.observe)

    def snapshot(self) -> SummarySnapshot:
        with self._lock:
            return self._window.snapshot(self._percentiles)


VALUE_TYPES: dict[MetricKind, type[MetricValue]] = {
    MetricKind.COUNTER: CounterValue,
    MetricKind.GAUGE: GaugeValue,
    MetricKind.HISTOGRAM: HistogramValue,
    MetricKind.SUMMARY: SummaryValue,
}


def supports(kind: MetricKind, operation: str) -> bool:
    """Whether values of ``kind`` implement ``operation``."""
    return getattr(VALUE_TYPES[kind], operation) is not getattr(MetricValue, operation)
