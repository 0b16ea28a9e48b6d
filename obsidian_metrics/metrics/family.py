"""Metric family: one named, typed metric with a series per label combination."""

import threading
from collections.abc import Callable, Mapping

from obsidian_metrics.metrics.labels import EMPTY_KEY, canonical_key, validate_labels
from obsidian_metrics.metrics.values import MetricKind, MetricValue


class MetricFamily:
    """Named metric definition owning its label-keyed series.

    Series are keyed by the canonical label key and created lazily on first
    use. A family without label names has exactly one series, created up
    front so that it renders before the first update.
    """

    def __init__(
        self,
        name: str,
        help: str,
        kind: MetricKind,
        label_names: tuple[str, ...],
        value_factory: Callable[[], MetricValue],
    ):
        self.name = name
        self.help = help
        self.kind = kind
        self.label_names = label_names
        self._value_factory = value_factory
        self._lock = threading.Lock()
        self._series: dict[str, tuple[tuple[str, ...], MetricValue]] = {}

        if not label_names:
            self._series[EMPTY_KEY] = ((), value_factory())

    def child(self, labels: Mapping[str, str] | None = None) -> MetricValue:
        """Return the value for a label assignment, creating it on first use.

        Raises:
            LabelMismatchException: If the assignment does not carry exactly
                the family's label names.
        """
        key = canonical_key(labels) if labels else EMPTY_KEY
        entry = self._series.get(key)
        if entry is not None:
            return entry[1]

        # Only validated keys are ever stored, so a hit above needs no check.
        label_values = validate_labels(self.name, self.label_names, labels)
        with self._lock:
            entry = self._series.get(key)
            if entry is None:
                entry = (label_values, self._value_factory())
                self._series[key] = entry
        return entry[1]

    def series(self) -> list[tuple[tuple[str, ...], MetricValue]]:
        """Snapshot of ``(label_values, value)`` pairs in creation order."""
        with self._lock:
            return list(self._series.values())
