"""Public metric handles.

Handles never hold metric state themselves. Every call looks the family up
in the registry by its full name, so clearing a metric can never leave a
handle pointing at orphaned state.
"""

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from obsidian_metrics.exceptions import (
    InvalidOperationException,
    UnsupportedOperationException,
)
from obsidian_metrics.metrics.values import (
    MetricKind,
    MetricValue,
    StopTimer,
    Timer,
    supports,
)

if TYPE_CHECKING:
    from obsidian_metrics.metrics.family import MetricFamily
    from obsidian_metrics.metrics.registry import MetricsRegistry

logger = logging.getLogger(__name__)

Labels = Mapping[str, str]


class MetricHandle:
    """Update interface for one metric family.

    Every operation optionally takes a label assignment. Updates made after
    the family has been cleared are dropped; if a family with the same name
    and kind is created again, the handle forwards to the new family and
    reports its metadata.
    """

    def __init__(self, registry: "MetricsRegistry", family: "MetricFamily"):
        self._registry = registry
        self._name = family.name
        self._kind = family.kind
        self._help = family.help
        self._label_names = family.label_names

    @property
    def name(self) -> str:
        return self._name

    @property
    def kind(self) -> MetricKind:
        return self._kind

    @property
    def help(self) -> str:
        family = self._family()
        return family.help if family is not None else self._help

    @property
    def label_names(self) -> tuple[str, ...]:
        family = self._family()
        return family.label_names if family is not None else self._label_names

    def _family(self) -> "MetricFamily | None":
        """The live family behind this handle, if it still exists as this kind."""
        family = self._registry.get_family(self._name)
        if family is None or family.kind is not self._kind:
            return None
        return family

    def _resolve(self, operation: str, labels: Labels | None) -> MetricValue | None:
        # Reject before touching the family so a failed call creates no series.
        if not supports(self._kind, operation):
            raise UnsupportedOperationException(self._kind.value, operation)

        family = self._family()
        if family is None:
            logger.debug(
                "Dropping update for cleared metric",
                extra={"metric": self._name, "operation": operation},
            )
            return None
        return family.child(labels)

    def inc(self, amount: float = 1, labels: Labels | None = None) -> None:
        if self._kind is MetricKind.COUNTER and not amount >= 0:
            raise InvalidOperationException(
                "increment counter", "counter cannot decrease"
            )
        value = self._resolve("inc", labels)
        if value is not None:
            value.inc(amount)

    def dec(self, amount: float = 1, labels: Labels | None = None) -> None:
        value = self._resolve("dec", labels)
        if value is not None:
            value.dec(amount)

    def set(self, value: float, labels: Labels | None = None) -> None:
        target = self._resolve("set", labels)
        if target is not None:
            target.set(value)

    def observe(self, value: float, labels: Labels | None = None) -> None:
        target = self._resolve("observe", labels)
        if target is not None:
            target.observe(value)

    def start_timer(self, labels: Labels | None = None) -> Timer:
        """Start timing; calling the returned function observes elapsed seconds."""
        value = self._resolve("start_timer", labels)
        if value is None:
            return StopTimer(lambda _duration: None)
        return value.start_timer()

    def labels(self, labels: Labels | None = None, **kwargs: str) -> "BoundMetric":
        """Bind a label assignment, given as a mapping or keyword arguments."""
        assignment = dict(labels or {})
        assignment.update(kwargs)
        return BoundMetric(self, assignment)

    def __repr__(self) -> str:
        return f"MetricHandle(name={self._name!r}, kind={self._kind.value!r})"


class BoundMetric:
    """A metric handle with its label assignment fixed."""

    def __init__(self, handle: MetricHandle, labels: dict[str, str]):
        self._handle = handle
        self._labels = labels

    def inc(self, amount: float = 1) -> None:
        self._handle.inc(amount, self._labels)

    def dec(self, amount: float = 1) -> None:
        self._handle.dec(amount, self._labels)

    def set(self, value: float) -> None:
        self._handle.set(value, self._labels)

    def observe(self, value: float) -> None:
        self._handle.observe(value, self._labels)

    def start_timer(self) -> Timer:
        return self._handle.start_timer(self._labels)
