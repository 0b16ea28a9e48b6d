"""Prometheus text exposition format rendering."""

import math
from collections.abc import Iterable, Mapping

from obsidian_metrics.metrics.family import MetricFamily
from obsidian_metrics.metrics.labels import escape_help, escape_label_value
from obsidian_metrics.metrics.values import (
    HistogramSnapshot,
    MetricKind,
    SummarySnapshot,
)

CONTENT_TYPE_LATEST = "text/plain; charset=utf-8"

_MAX_EXACT_INT = 2**53

LabelPairs = list[tuple[str, str]]


def format_float(value: float) -> str:
    """Format a number so that parsing it yields the same float.

    Integral values below 2**53 are written without a fractional part
    (``le="5"``, ``3``), matching what JavaScript clients emit.
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    value = float(value)
    if value.is_integer() and abs(value) < _MAX_EXACT_INT:
        return str(int(value))
    return repr(value)


def _format_labels(pairs: LabelPairs) -> str:
    if not pairs:
        return ""
    body = ",".join(f'{name}="{escape_label_value(value)}"' for name, value in pairs)
    return "{" + body + "}"


def _render_value(lines: list[str], name: str, pairs: LabelPairs, value: float) -> None:
    lines.append(f"{name}{_format_labels(pairs)} {format_float(value)}")


def _render_histogram(
    lines: list[str], name: str, pairs: LabelPairs, snapshot: HistogramSnapshot
) -> None:
    for bound, count in zip(snapshot.bounds, snapshot.cumulative_counts):
        labels = _format_labels(pairs + [("le", format_float(bound))])
        lines.append(f"{name}_bucket{labels} {count}")
    labels = _format_labels(pairs + [("le", "+Inf")])
    lines.append(f"{name}_bucket{labels} {snapshot.cumulative_counts[-1]}")
    lines.append(f"{name}_sum{_format_labels(pairs)} {format_float(snapshot.sum)}")
    lines.append(f"{name}_count{_format_labels(pairs)} {snapshot.count}")


def _render_summary(
    lines: list[str], name: str, pairs: LabelPairs, snapshot: SummarySnapshot
) -> None:
    for q, value in snapshot.quantiles:
        labels = _format_labels(pairs + [("quantile", format_float(q))])
        lines.append(f"{name}{labels} {format_float(value)}")
    lines.append(f"{name}_sum{_format_labels(pairs)} {format_float(snapshot.sum)}")
    lines.append(f"{name}_count{_format_labels(pairs)} {snapshot.count}")


_RENDERERS = {
    MetricKind.COUNTER: _render_value,
    MetricKind.GAUGE: _render_value,
    MetricKind.HISTOGRAM: _render_histogram,
    MetricKind.SUMMARY: _render_summary,
}


def render_families(
    families: Iterable[MetricFamily], default_labels: Mapping[str, str] | None = None
) -> str:
    """Render families in the given order.

    Default labels are appended to every series after its own labels, unless
    the series already carries a label of the same name. Returns an empty
    string when there are no families.
    """
    defaults = sorted((default_labels or {}).items())
    lines: list[str] = []

    for family in families:
        lines.append(f"# HELP {family.name} {escape_help(family.help)}")
        lines.append(f"# TYPE {family.name} {family.kind.value}")
        render = _RENDERERS[family.kind]
        for label_values, value in family.series():
            pairs = list(zip(family.label_names, label_values))
            pairs.extend(
                (name, str(v)) for name, v in defaults if name not in family.label_names
            )
            render(lines, family.name, pairs, value.snapshot())

    if not lines:
        return ""
    return "\n".join(lines) + "\n"
