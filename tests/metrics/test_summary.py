"""Tests for sliding-window summaries."""

import pytest

from obsidian_metrics.exceptions import UnsupportedOperationException
from obsidian_metrics.metrics.values import (
    SummarySnapshot,
    SummaryValue,
    TimeWindowQuantiles,
)
from obsidian_metrics.schemas.metric_options import DEFAULT_PERCENTILES, SummaryOptions
from tests.testing_utils import ManualClock


class TestQuantiles:
    """Rank selection over the live samples."""

    def test_nearest_rank(self, clock):
        summary = SummaryValue([0.5, 0.9, 0.99], max_age_seconds=600, age_buckets=5, clock=clock)

        for v in range(1, 11):
            summary.observe(v)

        snapshot = summary.snapshot()
        assert snapshot.quantiles == ((0.5, 5), (0.9, 9), (0.99, 10))
        assert snapshot.sum == 55
        assert snapshot.count == 10

    def test_insertion_order_does_not_matter(self, clock):
        summary = SummaryValue([0.5], max_age_seconds=600, age_buckets=5, clock=clock)

        for v in (9, 2, 7, 1, 5):
            summary.observe(v)

        assert summary.snapshot().quantiles == ((0.5, 5),)

    def test_extreme_quantiles(self, clock):
        summary = SummaryValue([0, 1], max_age_seconds=600, age_buckets=5, clock=clock)

        for v in (3, 1, 2):
            summary.observe(v)

        assert summary.snapshot().quantiles == ((0, 1), (1, 3))

    def test_exact_product_is_not_rounded_up(self, clock):
        summary = SummaryValue([0.7], max_age_seconds=600, age_buckets=5, clock=clock)

        for v in range(1, 11):
            summary.observe(v)

        assert summary.snapshot().quantiles == ((0.7, 7),)

    def test_empty_summary_has_no_quantiles(self, clock):
        summary = SummaryValue([0.5], max_age_seconds=600, age_buckets=5, clock=clock)

        snapshot = summary.snapshot()
        assert snapshot.quantiles == ()
        assert snapshot.sum == 0
        assert snapshot.count == 0


class TestWindow:
    """Age-bucket rotation driven by a manual clock."""

    def test_old_slice_is_evicted(self):
        clock = ManualClock(start=0)
        window = TimeWindowQuantiles(max_age_seconds=10, age_buckets=2, clock=clock)

        window.observe(1)
        clock.advance(5)
        window.observe(2)

        assert window.quantiles([0.5, 1]) == ((0.5, 1), (1, 2))
        assert window.totals() == (3, 2)

        clock.advance(5)

        assert window.quantiles([0.5, 1]) == ((0.5, 2), (1, 2))
        assert window.totals() == (2, 1)

    def test_snapshot_is_consistent_across_slice_boundary(self):
        clock = ManualClock(start=0)
        summary = SummaryValue([0, 1], max_age_seconds=10, age_buckets=2, clock=clock)
        summary.observe(1)
        clock.advance(5)
        summary.observe(2)

        # Each read advances the clock by 20ms; the boundary is at t=10
        clock.now = 9.99
        clock.step = 0.02
        snapshot = summary.snapshot()

        assert snapshot == SummarySnapshot(quantiles=((0, 1), (1, 2)), sum=3, count=2)

        snapshot = summary.snapshot()

        assert snapshot == SummarySnapshot(quantiles=((0, 2), (1, 2)), sum=2, count=1)

    def test_everything_expires_after_full_window(self):
        clock = ManualClock(start=0)
        window = TimeWindowQuantiles(max_age_seconds=10, age_buckets=2, clock=clock)

        window.observe(1)
        window.observe(2)
        clock.advance(25)

        assert window.quantiles([0.5]) == ()
        assert window.totals() == (0, 0)

    def test_observation_after_long_idle_is_kept(self):
        clock = ManualClock(start=0)
        window = TimeWindowQuantiles(max_age_seconds=10, age_buckets=5, clock=clock)

        window.observe(1)
        clock.advance(1000)
        window.observe(42)

        assert window.quantiles([0.5]) == ((0.5, 42),)
        assert window.totals() == (42, 1)

    def test_within_slice_nothing_expires(self):
        clock = ManualClock(start=0)
        window = TimeWindowQuantiles(max_age_seconds=10, age_buckets=2, clock=clock)

        window.observe(1)
        clock.advance(4.9)

        assert window.totals() == (1, 1)

    def test_registry_clock_drives_summaries(self, registry, clock):
        summary = registry.create_summary(
            {"name": "render_seconds", "help": "Render", "percentiles": [0.5],
             "maxAgeSeconds": 10, "ageBuckets": 2}
        )
        summary.observe(4)

        clock.advance(10)

        family = registry.get_family("render_seconds")
        [(_, value)] = family.series()
        snapshot = value.snapshot()
        assert snapshot.count == 0
        assert snapshot.quantiles == ()


class TestSummaryOptions:
    """Option validation and defaults."""

    def test_defaults(self):
        options = SummaryOptions(name="s", help="s")

        assert options.percentiles == DEFAULT_PERCENTILES
        assert options.max_age_seconds == 600
        assert options.age_buckets == 5

    def test_camel_case_aliases(self):
        options = SummaryOptions.model_validate(
            {"name": "s", "help": "s", "maxAgeSeconds": 30, "ageBuckets": 3}
        )

        assert options.max_age_seconds == 30
        assert options.age_buckets == 3

    def test_percentiles_sorted(self):
        options = SummaryOptions(name="s", help="s", percentiles=[0.9, 0.5, 0.9])

        assert options.percentiles == (0.5, 0.9)

    @pytest.mark.parametrize("percentiles", [[1.5], [-0.1]])
    def test_percentile_out_of_range_rejected(self, percentiles):
        with pytest.raises(ValueError):
            SummaryOptions(name="s", help="s", percentiles=percentiles)

    def test_non_positive_window_rejected(self):
        with pytest.raises(ValueError):
            SummaryOptions(name="s", help="s", max_age_seconds=0)
        with pytest.raises(ValueError):
            SummaryOptions(name="s", help="s", age_buckets=0)

    def test_quantile_label_reserved(self):
        with pytest.raises(ValueError):
            SummaryOptions(name="s", help="s", label_names=["quantile"])


class TestSummaryHandle:
    """Summary updates through handles."""

    @pytest.mark.parametrize("operation", ["set", "inc", "dec"])
    def test_value_operations_rejected(self, registry, operation):
        summary = registry.create_summary({"name": "s", "help": "s"})

        with pytest.raises(UnsupportedOperationException) as exc_info:
            getattr(summary, operation)(1)

        assert str(exc_info.value) == f"Summary does not support {operation}"

    def test_timer_observes_once(self, registry):
        summary = registry.create_summary({"name": "s", "help": "s", "percentiles": [0.5]})

        stop = summary.start_timer()
        duration = stop()
        stop()

        [(_, value)] = registry.get_family("s").series()
        snapshot = value.snapshot()
        assert snapshot.count == 1
        assert snapshot.quantiles == ((0.5, duration),)
