"""Metric creation option schemas."""

import math
import re
from typing import Any, ClassVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

METRIC_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

DEFAULT_BUCKETS: tuple[float, ...] = (
    0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0,
)
DEFAULT_PERCENTILES: tuple[float, ...] = (0.01, 0.05, 0.5, 0.9, 0.95, 0.99, 0.999)


class MetricOptions(BaseModel):
    """Options shared by every metric kind."""

    model_config = ConfigDict(frozen=True)

    reserved_label_names: ClassVar[frozenset[str]] = frozenset()

    name: str = Field(..., min_length=1, description="Metric name without prefix")
    help: str = Field(..., description="Help text rendered on the HELP line")
    label_names: tuple[str, ...] = Field(
        default=(),
        validation_alias=AliasChoices("label_names", "labelNames", "labels"),
        description="Label names every series of the metric must carry",
    )

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not METRIC_NAME_RE.match(value):
            raise ValueError(f"invalid metric name: {value!r}")
        return value

    @field_validator("label_names", mode="before")
    @classmethod
    def _default_label_names(cls, value: Any) -> Any:
        return () if value is None else value

    @field_validator("label_names")
    @classmethod
    def _check_label_names(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        for label in value:
            if not LABEL_NAME_RE.match(label) or label.startswith("__"):
                raise ValueError(f"invalid label name: {label!r}")
            if label in cls.reserved_label_names:
                raise ValueError(f"label name {label!r} is reserved")
        if len(set(value)) != len(value):
            raise ValueError("duplicate label names")
        return value


class CounterOptions(MetricOptions):
    """Options for creating a counter."""

    pass


class GaugeOptions(MetricOptions):
    """Options for creating a gauge."""

    pass


class HistogramOptions(MetricOptions):
    """Options for creating a histogram."""

    reserved_label_names: ClassVar[frozenset[str]] = frozenset({"le"})

    buckets: tuple[float, ...] = Field(
        default=DEFAULT_BUCKETS, description="Upper bounds; +Inf is implicit"
    )

    @field_validator("buckets", mode="before")
    @classmethod
    def _default_buckets(cls, value: Any) -> Any:
        return DEFAULT_BUCKETS if value is None else value

    @field_validator("buckets")
    @classmethod
    def _normalize_buckets(cls, value: tuple[float, ...]) -> tuple[float, ...]:
        if any(math.isnan(bound) for bound in value):
            raise ValueError("bucket bounds must be numbers")
        bounds = tuple(sorted({bound for bound in value if bound != math.inf}))
        if not bounds:
            raise ValueError("at least one finite bucket bound is required")
        return bounds


class SummaryOptions(MetricOptions):
    """Options for creating a sliding-window summary."""

    reserved_label_names: ClassVar[frozenset[str]] = frozenset({"quantile"})

    percentiles: tuple[float, ...] = Field(
        default=DEFAULT_PERCENTILES, description="Quantiles to report, each in [0, 1]"
    )
    max_age_seconds: float = Field(
        default=600,
        gt=0,
        validation_alias=AliasChoices("max_age_seconds", "maxAgeSeconds"),
    )
    age_buckets: int = Field(
        default=5,
        ge=1,
        validation_alias=AliasChoices("age_buckets", "ageBuckets"),
    )

    @field_validator("percentiles", mode="before")
    @classmethod
    def _default_percentiles(cls, value: Any) -> Any:
        return DEFAULT_PERCENTILES if value is None else value

    @field_validator("percentiles")
    @classmethod
    def _check_percentiles(cls, value: tuple[float, ...]) -> tuple[float, ...]:
        for q in value:
            if not 0 <= q <= 1:
                raise ValueError(f"percentile {q} is outside [0, 1]")
        return tuple(sorted(set(value)))
