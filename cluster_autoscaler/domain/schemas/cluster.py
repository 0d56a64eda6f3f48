"""Pydantic schemas for the cluster specification consumed by the autoscaler. Parsed once at the boundary."""

import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

METRIC_CPU = "cpu"
METRIC_MEMORY = "memory"
METRIC_QUERY_LATENCY = "query_latency"
METRIC_CONNECTION_COUNT = "connection_count"
METRIC_THROUGHPUT = "throughput"
METRIC_CUSTOM = "custom"

ROLE_PRIMARY = "primary"
ROLE_SECONDARY = "secondary"

DEFAULT_WEIGHT = 1.0


class _SpecModel(BaseModel):
    """Accepts both the camelCase keys of the custom resource and snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


def parse_target(raw: str) -> Optional[float]:
    """
    Parse a metric target. "70%" becomes 0.7; plain numbers are kept as-is.
    Returns None when the value is not numeric.
    """
    text = raw.strip()
    percent = text.endswith("%")
    if percent:
        text = text[:-1].strip()
    try:
        value = float(text)
    except ValueError:
        return None
    return value / 100.0 if percent else value


class PrometheusMetricConfig(_SpecModel):
    server_url: str = ""
    query: str = ""
    interval: str = "30s"


class MetricSourceConfig(_SpecModel):
    type: str = "kubernetes"
    prometheus: Optional[PrometheusMetricConfig] = None


class AutoScalingMetric(_SpecModel):
    """
    One weighted scaling signal. `target` keeps the raw text for diagnostics;
    `target_value` is the parsed number (None when unparseable).
    """

    type: str
    target: str
    weight: float = DEFAULT_WEIGHT
    source: Optional[MetricSourceConfig] = None
    target_value: Optional[float] = Field(None, exclude=True)

    @field_validator("type")
    @classmethod
    def normalize_type(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("target", mode="before")
    @classmethod
    def target_as_text(cls, v: Any) -> str:
        return str(v)

    @field_validator("weight", mode="before")
    @classmethod
    def weight_defaults_on_parse_failure(cls, v: Any) -> float:
        """Weights arrive as strings ("1.0", "2.5"); anything unparseable falls back to 1.0."""
        if v is None or v == "":
            return DEFAULT_WEIGHT
        try:
            return float(v)
        except (TypeError, ValueError):
            logger.warning("invalid_metric_weight", extra={"value": v})
            return DEFAULT_WEIGHT

    @model_validator(mode="after")
    def parse_target_value(self) -> "AutoScalingMetric":
        object.__setattr__(self, "target_value", parse_target(self.target))
        return self


class QuorumProtectionConfig(_SpecModel):
    enabled: bool = True
    min_healthy_primaries: int = Field(2, ge=1)


class ZoneAwareScalingConfig(_SpecModel):
    enabled: bool = False
    min_replicas_per_zone: int = Field(1, ge=0)
    # Accepted for CRD compatibility; not enforced. The even split keeps skew at 1 before the floor,
    # and the floor only raises the smaller zones.
    max_zone_skew: int = Field(2, ge=1)
    zone_preference: list[str] = Field(default_factory=list)


class RoleScalingConfig(_SpecModel):
    enabled: bool = True
    min_replicas: int = Field(1, ge=0)
    max_replicas: int = Field(1, ge=0)
    metrics: list[AutoScalingMetric] = Field(default_factory=list)

    @model_validator(mode="after")
    def bounds_ordered(self) -> "RoleScalingConfig":
        if self.min_replicas > self.max_replicas:
            raise ValueError("min_replicas must not exceed max_replicas")
        return self


class PrimaryAutoScalingConfig(RoleScalingConfig):
    min_replicas: int = Field(3, ge=1)
    max_replicas: int = Field(7, ge=1)
    allow_quorum_break: bool = False
    quorum_protection: Optional[QuorumProtectionConfig] = None


class SecondaryAutoScalingConfig(RoleScalingConfig):
    min_replicas: int = Field(1, ge=0)
    max_replicas: int = Field(20, ge=0)
    zone_aware: Optional[ZoneAwareScalingConfig] = None


class AutoScalingSpec(_SpecModel):
    enabled: bool = True
    primaries: Optional[PrimaryAutoScalingConfig] = None
    secondaries: Optional[SecondaryAutoScalingConfig] = None


class TopologyConfig(_SpecModel):
    """Desired counts at cluster creation. Reconciliation reads the live replica counts instead."""

    primaries: int = Field(3, ge=1)
    secondaries: int = Field(0, ge=0)


class ClusterSpec(_SpecModel):
    """Read-only view of a managed cluster. The autoscaler never mutates it."""

    name: str = Field(..., min_length=1)
    namespace: str = Field("default", min_length=1)
    topology: TopologyConfig = Field(default_factory=TopologyConfig)
    auto_scaling: Optional[AutoScalingSpec] = None

    @property
    def autoscaling_enabled(self) -> bool:
        return self.auto_scaling is not None and self.auto_scaling.enabled

    def role_config(self, role: str) -> Optional[RoleScalingConfig]:
        if self.auto_scaling is None:
            return None
        if role == ROLE_PRIMARY:
            return self.auto_scaling.primaries
        if role == ROLE_SECONDARY:
            return self.auto_scaling.secondaries
        raise KeyError(role)
