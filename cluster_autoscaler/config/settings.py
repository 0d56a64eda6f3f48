# cluster_autoscaler/config/settings.py

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_custom_metric_fallbacks() -> dict[str, float]:
    # Insertion order is the match order.
    return {
        "cpu": 0.65,
        "memory": 0.70,
        "connection": 45.0,
        "query": 18.5,
        "qps": 18.5,
        "throughput": 850.0,
    }


class AutoscalerSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="AUTOSCALER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_name: str = "cluster-autoscaler"
    environment: Literal["dev", "test", "prod"] = "dev"
    debug: bool = False
    version: str = "0.1.0"

    # --- Custom metrics (Prometheus-compatible) ---
    default_prometheus_url: str = "http://prometheus-server:9090"
    prometheus_timeout_seconds: float = Field(30.0, gt=0)
    custom_metric_fallbacks: dict[str, float] = Field(default_factory=_default_custom_metric_fallbacks)
    default_custom_metric_fallback: float = 0.5

    # --- Resource utilisation estimates (fraction of requests) ---
    cpu_usage_estimate: float = Field(0.6, ge=0.0)
    memory_usage_estimate: float = Field(0.7, ge=0.0)

    # --- Neo4j status queries ---
    neo4j_scheme: Literal["neo4j", "neo4j+s", "bolt", "bolt+s"] = "neo4j"
    neo4j_port: int = 7687
    neo4j_username: str = "neo4j"
    neo4j_password: str = ""

    # --- Kubernetes ---
    kube_in_cluster: bool = True

    # --- Observability ---
    enable_metrics: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


@lru_cache
def get_settings() -> AutoscalerSettings:
    return AutoscalerSettings()
