# cluster_autoscaler/infrastructure/prometheus/remote_metric_source.py

import logging
import time
from typing import Any, Callable

import httpx

from cluster_autoscaler.config.settings import AutoscalerSettings, get_settings
from cluster_autoscaler.observability.metrics import MetricsRegistry

logger = logging.getLogger(__name__)

USER_AGENT = "cluster-autoscaler/1.0"


class MalformedMetricResponseError(Exception):
    """The backend answered 200 but the payload is not a usable instant-query result."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class RemoteMetricSource:
    """
    Instant scalar queries against a Prometheus-compatible `/api/v1/query` endpoint.

    An unreachable backend (transport error, non-200, empty vector) never fails the
    caller: a fallback value chosen by substring match on the expression is returned.
    A 200 with an unusable payload raises MalformedMetricResponseError.
    """

    def __init__(
        self,
        settings: AutoscalerSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        metrics: MetricsRegistry | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport
        self._metrics = metrics
        self._clock = clock

    def fallback_value(self, expr: str) -> float:
        lowered = expr.lower()
        for needle, value in self._settings.custom_metric_fallbacks.items():
            if needle.lower() in lowered:
                return value
        return self._settings.default_custom_metric_fallback

    def _fallback(self, expr: str, reason: str, **details: Any) -> float:
        value = self.fallback_value(expr)
        logger.debug(
            "custom_metric_fallback",
            extra={"query": expr, "value": value, "reason": reason, **details},
        )
        if self._metrics:
            self._metrics.increment("custom_metric_fallback_total", 1, category=reason)
        return value

    async def query(self, server_url: str, expr: str) -> float:
        """Return the first sample of an instant vector query, or the fallback when the backend is unreachable."""
        base = (server_url or self._settings.default_prometheus_url).rstrip("/")
        params = {"query": expr, "time": str(int(self._clock()))}
        headers = {"Accept": "application/json", "User-Agent": USER_AGENT}

        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self._settings.prometheus_timeout_seconds,
            ) as client:
                response = await client.get(f"{base}/api/v1/query", params=params, headers=headers)
        except httpx.HTTPError as e:
            return self._fallback(expr, "unreachable", error=str(e))

        if response.status_code != httpx.codes.OK:
            return self._fallback(expr, "http_status", status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedMetricResponseError(f"failed to parse JSON response: {e}") from e
        if not isinstance(payload, dict):
            raise MalformedMetricResponseError("response body is not a JSON object")
        if payload.get("status") != "success":
            raise MalformedMetricResponseError(f"prometheus query failed: {payload.get('error', '')}")

        data = payload.get("data")
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise MalformedMetricResponseError("data is not a JSON object")
        result = data.get("result")
        if result is None:
            result = []
        if not isinstance(result, list):
            raise MalformedMetricResponseError("result is not a list")
        if data.get("resultType") != "vector" or not result:
            return self._fallback(expr, "no_data")

        sample = result[0].get("value") if isinstance(result[0], dict) else None
        if not isinstance(sample, list) or len(sample) < 2:
            raise MalformedMetricResponseError("invalid result format")
        if not isinstance(sample[1], str):
            raise MalformedMetricResponseError("invalid value format")
        try:
            value = float(sample[1])
        except ValueError as e:
            raise MalformedMetricResponseError(f"failed to parse value: {e}") from e

        logger.debug("custom_metric_queried", extra={"query": expr, "value": value})
        return value
