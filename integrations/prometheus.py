"""Prometheus metrics client.

Runs instant PromQL queries evaluated at the end of the requested window,
with the range vector sized to the window itself. That makes the same query
usable for both the incident window and the baseline window before it.

Prometheus HTTP API reference:
https://prometheus.io/docs/prometheus/latest/querying/api/
"""

import logging
import math
from datetime import datetime

import httpx

logger = logging.getLogger(__name__)


class PrometheusError(Exception):
    """Raised when Prometheus answers but the query did not succeed."""


def _range(start: datetime, end: datetime) -> str:
    seconds = max(int((end - start).total_seconds()), 1)
    return f"{seconds}s"


class PrometheusClient:
    """MetricsSource implementation backed by the Prometheus HTTP API.

    Metric names follow the common http_server conventions:
    http_request_duration_seconds (histogram), http_requests_total (counter
    with a status label) and process_resident_memory_bytes.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def query(self, promql: str, at: datetime) -> float | None:
        """Run an instant query and return the first sample value.

        Returns None when the result vector is empty or the sample is NaN
        (histogram_quantile over no observations). A real 0.0 reading is
        returned as 0.0.

        Raises:
            httpx.HTTPStatusError: On a non-2xx response.
            PrometheusError: If the response status is not "success" or the
                sample value cannot be parsed.
        """
        params = {"query": promql, "time": f"{at.timestamp():.3f}"}

        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self._timeout, transport=self._transport,
        ) as client:
            resp = await client.get("/api/v1/query", params=params)
            resp.raise_for_status()
            body = resp.json()

        if body.get("status") != "success":
            raise PrometheusError(f"query failed: {body.get('error', body.get('status'))}")

        results = body.get("data", {}).get("result", [])
        if not results:
            return None

        value = results[0].get("value", [])
        if len(value) < 2:
            return None
        try:
            sample = float(value[1])
        except (TypeError, ValueError) as exc:
            raise PrometheusError(f"failed to parse value {value[1]!r}") from exc
        return None if math.isnan(sample) else sample

    async def latency_p99(self, service: str, start: datetime, end: datetime) -> float | None:
        window = _range(start, end)
        seconds = await self.query(
            "histogram_quantile(0.99, sum(rate("
            f'http_request_duration_seconds_bucket{{service="{service}"}}[{window}]'
            ")) by (le))",
            end,
        )
        return None if seconds is None else seconds * 1000

    async def latency_avg(self, service: str, start: datetime, end: datetime) -> float | None:
        window = _range(start, end)
        seconds = await self.query(
            f'sum(rate(http_request_duration_seconds_sum{{service="{service}"}}[{window}]))'
            f' / sum(rate(http_request_duration_seconds_count{{service="{service}"}}[{window}]))',
            end,
        )
        return None if seconds is None else seconds * 1000

    async def error_rate(self, service: str, start: datetime, end: datetime) -> float | None:
        window = _range(start, end)
        return await self.query(
            f'sum(rate(http_requests_total{{service="{service}",status=~"5.."}}[{window}]))'
            f' / sum(rate(http_requests_total{{service="{service}"}}[{window}]))',
            end,
        )

    async def rps(self, service: str, start: datetime, end: datetime) -> float | None:
        window = _range(start, end)
        return await self.query(
            f'sum(rate(http_requests_total{{service="{service}"}}[{window}]))',
            end,
        )

    async def memory_usage(self, service: str, start: datetime, end: datetime) -> float | None:
        window = _range(start, end)
        return await self.query(
            f'max(max_over_time(process_resident_memory_bytes{{service="{service}"}}[{window}]))',
            end,
        )
