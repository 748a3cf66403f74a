"""Grafana Tempo trace client.

Builds the trace summary for a service with three TraceQL searches: every
trace for the service (count and p99 duration), spans slower than a
threshold, and spans with error status.

Tempo search API reference:
https://grafana.com/docs/tempo/latest/api_docs/#search
"""

import logging
import math
from datetime import datetime, timezone

import httpx

from schemas.context import Span, TraceContext

logger = logging.getLogger(__name__)


def service_query(service: str) -> str:
    return f'{{ resource.service.name = "{service}" }}'


def slow_spans_query(service: str, threshold_ms: int) -> str:
    return f'{{ resource.service.name = "{service}" && duration > {threshold_ms}ms }}'


def error_spans_query(service: str) -> str:
    return f'{{ resource.service.name = "{service}" && status = error }}'


def percentile(values: list[float], pct: float) -> float:
    """Nearest-rank percentile. Returns 0.0 for an empty list."""
    if not values:
        return 0.0
    ordered = sorted(values)
    rank = max(math.ceil(pct / 100 * len(ordered)), 1)
    return float(ordered[rank - 1])


class TempoClient:
    """TraceSource implementation backed by the Tempo HTTP API."""

    def __init__(
        self,
        base_url: str,
        slow_span_threshold_ms: int = 500,
        search_limit: int = 20,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.slow_span_threshold_ms = slow_span_threshold_ms
        self.search_limit = search_limit
        self._timeout = timeout
        self._transport = transport

    async def fetch_trace_summary(
        self, service: str, start: datetime, end: datetime
    ) -> TraceContext:
        """Search Tempo for the window and summarise what it found.

        Raises:
            httpx.HTTPStatusError: On a non-2xx response from any search.
        """
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self._timeout, transport=self._transport,
        ) as client:
            traces = await self._search(client, service_query(service), start, end)
            slow = await self._search(
                client, slow_spans_query(service, self.slow_span_threshold_ms), start, end
            )
            errors = await self._search(client, error_spans_query(service), start, end)

        durations = [float(t.get("durationMs", 0)) for t in traces]
        summary = TraceContext(
            trace_count=len(traces),
            p99_latency=percentile(durations, 99),
            slow_spans=self._spans(slow),
            error_spans=self._spans(errors, status="error"),
        )
        logger.debug(
            "Tempo summary for %s: %d traces, %d slow spans, %d error spans.",
            service,
            summary.trace_count,
            len(summary.slow_spans),
            len(summary.error_spans),
        )
        return summary

    async def _search(
        self, client: httpx.AsyncClient, query: str, start: datetime, end: datetime
    ) -> list[dict]:
        params = {
            "q": query,
            "start": int(start.timestamp()),
            "end": int(end.timestamp()),
            "limit": self.search_limit,
        }
        resp = await client.get("/api/search", params=params)
        resp.raise_for_status()
        return resp.json().get("traces", [])

    def _spans(self, traces: list[dict], status: str = "") -> list[Span]:
        """Flatten the matched spans of each search hit into Span objects."""
        spans: list[Span] = []
        for trace in traces:
            span_sets = trace.get("spanSets") or [trace.get("spanSet") or {}]
            for span_set in span_sets:
                for raw in span_set.get("spans", []):
                    spans.append(self._to_span(trace, raw, status))
        spans.sort(key=lambda s: s.duration_ms, reverse=True)
        return spans

    def _to_span(self, trace: dict, raw: dict, status: str) -> Span:
        attrs = {
            a.get("key"): next(iter(a.get("value", {}).values()), "")
            for a in raw.get("attributes", [])
        }
        start_ns = int(raw.get("startTimeUnixNano", 0) or 0)
        return Span(
            span_id=raw.get("spanID", ""),
            trace_id=trace.get("traceID", ""),
            service_name=trace.get("rootServiceName", ""),
            operation_name=raw.get("name") or trace.get("rootTraceName", ""),
            start_time=datetime.fromtimestamp(start_ns / 1e9, tz=timezone.utc) if start_ns else None,
            duration_ms=int(int(raw.get("durationNanos", 0) or 0) / 1_000_000),
            status=status or str(attrs.get("status", "ok")),
        )
