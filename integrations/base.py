"""Fetch contracts the context orchestrator consumes.

The orchestrator depends only on these protocols. The httpx clients in this
package satisfy them for Prometheus, GitHub and Tempo, and tests satisfy
them with in-memory fakes.
"""

from datetime import datetime
from typing import Protocol

from schemas.context import CommitInfo, TraceContext


class MetricsSource(Protocol):
    """Golden-signal queries for one service over [start, end].

    None means the backend had no samples for the series. A real zero
    reading is returned as 0.0 so the two stay distinguishable.
    """

    async def latency_p99(self, service: str, start: datetime, end: datetime) -> float | None: ...

    async def latency_avg(self, service: str, start: datetime, end: datetime) -> float | None: ...

    async def error_rate(self, service: str, start: datetime, end: datetime) -> float | None: ...

    async def rps(self, service: str, start: datetime, end: datetime) -> float | None: ...

    async def memory_usage(self, service: str, start: datetime, end: datetime) -> float | None: ...


class CommitSource(Protocol):
    async def fetch_commits(self, repo: str, since: datetime) -> list[CommitInfo]:
        """Return commits to repo since the given time, newest first."""
        ...


class TraceSource(Protocol):
    async def fetch_trace_summary(
        self, service: str, start: datetime, end: datetime
    ) -> TraceContext:
        """Return trace count, slow spans, error spans and p99 for the window."""
        ...
