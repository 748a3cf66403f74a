"""Context orchestrator.

ContextOrchestrator gathers metrics, commit history and trace summaries for
one service concurrently and merges them into a single AnalysisContext.

The key guarantee: one fetch failing never causes the others to be skipped.
Each fetch runs in its own task with its own exception boundary and reports
exactly one FetchOutcome into its own slot of a pre-sized result list. The
aggregator then walks that list. Every task is accounted for, and every
failure is visible to the caller, not just the last one.

Fetch failures are warnings. prepare_context() returns whatever context it
could build together with a ContextFetchError describing what went wrong.
It only raises if the caller's own scope is cancelled.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable

from core.config import AnalysisSettings, GitHubSettings
from integrations.base import CommitSource, MetricsSource, TraceSource
from schemas.context import AnalysisContext, CommitInfo, MetricsSummary, TimeWindow, TraceContext
from schemas.events import EventType, FetchEvent

logger = logging.getLogger(__name__)

METRICS = "metrics"
COMMITS = "commits"
TRACES = "traces"

# Fixed fan-out: one task per source, always in this order.
FETCH_SOURCES = (METRICS, COMMITS, TRACES)


@dataclass
class FetchOutcome:
    """The single result one fetch task reports.

    Attributes:
        source: Which fetch produced this ("metrics", "commits", "traces").
        value: The fetched data, or None if the fetch failed.
        error: The exception the fetch raised, or None on success.
    """

    source: str
    value: Any = None
    error: Exception | None = None


class ContextFetchError(Exception):
    """Every fetch failure from one prepare_context() call.

    Returned alongside a partially populated context, never raised by the
    orchestrator. Treat it as a warning.

    Attributes:
        failures: Failed outcomes in fixed task order.
        observed: The same outcomes in the order the failures arrived.
    """

    def __init__(
        self,
        failures: list[FetchOutcome],
        observed: list[FetchOutcome] | None = None,
    ):
        self.failures = failures
        self.observed = observed if observed is not None else list(failures)
        detail = "; ".join(f"{f.source}: {f.error}" for f in failures)
        super().__init__(f"{len(failures)} fetch(es) failed: {detail}")

    @property
    def sources(self) -> list[str]:
        return [f.source for f in self.failures]

    @property
    def last(self) -> Exception:
        """The failure that arrived last, whatever its task position."""
        return self.observed[-1].error


class ContextOrchestrator:
    """Builds an AnalysisContext for one service and alert time.

    Sources are injected at construction. trace_source may be None, which
    means tracing is disabled: the traces task then contributes an empty
    TraceContext without error and without calling anything.

    The orchestrator holds no per-request state, so concurrent
    prepare_context() calls cannot interfere with each other.

    Attributes:
        metrics_window: Length of the metrics window ending at the alert.
        commits_lookback: How far before the alert to look for commits.
    """

    def __init__(
        self,
        metrics_source: MetricsSource,
        commit_source: CommitSource,
        trace_source: TraceSource | None = None,
        analysis: AnalysisSettings | None = None,
        github: GitHubSettings | None = None,
    ) -> None:
        analysis = analysis or AnalysisSettings()
        self._metrics = metrics_source
        self._commits = commit_source
        self._traces = trace_source
        self._github = github or GitHubSettings()
        self.metrics_window: timedelta = analysis.metrics_window
        self.commits_lookback: timedelta = analysis.commits_lookback

    def time_window(self, alert_time: datetime) -> TimeWindow:
        """The metrics window for an alert: [alert_time - window, alert_time]."""
        return TimeWindow(
            start=alert_time - self.metrics_window,
            end=alert_time,
            duration=self.metrics_window,
        )

    async def prepare_context(
        self,
        service_name: str,
        alert_time: datetime,
        event_queue: asyncio.Queue | None = None,
    ) -> tuple[AnalysisContext, ContextFetchError | None]:
        """Fetch metrics, commits and traces concurrently and merge them.

        Windows are anchored to alert_time, not wall-clock now, so the same
        alert always produces the same windows however late it is processed.

        Args:
            service_name: Service to gather data for.
            alert_time: When the alert started firing.
            event_queue: Optional asyncio.Queue to emit FetchEvents into.
                If None, events are skipped.

        Returns:
            A tuple of the context and either None (every fetch succeeded) or
            a ContextFetchError listing every failed fetch. The context is
            always returned and is useful even when some fetches failed.

        Raises:
            asyncio.CancelledError: If the caller's scope is cancelled or
                times out. Cancellation reaches every fetch task.
        """
        logger.info("Preparing context for service '%s'.", service_name)

        window = self.time_window(alert_time)
        commits_since = alert_time - self.commits_lookback
        fetches: dict[str, Callable[[], Awaitable[Any]]] = {
            METRICS: lambda: self._fetch_metrics(service_name, window.start, window.end),
            COMMITS: lambda: self._fetch_commits(service_name, commits_since),
            TRACES: lambda: self._fetch_traces(service_name, window.start, window.end),
        }

        exec_start = time.perf_counter()
        outcomes: list[FetchOutcome | None] = [None] * len(FETCH_SOURCES)
        completed: list[FetchOutcome] = []

        async def run(slot: int, source: str) -> None:
            outcome = await self._run_fetch_safely(
                source, fetches[source], event_queue, exec_start
            )
            outcomes[slot] = outcome
            completed.append(outcome)

        async with asyncio.TaskGroup() as tg:
            for slot, source in enumerate(FETCH_SOURCES):
                tg.create_task(run(slot, source), name=f"fetch-{source}-{service_name}")

        context = AnalysisContext(service_name=service_name, time_window=window)
        failures: list[FetchOutcome] = []

        for outcome in outcomes:
            if outcome.error is not None:
                failures.append(outcome)
                continue
            if outcome.source == METRICS:
                context.metrics = outcome.value
            elif outcome.source == COMMITS:
                context.recent_commits = outcome.value
            elif outcome.source == TRACES:
                context.traces = outcome.value

        logger.info(
            "Context for '%s' ready: %d/%d fetches succeeded, %d commits, %d traces.",
            service_name,
            len(FETCH_SOURCES) - len(failures),
            len(FETCH_SOURCES),
            len(context.recent_commits),
            context.traces.trace_count,
        )

        if not failures:
            return context, None
        observed = [o for o in completed if o.error is not None]
        return context, ContextFetchError(failures, observed)

    # ── Private helpers ───────────────────────────────────────────────────────

    async def _run_fetch_safely(
        self,
        source: str,
        fetch: Callable[[], Awaitable[Any]],
        event_queue: asyncio.Queue | None,
        exec_start: float,
    ) -> FetchOutcome:
        """Run one fetch and turn any ordinary exception into a FetchOutcome.

        Never raises except for cancellation, which must propagate so the
        TaskGroup can unwind. Emits STARTED, COMPLETE and ERROR events to
        the queue if one was provided.
        """

        async def emit(event_type: EventType, message: str) -> None:
            if event_queue is not None:
                ts_ms = (time.perf_counter() - exec_start) * 1000
                await event_queue.put(FetchEvent(
                    source=source,
                    event_type=event_type,
                    message=message,
                    timestamp_ms=ts_ms,
                ))

        await emit(EventType.STARTED, "fetching...")

        try:
            value = await fetch()
        except Exception as exc:
            await emit(EventType.ERROR, str(exc))
            logger.warning("Fetch '%s' failed, continuing without it: %s", source, exc)
            return FetchOutcome(source=source, error=exc)

        await emit(EventType.COMPLETE, _describe(source, value))
        return FetchOutcome(source=source, value=value)

    async def _fetch_metrics(
        self, service_name: str, start: datetime, end: datetime
    ) -> MetricsSummary:
        """Query every golden signal plus baselines over the preceding window.

        A failed query leaves its field None. The fetch only fails as a
        whole when every query failed.
        """
        baseline_start = start - (end - start)
        queries: dict[str, Callable[[], Awaitable[float | None]]] = {
            "latency_p99": lambda: self._metrics.latency_p99(service_name, start, end),
            "latency_avg": lambda: self._metrics.latency_avg(service_name, start, end),
            "error_rate": lambda: self._metrics.error_rate(service_name, start, end),
            "rps": lambda: self._metrics.rps(service_name, start, end),
            "memory_usage": lambda: self._metrics.memory_usage(service_name, start, end),
            "baseline_latency": lambda: self._metrics.latency_p99(service_name, baseline_start, start),
            "baseline_error_rate": lambda: self._metrics.error_rate(service_name, baseline_start, start),
            "baseline_rps": lambda: self._metrics.rps(service_name, baseline_start, start),
        }

        fields: dict[str, float | None] = {}
        errors: dict[str, Exception] = {}
        for field_name, query in queries.items():
            try:
                fields[field_name] = await query()
            except Exception as exc:
                logger.warning("Metric '%s' for '%s' failed: %s", field_name, service_name, exc)
                errors[field_name] = exc

        if not fields:
            first = next(iter(errors.values()))
            raise RuntimeError(f"all {len(errors)} metric queries failed: {first}") from first

        return MetricsSummary(**fields)

    async def _fetch_commits(self, service_name: str, since: datetime) -> list[CommitInfo]:
        repo = self._github.repo_for(service_name)
        return await self._commits.fetch_commits(repo, since)

    async def _fetch_traces(
        self, service_name: str, start: datetime, end: datetime
    ) -> TraceContext:
        if self._traces is None:
            return TraceContext()
        return await self._traces.fetch_trace_summary(service_name, start, end)


def _describe(source: str, value: Any) -> str:
    if source == COMMITS:
        noun = "commit" if len(value) == 1 else "commits"
        return f"{len(value)} {noun}"
    if source == TRACES:
        return f"{value.trace_count} traces, {len(value.slow_spans)} slow spans"
    return "golden signals collected"
