"""Analysis context schemas.

AnalysisContext is the per-incident diagnostic snapshot the orchestrator
builds from its fetch tasks. Each fetch task writes its own field, so the
fields are independently optional: a context with metrics but no commits is
perfectly valid.
"""

from datetime import datetime, timedelta

from pydantic import BaseModel, Field

from schemas.alert import AlertInfo


class TimeWindow(BaseModel):
    """The metrics window, anchored to the alert's own timestamp.

    Attributes:
        start: alert_time minus the configured metrics window.
        end: The alert timestamp itself, never wall-clock now.
        duration: The window length.
    """

    start: datetime
    end: datetime
    duration: timedelta


class MetricsSummary(BaseModel):
    """Golden-signal readings for the window, plus baselines for comparison.

    Every field is None when its query produced no data or failed. A value
    of 0.0 is a genuine zero reading.

    Attributes:
        latency_p99: p99 request latency in milliseconds.
        latency_avg: Mean request latency in milliseconds.
        error_rate: Fraction of requests that failed, 0.0-1.0.
        rps: Requests per second.
        memory_usage: Resident memory in bytes.
        baseline_latency: latency_p99 over the preceding window.
        baseline_error_rate: error_rate over the preceding window.
        baseline_rps: rps over the preceding window.
    """

    latency_p99: float | None = None
    latency_avg: float | None = None
    error_rate: float | None = None
    rps: float | None = None
    memory_usage: float | None = None

    baseline_latency: float | None = None
    baseline_error_rate: float | None = None
    baseline_rps: float | None = None

    def has_data(self) -> bool:
        return any(value is not None for value in self.model_dump().values())


class CommitInfo(BaseModel):
    """One commit from source-control history. Lists are ordered newest first."""

    sha: str
    message: str
    author: str = ""
    email: str = ""
    url: str = ""
    timestamp: datetime | None = None
    pr_number: int | None = None


class Span(BaseModel):
    """A single timed operation inside a distributed trace."""

    span_id: str = ""
    trace_id: str = ""
    service_name: str = ""
    operation_name: str = ""
    start_time: datetime | None = None
    duration_ms: int = 0
    status: str = ""


class TraceContext(BaseModel):
    """Trace summary for the window.

    The default instance (no spans, zero count) is what a disabled trace
    source contributes. That is a valid state, not an error.
    """

    slow_spans: list[Span] = Field(default_factory=list)
    error_spans: list[Span] = Field(default_factory=list)
    trace_count: int = 0
    p99_latency: float = 0.0


class AnalysisContext(BaseModel):
    """Everything the analysis engine and postmortem composer reason over.

    Owned by the request that built it. The only change made after the
    orchestrator returns it is attaching the alert snapshot via with_alert(),
    which returns a copy rather than mutating in place.
    """

    service_name: str
    time_window: TimeWindow
    alert: AlertInfo = Field(default_factory=AlertInfo)
    metrics: MetricsSummary = Field(default_factory=MetricsSummary)
    recent_commits: list[CommitInfo] = Field(default_factory=list)
    traces: TraceContext = Field(default_factory=TraceContext)

    def with_alert(self, alert: AlertInfo) -> "AnalysisContext":
        return self.model_copy(update={"alert": alert})
